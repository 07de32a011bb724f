"""
Correction constants and environment parsing for peak-reencode.

All PEAK_REENCODE_* environment variables are parsed here and exported as
module-level constants. The classifier and engine import from this module
rather than hard-coding thresholds.
"""
from __future__ import annotations

import os


def _str_env(name: str, default: str) -> str:
    """Read a string from environment, returning default on missing/blank."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return val.strip()


# ---------------------------------------------------------------------------
# Batch traversal
# ---------------------------------------------------------------------------
RECORDING_EXTENSION: str = _str_env("PEAK_REENCODE_EXTENSION", ".rec")
"""File extension that marks a recording when walking an input tree."""


# ---------------------------------------------------------------------------
# Classification thresholds
# ---------------------------------------------------------------------------
BROKEN_PATCH_DELTA: float = 2500.0
"""Sample-to-sample axis jump above which a file is from the broken patch."""

PRE_SI_MAGNITUDE_LOW: float = 1000.0
"""Exclusive lower bound of the mean |a| (milli-g) of a pre-SI recording."""

PRE_SI_MAGNITUDE_HIGH: float = 1060.0
"""Exclusive upper bound of the mean |a| (milli-g) of a pre-SI recording."""


# ---------------------------------------------------------------------------
# Unit conversions (applied in single precision)
# ---------------------------------------------------------------------------
STANDARD_GRAVITY: float = 9.80665
"""m/s^2 per g."""

MILLI_G_PER_G: float = 1000.0

MICROTESLA_TO_TESLA: float = 1e-6


# ---------------------------------------------------------------------------
# Broken patch offsets (applied in single precision)
# ---------------------------------------------------------------------------
ACCELERATION_OFFSET_TRIGGER: float = 1250.0
"""Raw acceleration axis values above this carry the offset bug."""

ACCELERATION_OFFSET: float = 2512.874

MAGNETIC_FIELD_OFFSET_TRIGGER: float = 0.01
"""Raw magnetic field axis values above this carry the offset bug."""

MAGNETIC_FIELD_OFFSET: float = 0.0196605


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------
SUDDEN_DROP_RATIO: float = 0.98
"""Scalar readings falling by more than this share of |previous| are dropped."""

MIN_VALID_HEADING: float = 0.001
"""Headings with |value| below this are treated as invalid."""
