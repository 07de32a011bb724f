"""
peak-reencode: repair recordings produced by the PEAK GPS/IMU peripheral.

This package rewrites recordings whose firmware revision emitted defective
data:
- Converts milli-g / micro-Tesla readings from pre-SI firmware to SI units
- Removes the fixed numeric offset introduced by the broken patch revision
- Suppresses mis-emitted switch-state channels and repeated sensor samples

Files that need no correction are copied byte-for-byte.

Usage:
    from peak_reencode.pipeline import reencode_file
    report = reencode_file("in/drive.rec", "out/drive.rec")
"""
from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
