"""Defect classifier: one forward pass over a recording, one verdict out.

Only SI-named ``AccelerationReading`` records take part. Their presence alone
marks the file as one whose switch-state channel must be removed. The
statistics then distinguish two firmware revisions:

- broken patch: some axis jumps by more than ``BROKEN_PATCH_DELTA`` between
  consecutive samples (the fixed offset bug toggling on and off);
- pre-SI: the mean magnitude sits just above 1000, i.e. 1 g of gravity
  expressed in milli-g.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

import numpy as np

from peak_reencode import config
from peak_reencode.correction.types import ClassificationVerdict
from peak_reencode.errors import PayloadDecodeError
from peak_reencode.io.messages import MessageSet, ReadingKind, Vector3Reading, decode_payload
from peak_reencode.io.recording import PathLike, Record, read_sequential
from peak_reencode.util.logging import get_logger

_log = get_logger(__name__)


@dataclass(frozen=True)
class ClassificationAccumulator:
    count: int = 0
    magnitude_sum: float = 0.0
    x_change_max: float = 0.0
    y_change_max: float = 0.0
    z_change_max: float = 0.0
    previous: Optional[Tuple[float, float, float]] = None
    undecodable: int = 0

    @property
    def mean_magnitude(self) -> Optional[float]:
        if self.count == 0:
            return None
        return self.magnitude_sum / self.count


def accumulate(acc: ClassificationAccumulator, reading: Vector3Reading) -> ClassificationAccumulator:
    """Fold one acceleration sample into the running statistics."""
    current = np.array(reading.values(), dtype=np.float64)
    magnitude = float(np.sqrt(np.dot(current, current)))
    if acc.previous is None:
        deltas = (acc.x_change_max, acc.y_change_max, acc.z_change_max)
    else:
        change = np.abs(current - np.array(acc.previous, dtype=np.float64))
        deltas = (
            max(acc.x_change_max, float(change[0])),
            max(acc.y_change_max, float(change[1])),
            max(acc.z_change_max, float(change[2])),
        )
    return replace(
        acc,
        count=acc.count + 1,
        magnitude_sum=acc.magnitude_sum + magnitude,
        x_change_max=deltas[0],
        y_change_max=deltas[1],
        z_change_max=deltas[2],
        previous=(float(current[0]), float(current[1]), float(current[2])),
    )


def finalize(acc: ClassificationAccumulator) -> ClassificationVerdict:
    broken = max(acc.x_change_max, acc.y_change_max, acc.z_change_max) > config.BROKEN_PATCH_DELTA
    before_si = False
    mean = acc.mean_magnitude
    if not broken and mean is not None:
        before_si = config.PRE_SI_MAGNITUDE_LOW < mean < config.PRE_SI_MAGNITUDE_HIGH
    return ClassificationVerdict(
        is_before_si_patch=before_si,
        is_from_broken_patch=broken,
        remove_switch_state_readings=acc.count > 0 or acc.undecodable > 0,
    )


def classify_records(records: Iterable[Record]) -> Tuple[ClassificationVerdict, ClassificationAccumulator]:
    acc = ClassificationAccumulator()
    for record in records:
        if record.kind is not ReadingKind.ACCELERATION:
            continue
        try:
            reading = decode_payload(record.kind, record.envelope.serialized_data)
        except PayloadDecodeError as exc:
            _log.debug("Undecodable acceleration payload at %s: %s", record.sample_time, exc)
            acc = replace(acc, undecodable=acc.undecodable + 1)
            continue
        assert isinstance(reading, Vector3Reading)
        acc = accumulate(acc, reading)
    return finalize(acc), acc


def classify_file(path: PathLike, message_set: Optional[MessageSet] = None) -> ClassificationVerdict:
    verdict, acc = classify_records(read_sequential(path, message_set))
    mean = acc.mean_magnitude
    _log.debug(
        "%s: %d acceleration samples, mean |a|=%s, max delta x/y/z=%.3f/%.3f/%.3f",
        path,
        acc.count,
        "n/a" if mean is None else f"{mean:.3f}",
        acc.x_change_max,
        acc.y_change_max,
        acc.z_change_max,
    )
    return verdict
