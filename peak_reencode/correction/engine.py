"""Correction engine: per-record rewrite driven by a classification verdict.

Records must arrive in ascending sample-time order. Each record is
dispatched on its reading kind:

- acceleration (legacy and SI-named): milli-g to m/s^2 for pre-SI files,
  per-axis offset removal for broken-patch files;
- magnetic field: micro-Tesla to Tesla, per-axis offset removal, plus the
  repeated-axis filter;
- angular velocity: repeated-axis filter only;
- altitude, ground speed, heading: sudden-drop/duplicate filter, heading
  additionally drops near-zero values;
- switch state: dropped when the verdict says so.

Anything else, and any payload that fails to decode, passes through with its
original bytes.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, Iterator, Optional

import numpy as np

from peak_reencode import config
from peak_reencode.correction.types import ClassificationVerdict, DedupState
from peak_reencode.errors import OrderingError, PayloadDecodeError
from peak_reencode.io.envelope import TimeStamp
from peak_reencode.io.messages import (
    Reading,
    ReadingKind,
    ScalarReading,
    Vector3Reading,
    decode_payload,
    describe,
    encode_payload,
)
from peak_reencode.io.recording import Record
from peak_reencode.util.logging import get_logger

_log = get_logger(__name__)

MILLI_G_TO_MPS2 = np.float32(config.STANDARD_GRAVITY) / np.float32(config.MILLI_G_PER_G)
MICROTESLA_TO_TESLA = np.float32(config.MICROTESLA_TO_TESLA)
ACCELERATION_OFFSET = np.float32(config.ACCELERATION_OFFSET)
MAGNETIC_FIELD_OFFSET = np.float32(config.MAGNETIC_FIELD_OFFSET)

_ACCELERATION_KINDS = (ReadingKind.LEGACY_ACCELERATION, ReadingKind.ACCELERATION)
_AXIS_DEDUP_KINDS = (ReadingKind.MAGNETIC_FIELD, ReadingKind.ANGULAR_VELOCITY)
_SCALAR_DEDUP_KINDS = (ReadingKind.ALTITUDE, ReadingKind.GROUND_SPEED, ReadingKind.GEODETIC_HEADING)


def _remove_offset(value: float, trigger: float, offset: np.float32) -> np.float32:
    raw = np.float32(value)
    if float(raw) > trigger:
        return raw - offset
    return raw


def correct_acceleration(reading: Vector3Reading, verdict: ClassificationVerdict) -> Vector3Reading:
    axes = [np.float32(v) for v in reading.values()]
    if verdict.is_from_broken_patch:
        axes = [_remove_offset(v, config.ACCELERATION_OFFSET_TRIGGER, ACCELERATION_OFFSET) for v in axes]
    if verdict.is_before_si_patch:
        axes = [v * MILLI_G_TO_MPS2 for v in axes]
    return Vector3Reading(float(axes[0]), float(axes[1]), float(axes[2]))


def correct_magnetic_field(reading: Vector3Reading, verdict: ClassificationVerdict) -> Vector3Reading:
    axes = [np.float32(v) for v in reading.values()]
    if verdict.is_from_broken_patch:
        axes = [_remove_offset(v, config.MAGNETIC_FIELD_OFFSET_TRIGGER, MAGNETIC_FIELD_OFFSET) for v in axes]
    if verdict.is_before_si_patch:
        axes = [v * MICROTESLA_TO_TESLA for v in axes]
    return Vector3Reading(float(axes[0]), float(axes[1]), float(axes[2]))


def same_bits(a: float, b: float) -> bool:
    """Bitwise equality of two doubles: -0.0 differs from 0.0, a NaN can equal itself."""
    return np.float64(a).tobytes() == np.float64(b).tobytes()


def is_sudden_drop_or_repeat(previous: float, current: float) -> bool:
    return previous - current > config.SUDDEN_DROP_RATIO * abs(previous) or same_bits(current, previous)


class CorrectionEngine:
    """Stateful per-file transform. Build one per file; never reuse."""

    def __init__(self, verdict: ClassificationVerdict, *, verbose: bool = False):
        self.verdict = verdict
        self.verbose = verbose
        self.passthrough = 0
        self.undecodable = 0
        self._dedup: Dict[ReadingKind, DedupState] = {}
        self._last_time: Optional[TimeStamp] = None

    def _state(self, kind: ReadingKind) -> DedupState:
        state = self._dedup.get(kind)
        if state is None:
            state = DedupState()
            self._dedup[kind] = state
        return state

    def skip_counts(self) -> Dict[str, int]:
        return {kind.value: state.skipped for kind, state in self._dedup.items() if state.skipped}

    def _check_order(self, record: Record) -> None:
        ts = record.sample_time
        if self._last_time is not None and ts < self._last_time:
            raise OrderingError(
                f"record at {ts.seconds}.{ts.microseconds:06d} arrived after "
                f"{self._last_time.seconds}.{self._last_time.microseconds:06d}"
            )
        self._last_time = ts

    def process(self, record: Record) -> Optional[Record]:
        """Return the record to write, or None when it is suppressed."""
        self._check_order(record)
        kind = record.kind
        if kind is None:
            self.passthrough += 1
            return record
        if kind is ReadingKind.SWITCH_STATE:
            if self.verdict.remove_switch_state_readings:
                self._state(kind).skipped += 1
                return None
            return record

        try:
            reading = decode_payload(kind, record.envelope.serialized_data)
        except PayloadDecodeError as exc:
            self.undecodable += 1
            _log.debug("Passing through undecodable %s payload: %s", kind.value, exc)
            return record

        if kind in _ACCELERATION_KINDS:
            assert isinstance(reading, Vector3Reading)
            if not (self.verdict.is_before_si_patch or self.verdict.is_from_broken_patch):
                return record
            return self._rewrite(record, kind, correct_acceleration(reading, self.verdict))

        if kind in _AXIS_DEDUP_KINDS:
            assert isinstance(reading, Vector3Reading)
            if not self._keep_vector(kind, reading):
                return None
            if kind is ReadingKind.MAGNETIC_FIELD and (
                self.verdict.is_before_si_patch or self.verdict.is_from_broken_patch
            ):
                return self._rewrite(record, kind, correct_magnetic_field(reading, self.verdict))
            return record

        if kind in _SCALAR_DEDUP_KINDS:
            assert isinstance(reading, ScalarReading)
            return record if self._keep_scalar(kind, reading.value) else None

        self.passthrough += 1
        return record

    def _keep_vector(self, kind: ReadingKind, reading: Vector3Reading) -> bool:
        # Any single axis repeating bit for bit is enough to drop the sample.
        state = self._state(kind)
        values = reading.values()
        if state.has_previous and any(same_bits(cur, prev) for cur, prev in zip(values, state.last)):
            state.skipped += 1
            return False
        state.remember(values)
        return True

    def _keep_scalar(self, kind: ReadingKind, value: float) -> bool:
        state = self._state(kind)
        if kind is ReadingKind.GEODETIC_HEADING and abs(value) < config.MIN_VALID_HEADING:
            state.skipped += 1
            return False
        drop = state.has_previous and is_sudden_drop_or_repeat(state.last[0], value)
        state.remember((value,))
        if drop:
            state.skipped += 1
        return not drop

    def _rewrite(self, record: Record, kind: ReadingKind, reading: Reading) -> Record:
        if self.verbose:
            _log.debug("%s\n%s", kind.value, describe(kind, reading))
        payload = encode_payload(reading, record.envelope.serialized_data)
        envelope = replace(record.envelope, serialized_data=payload)
        return Record(kind, envelope, raw=None)


def correct_records(
    verdict: ClassificationVerdict,
    records: Iterable[Record],
    *,
    engine: Optional[CorrectionEngine] = None,
) -> Iterator[Record]:
    """Yield the records that survive correction, in input order."""
    engine = engine or CorrectionEngine(verdict)
    for record in records:
        kept = engine.process(record)
        if kept is not None:
            yield kept
