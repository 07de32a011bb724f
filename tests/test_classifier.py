from typing import List

from peak_reencode.correction.classifier import ClassificationAccumulator, accumulate, classify_records, finalize
from peak_reencode.io.envelope import Envelope, TimeStamp
from peak_reencode.io.messages import MessageSet, ReadingKind, ScalarReading, Vector3Reading, encode_payload
from peak_reencode.io.recording import Record

_IDS = MessageSet()


def _vector(kind: ReadingKind, t: int, x: float, y: float, z: float) -> Record:
    env = Envelope(
        data_type=_IDS.id_of(kind),
        serialized_data=encode_payload(Vector3Reading(x, y, z)),
        sample_time_stamp=TimeStamp(t, 0),
    )
    return Record(kind, env)


def _acc_series(values: List[float]) -> List[Record]:
    return [_vector(ReadingKind.ACCELERATION, t, 0.0, 0.0, z) for t, z in enumerate(values)]


def test_no_acceleration_records_is_fine_without_dividing_by_zero() -> None:
    altitude = Record(
        ReadingKind.ALTITUDE,
        Envelope(data_type=_IDS.id_of(ReadingKind.ALTITUDE), serialized_data=encode_payload(ScalarReading(3.0))),
    )
    verdict, acc = classify_records([altitude])
    assert acc.count == 0
    assert acc.mean_magnitude is None
    assert verdict.is_fine
    assert not verdict.remove_switch_state_readings


def test_mean_of_1030_milli_g_is_before_si_patch() -> None:
    verdict, acc = classify_records(_acc_series([1029.0, 1030.0, 1031.0, 1030.0]))
    assert acc.mean_magnitude == 1030.0
    assert verdict.is_before_si_patch
    assert not verdict.is_from_broken_patch
    assert verdict.remove_switch_state_readings
    assert not verdict.is_fine


def test_mean_bounds_are_exclusive() -> None:
    verdict, _ = classify_records(_acc_series([1000.0, 1000.0]))
    assert not verdict.is_before_si_patch
    verdict, _ = classify_records(_acc_series([1060.0, 1060.0]))
    assert not verdict.is_before_si_patch


def test_si_gravity_only_removes_switch_state() -> None:
    verdict, _ = classify_records(_acc_series([9.8, 9.81, 9.79]))
    assert not verdict.is_before_si_patch
    assert not verdict.is_from_broken_patch
    assert verdict.remove_switch_state_readings


def test_single_axis_jump_over_2500_marks_broken_patch() -> None:
    records = [
        _vector(ReadingKind.ACCELERATION, 0, 10.0, 0.0, 1030.0),
        _vector(ReadingKind.ACCELERATION, 1, 2610.0, 0.0, 1030.0),
        _vector(ReadingKind.ACCELERATION, 2, 10.0, 0.0, 1030.0),
    ]
    verdict, acc = classify_records(records)
    assert acc.x_change_max == 2600.0
    assert verdict.is_from_broken_patch
    assert not verdict.is_before_si_patch


def test_delta_compares_against_previous_sample_not_first() -> None:
    acc = ClassificationAccumulator()
    for x in (0.0, 1500.0, 3000.0):
        acc = accumulate(acc, Vector3Reading(x, 0.0, 0.0))
    assert acc.x_change_max == 1500.0
    assert not finalize(acc).is_from_broken_patch


def test_legacy_acceleration_does_not_take_part() -> None:
    records = [_vector(ReadingKind.LEGACY_ACCELERATION, t, 0.0, 0.0, 1030.0) for t in range(3)]
    verdict, acc = classify_records(records)
    assert acc.count == 0
    assert verdict.is_fine


def test_undecodable_acceleration_still_flags_switch_state() -> None:
    env = Envelope(data_type=_IDS.id_of(ReadingKind.ACCELERATION), serialized_data=b"\x0d\x00")
    verdict, acc = classify_records([Record(ReadingKind.ACCELERATION, env)])
    assert acc.count == 0
    assert acc.undecodable == 1
    assert verdict.remove_switch_state_readings
    assert not verdict.is_before_si_patch
