from pathlib import Path
from typing import List

import pytest

from peak_reencode.batch.runner import BatchRunner
from peak_reencode.cli import main
from peak_reencode.errors import PathCollisionError, RecordingFormatError
from peak_reencode.io.envelope import Envelope, TimeStamp
from peak_reencode.io.messages import (
    MessageSet,
    ReadingKind,
    ScalarReading,
    Vector3Reading,
    decode_payload,
    encode_payload,
)
from peak_reencode.io.recording import Record, RecordingWriter, read_sequential
from peak_reencode.pipeline import ACTION_COPIED, ACTION_REENCODED, reencode_file
from peak_reencode.util.exit_codes import ExitCode

_IDS = MessageSet()


def _record(kind: ReadingKind, t: int, payload: bytes) -> Record:
    env = Envelope(data_type=_IDS.id_of(kind), serialized_data=payload, sample_time_stamp=TimeStamp(t, 0))
    return Record(kind, env)


def _write(path: Path, records: List[Record]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with RecordingWriter(path) as writer:
        for rec in records:
            writer.write(rec)
    return path


def _fine_recording(path: Path) -> Path:
    return _write(
        path,
        [
            _record(ReadingKind.ALTITUDE, 1, encode_payload(ScalarReading(12.0))),
            _record(ReadingKind.MAGNETIC_FIELD, 2, encode_payload(Vector3Reading(1.0, 2.0, 3.0))),
            _record(ReadingKind.ALTITUDE, 3, encode_payload(ScalarReading(12.0))),
        ],
    )


def _pre_si_recording(path: Path) -> Path:
    # stored out of timestamp order on purpose
    return _write(
        path,
        [
            _record(ReadingKind.ACCELERATION, 3, encode_payload(Vector3Reading(0.0, 0.0, 1030.0))),
            _record(ReadingKind.SWITCH_STATE, 2, b"\x08\x02"),
            _record(ReadingKind.ACCELERATION, 1, encode_payload(Vector3Reading(0.0, 0.0, 1030.0))),
            _record(ReadingKind.GROUND_SPEED, 4, encode_payload(ScalarReading(5.0))),
            _record(ReadingKind.ACCELERATION, 2, encode_payload(Vector3Reading(0.0, 0.0, 1030.0))),
        ],
    )


def test_fine_recording_is_copied_byte_for_byte(tmp_path) -> None:
    src = _fine_recording(tmp_path / "in.rec")
    report = reencode_file(src, tmp_path / "out" / "in.rec")
    assert report.action == ACTION_COPIED
    assert report.verdict is not None and report.verdict.is_fine
    assert (tmp_path / "out" / "in.rec").read_bytes() == src.read_bytes()


def test_copied_output_is_stable_when_processed_again(tmp_path) -> None:
    src = _fine_recording(tmp_path / "in.rec")
    reencode_file(src, tmp_path / "pass1.rec")
    reencode_file(tmp_path / "pass1.rec", tmp_path / "pass2.rec")
    assert (tmp_path / "pass2.rec").read_bytes() == src.read_bytes()


def test_pre_si_recording_is_sorted_converted_and_filtered(tmp_path) -> None:
    src = _pre_si_recording(tmp_path / "in.rec")
    dst = tmp_path / "out.rec"
    report = reencode_file(src, dst)
    assert report.action == ACTION_REENCODED
    assert report.verdict is not None and report.verdict.is_before_si_patch
    assert report.records_read == 5
    assert report.records_written == 4
    assert report.skipped == {"SwitchStateReading": 1}

    out = list(read_sequential(dst))
    times = [rec.sample_time.seconds for rec in out]
    assert times == sorted(times) == [1, 2, 3, 4]
    assert all(rec.kind is not ReadingKind.SWITCH_STATE for rec in out)
    first = out[0]
    assert first.kind is ReadingKind.ACCELERATION
    z = decode_payload(ReadingKind.ACCELERATION, first.envelope.serialized_data).values()[2]
    assert z == pytest.approx(1030.0 * 9.80665 / 1000.0, rel=1e-6)


def test_batch_mirrors_tree_and_skips_existing_outputs(tmp_path) -> None:
    _fine_recording(tmp_path / "in" / "a.rec")
    _pre_si_recording(tmp_path / "in" / "day1" / "b.rec")
    (tmp_path / "in" / "notes.txt").write_text("not a recording", encoding="utf-8")

    first = BatchRunner(str(tmp_path / "in"), str(tmp_path / "out")).run()
    assert (first.processed, first.copied, first.reencoded, first.skipped) == (2, 1, 1, 0)
    assert (tmp_path / "out" / "day1" / "b.rec").is_file()
    assert not (tmp_path / "out" / "notes.txt").exists()

    before = (tmp_path / "out" / "day1" / "b.rec").stat().st_mtime_ns
    second = BatchRunner(str(tmp_path / "in"), str(tmp_path / "out")).run()
    assert (second.processed, second.skipped) == (0, 2)
    assert (tmp_path / "out" / "day1" / "b.rec").stat().st_mtime_ns == before


def test_batch_ignores_output_nested_in_input(tmp_path) -> None:
    _fine_recording(tmp_path / "in" / "a.rec")
    BatchRunner(str(tmp_path / "in"), str(tmp_path / "in" / "fixed")).run()
    summary = BatchRunner(str(tmp_path / "in"), str(tmp_path / "in" / "fixed")).run()
    assert summary.skipped == 1
    assert not (tmp_path / "in" / "fixed" / "fixed").exists()


def test_batch_aborts_on_first_corrupt_file(tmp_path) -> None:
    _fine_recording(tmp_path / "in" / "a.rec")
    (tmp_path / "in" / "b.rec").write_bytes(b"\x00\x01\x02\x03\x04\x05")
    _fine_recording(tmp_path / "in" / "c.rec")
    with pytest.raises(RecordingFormatError):
        BatchRunner(str(tmp_path / "in"), str(tmp_path / "out")).run()
    assert (tmp_path / "out" / "a.rec").exists()
    assert not (tmp_path / "out" / "b.rec").exists()
    assert not (tmp_path / "out" / "c.rec").exists()


def test_single_file_into_existing_directory(tmp_path) -> None:
    src = _fine_recording(tmp_path / "in.rec")
    (tmp_path / "out").mkdir()
    summary = BatchRunner(str(src), str(tmp_path / "out")).run()
    assert summary.copied == 1
    assert (tmp_path / "out" / "in.rec").read_bytes() == src.read_bytes()


def test_same_input_and_output_is_a_collision(tmp_path) -> None:
    src = _fine_recording(tmp_path / "in.rec")
    with pytest.raises(PathCollisionError):
        BatchRunner(str(src), str(tmp_path / "." / "in.rec")).run()


def test_output_folder_holding_the_input_is_a_collision(tmp_path) -> None:
    src = _pre_si_recording(tmp_path / "in.rec")
    original = src.read_bytes()
    with pytest.raises(PathCollisionError):
        BatchRunner(str(src), str(tmp_path)).run()
    assert main([f"--in={src}", f"--out={tmp_path}"]) == ExitCode.FAILURE
    assert src.read_bytes() == original


def test_list_message_set_reports_bad_override_file(tmp_path, capsys) -> None:
    bad = tmp_path / "ids.json"
    bad.write_text('{"NoSuchReading": 1}', encoding="utf-8")
    assert main(["--list-message-set", f"--message-set={bad}"]) == ExitCode.FAILURE
    assert main(["--list-message-set", f"--message-set={tmp_path / 'missing.json'}"]) == ExitCode.FAILURE
    assert main(["--list-message-set"]) == ExitCode.SUCCESS
    assert '"AccelerationReading": 1030' in capsys.readouterr().out


def test_cli_exit_codes(tmp_path) -> None:
    src = _fine_recording(tmp_path / "in.rec")
    assert main([]) == ExitCode.USAGE
    assert main([f"--in={src}"]) == ExitCode.USAGE
    assert main([f"--in={src}", f"--out={src}"]) == ExitCode.FAILURE
    assert main([f"--in={tmp_path / 'missing.rec'}", f"--out={tmp_path / 'o.rec'}"]) == ExitCode.FAILURE
    assert main([f"--in={src}", f"--out={tmp_path / 'o.rec'}"]) == ExitCode.SUCCESS
    assert (tmp_path / "o.rec").read_bytes() == src.read_bytes()
