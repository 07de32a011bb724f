"""Per-file pipeline: classify, then copy or correct-and-write."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from peak_reencode.correction.classifier import classify_file
from peak_reencode.correction.engine import CorrectionEngine, correct_records
from peak_reencode.correction.types import ClassificationVerdict
from peak_reencode.io.messages import MessageSet
from peak_reencode.io.recording import PathLike, RecordingWriter, copy_recording, read_ordered
from peak_reencode.util.logging import get_logger

_log = get_logger(__name__)

ACTION_COPIED = "copied"
ACTION_REENCODED = "reencoded"
ACTION_SKIPPED = "skipped"


@dataclass
class FileReport:
    source: Path
    destination: Path
    action: str
    verdict: Optional[ClassificationVerdict] = None
    records_read: int = 0
    records_written: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)


def reencode_file(
    src: PathLike,
    dst: PathLike,
    message_set: Optional[MessageSet] = None,
    *,
    verbose: bool = False,
) -> FileReport:
    """Classify ``src`` and write its corrected form to ``dst``.

    A file with no defect is copied byte-for-byte. If anything fails after
    ``dst`` was created, the partial output is removed before the error
    propagates so a re-run does not skip it as finished.
    """
    src_path = Path(src)
    dst_path = Path(dst)
    message_set = message_set or MessageSet()

    verdict = classify_file(src_path, message_set)
    report = FileReport(source=src_path, destination=dst_path, action=ACTION_COPIED, verdict=verdict)

    dst_path.parent.mkdir(parents=True, exist_ok=True)
    existed = dst_path.exists()
    try:
        if verdict.is_fine:
            copy_recording(src_path, dst_path)
        else:
            report.action = ACTION_REENCODED
            engine = CorrectionEngine(verdict, verbose=verbose)
            records = read_ordered(src_path, message_set)
            report.records_read = len(records)
            with RecordingWriter(dst_path) as writer:
                for kept in correct_records(verdict, records, engine=engine):
                    writer.write(kept)
                report.records_written = writer.written
            report.skipped = engine.skip_counts()
    except BaseException:
        if not existed:
            _remove_partial(dst_path)
        raise

    _log.info(
        "%s -> %s (%s)",
        src_path,
        dst_path,
        report.action,
        extra={
            "source": str(src_path),
            "destination": str(dst_path),
            "action": report.action,
            "verdict": verdict.as_dict(),
            "records_read": report.records_read,
            "records_written": report.records_written,
            "skipped": report.skipped,
        },
    )
    if report.skipped:
        _log.debug("%s: suppressed %s", src_path, report.skipped)
    return report


def _remove_partial(path: Path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        _log.warning("Could not remove partial output %s: %s", path, exc)
