"""Batch runner that maps an input file or tree onto an output location."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

from peak_reencode import config
from peak_reencode.errors import PathCollisionError, RecordingOpenError
from peak_reencode.io.messages import MessageSet
from peak_reencode.pipeline import ACTION_COPIED, ACTION_REENCODED, reencode_file
from peak_reencode.util.logging import get_logger

_log = get_logger(__name__)


@dataclass
class BatchSummary:
    processed: int = 0
    copied: int = 0
    reencoded: int = 0
    skipped: int = 0


class BatchRunner:
    """Bind input/output paths to the per-file pipeline.

    Files are handled one at a time in sorted path order. The first failure
    propagates and ends the run; outputs that already exist are skipped, so
    re-running after a failure resumes where it stopped.
    """

    def __init__(
        self,
        in_path: str,
        out_path: str,
        *,
        message_set: Optional[MessageSet] = None,
        extension: str = config.RECORDING_EXTENSION,
        verbose: bool = False,
    ):
        self.in_path = Path(os.path.abspath(os.path.expanduser(in_path)))
        self.out_path = Path(os.path.abspath(os.path.expanduser(out_path)))
        self.message_set = message_set or MessageSet()
        self.extension = extension if extension.startswith(".") else f".{extension}"
        self.verbose = verbose

    def _check_paths(self) -> None:
        if not self.in_path.exists():
            raise RecordingOpenError(str(self.in_path), "no such file or directory")
        if self.in_path.resolve() == self.out_path.resolve():
            raise PathCollisionError(str(self.in_path))

    def _under_output(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self.out_path.resolve())
        except ValueError:
            return False
        return True

    def plan(self) -> Iterator[Tuple[Path, Path]]:
        """Yield ``(source, destination)`` pairs for every recording to handle."""
        if self.in_path.is_file():
            if self.out_path.is_dir():
                yield self.in_path, self.out_path / self.in_path.name
            else:
                yield self.in_path, self.out_path
            return
        for src in sorted(self.in_path.rglob(f"*{self.extension}")):
            if not src.is_file() or self._under_output(src):
                continue
            yield src, self.out_path / src.relative_to(self.in_path)

    def run(self) -> BatchSummary:
        self._check_paths()
        summary = BatchSummary()
        for src, dst in self.plan():
            # --out naming the folder that holds --in maps the file onto itself
            if dst.resolve() == src.resolve():
                raise PathCollisionError(str(src))
            if dst.exists():
                _log.debug("Skipping %s, output %s exists", src, dst)
                summary.skipped += 1
                continue
            report = reencode_file(src, dst, self.message_set, verbose=self.verbose)
            summary.processed += 1
            if report.action == ACTION_COPIED:
                summary.copied += 1
            elif report.action == ACTION_REENCODED:
                summary.reencoded += 1
        _log.info(
            "Done: %d processed (%d copied, %d reencoded), %d skipped",
            summary.processed,
            summary.copied,
            summary.reencoded,
            summary.skipped,
        )
        return summary


def run_batch(args) -> BatchSummary:
    message_set = MessageSet.from_json(args.message_set) if getattr(args, "message_set", None) else None
    runner = BatchRunner(
        args.in_path,
        args.out_path,
        message_set=message_set,
        extension=args.extension,
        verbose=args.verbose,
    )
    return runner.run()
