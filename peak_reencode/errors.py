"""Exception types raised by the reencode pipeline.

Every failure is treated as non-transient: nothing here is retried. The CLI
catches ``ReencodeError`` (and ``OSError``) once at the top level and turns it
into ``ExitCode.FAILURE``.
"""

from __future__ import annotations


class ReencodeError(Exception):
    """Base class for all pipeline failures."""


class RecordingOpenError(ReencodeError):
    """An input or output recording could not be opened."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to open {path}: {reason}")
        self.path = path
        self.reason = reason


class PathCollisionError(ReencodeError):
    """Input and output resolve to the same location."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Input and output resolve to the same location: {path}")
        self.path = path


class RecordingFormatError(ReencodeError):
    """The container framing of a recording is corrupt."""


class OrderingError(ReencodeError):
    """Records reached the correction engine out of timestamp order."""


class PayloadDecodeError(ReencodeError):
    """A payload could not be decoded as its declared kind.

    Never fatal: records that fail to decode are passed through unchanged.
    """
