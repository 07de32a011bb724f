"""Record stream adapter: sequential/ordered readers, writer and byte copy."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

from peak_reencode.errors import RecordingOpenError
from peak_reencode.io.envelope import Envelope, TimeStamp, iter_frames, serialize
from peak_reencode.io.messages import MessageSet, ReadingKind

PathLike = Union[str, Path]


@dataclass
class Record:
    """One envelope plus its reading kind.

    ``raw`` holds the frame exactly as read; it is dropped whenever the
    payload is rewritten so the writer re-encodes the envelope.
    """

    kind: Optional[ReadingKind]
    envelope: Envelope
    raw: Optional[bytes] = None

    @property
    def sample_time(self) -> TimeStamp:
        return self.envelope.sample_time_stamp

    def to_bytes(self) -> bytes:
        if self.raw is not None:
            return self.raw
        return serialize(self.envelope)


def _open(path: PathLike, mode: str) -> BinaryIO:
    try:
        return open(path, mode)  # type: ignore[return-value]
    except OSError as exc:
        raise RecordingOpenError(str(path), exc.strerror or str(exc)) from exc


def read_sequential(path: PathLike, message_set: Optional[MessageSet] = None) -> Iterator[Record]:
    """Yield records in on-disk order."""
    message_set = message_set or MessageSet()
    with _open(path, "rb") as fin:
        for raw, env in iter_frames(fin, source=str(path)):
            yield Record(message_set.kind_of(env.data_type), env, raw)


def read_ordered(path: PathLike, message_set: Optional[MessageSet] = None) -> List[Record]:
    """Return all records of one file sorted by ascending sample time.

    The sort is stable: records sharing a timestamp keep their on-disk order.
    """
    records = list(read_sequential(path, message_set))
    records.sort(key=lambda rec: rec.sample_time)
    return records


class RecordingWriter:
    """Append records to a recording, flushing after every write."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._fh: Optional[BinaryIO] = None
        self.written = 0

    def open(self) -> "RecordingWriter":
        self._fh = _open(self.path, "wb")
        return self

    def write(self, record: Record) -> None:
        if self._fh is None:
            raise RuntimeError(f"{self.path} is not open for writing")
        self._fh.write(record.to_bytes())
        self._fh.flush()
        self.written += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "RecordingWriter":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()


def copy_recording(src: PathLike, dst: PathLike) -> None:
    """Duplicate a recording byte-for-byte."""
    with _open(src, "rb") as fin, _open(dst, "wb") as fout:
        shutil.copyfileobj(fin, fout)
