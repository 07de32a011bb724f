"""Container framing and envelope encode/decode.

A recording is a plain concatenation of frames::

    0x0D 0xA4 <payload length: 3 bytes little-endian> <encoded envelope>

The encoded envelope carries the data type ID, the serialized reading and
three timestamps (sent, received, sample).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Tuple

from peak_reencode.errors import PayloadDecodeError, RecordingFormatError
from peak_reencode.io.proto import (
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
    ProtoWriter,
    iter_fields,
    zigzag_decode,
)
from peak_reencode.util.logging import get_logger

FRAME_MAGIC = b"\x0d\xa4"
FRAME_HEADER_SIZE = 5
MAX_FRAME_LENGTH = 0xFFFFFF

_log = get_logger(__name__)


@dataclass(frozen=True, order=True)
class TimeStamp:
    seconds: int = 0
    microseconds: int = 0


@dataclass
class Envelope:
    data_type: int
    serialized_data: bytes = b""
    sent: TimeStamp = field(default_factory=TimeStamp)
    received: TimeStamp = field(default_factory=TimeStamp)
    sample_time_stamp: TimeStamp = field(default_factory=TimeStamp)
    sender_stamp: int = 0


def _encode_timestamp(ts: TimeStamp) -> bytes:
    return ProtoWriter().add_signed(1, ts.seconds).add_signed(2, ts.microseconds).encoded()


def _decode_timestamp(data: bytes) -> TimeStamp:
    seconds = 0
    micros = 0
    for field_id, wire_type, value in iter_fields(data):
        if wire_type != WIRE_VARINT:
            continue
        if field_id == 1:
            seconds = zigzag_decode(int(value))
        elif field_id == 2:
            micros = zigzag_decode(int(value))
    return TimeStamp(seconds, micros)


def encode_envelope(env: Envelope) -> bytes:
    return (
        ProtoWriter()
        .add_signed(1, env.data_type)
        .add_bytes(2, env.serialized_data)
        .add_bytes(3, _encode_timestamp(env.sent))
        .add_bytes(4, _encode_timestamp(env.received))
        .add_bytes(5, _encode_timestamp(env.sample_time_stamp))
        .add_unsigned(6, env.sender_stamp)
        .encoded()
    )


def decode_envelope(data: bytes) -> Envelope:
    """Decode one envelope body (without frame header).

    Unknown fields are ignored. Corrupt bodies raise ``RecordingFormatError``:
    without a decodable envelope there is no record to pass through.
    """
    env = Envelope(data_type=0)
    try:
        for field_id, wire_type, value in iter_fields(data):
            if field_id == 1 and wire_type == WIRE_VARINT:
                env.data_type = zigzag_decode(int(value))
            elif field_id == 6 and wire_type == WIRE_VARINT:
                env.sender_stamp = int(value)
            elif wire_type == WIRE_LENGTH_DELIMITED:
                assert isinstance(value, bytes)
                if field_id == 2:
                    env.serialized_data = value
                elif field_id == 3:
                    env.sent = _decode_timestamp(value)
                elif field_id == 4:
                    env.received = _decode_timestamp(value)
                elif field_id == 5:
                    env.sample_time_stamp = _decode_timestamp(value)
    except PayloadDecodeError as exc:
        raise RecordingFormatError(f"corrupt envelope: {exc}") from exc
    return env


def frame(body: bytes) -> bytes:
    """Prefix an encoded envelope with the container header."""
    length = len(body)
    if length > MAX_FRAME_LENGTH:
        raise ValueError(f"envelope of {length} bytes exceeds frame limit")
    return FRAME_MAGIC + length.to_bytes(3, "little") + body


def serialize(env: Envelope) -> bytes:
    return frame(encode_envelope(env))


def iter_frames(stream: BinaryIO, *, source: str = "<stream>") -> Iterator[Tuple[bytes, Envelope]]:
    """Yield ``(raw_frame, envelope)`` pairs until end of stream.

    A frame cut short at the end of the stream (recorder interrupted
    mid-write) ends iteration with a warning. A bad header anywhere raises
    ``RecordingFormatError``.
    """
    offset = 0
    while True:
        header = stream.read(FRAME_HEADER_SIZE)
        if not header:
            return
        if len(header) < FRAME_HEADER_SIZE:
            _log.warning("%s: truncated frame header at byte %d, ignoring tail", source, offset)
            return
        if header[:2] != FRAME_MAGIC:
            raise RecordingFormatError(f"{source}: bad frame header {header[:2].hex()} at byte {offset}")
        length = int.from_bytes(header[2:5], "little")
        body = stream.read(length)
        if len(body) < length:
            _log.warning(
                "%s: truncated frame at byte %d (%d of %d bytes), ignoring tail", source, offset, len(body), length
            )
            return
        yield header + body, decode_envelope(body)
        offset += FRAME_HEADER_SIZE + length
