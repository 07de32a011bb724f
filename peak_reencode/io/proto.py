"""Field-level wire codec shared by envelopes and reading payloads.

Every field is written as ``key = field_id << 3 | wire_type`` followed by the
value. Signed integers are ZigZag mapped before varint encoding, floats are
four little-endian bytes and doubles eight.
"""

from __future__ import annotations

import struct
from typing import Iterator, List, Tuple, Union

from peak_reencode.errors import PayloadDecodeError

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5

FieldValue = Union[int, bytes]

_FLOAT = struct.Struct("<f")


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint value must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, pos: int) -> Tuple[int, int]:
    """Return ``(value, next_pos)`` for the varint starting at ``pos``."""
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise PayloadDecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift >= 64:
            raise PayloadDecodeError("varint longer than 64 bits")


def zigzag_encode(value: int) -> int:
    return (value << 1) ^ (value >> 63)


def zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


def unpack_float(raw: int) -> float:
    return _FLOAT.unpack(raw.to_bytes(4, "little"))[0]


class ProtoWriter:
    """Append-only field encoder."""

    def __init__(self) -> None:
        self._parts: List[bytes] = []

    def _key(self, field_id: int, wire_type: int) -> None:
        self._parts.append(encode_varint((field_id << 3) | wire_type))

    def add_float(self, field_id: int, value: float) -> "ProtoWriter":
        self._key(field_id, WIRE_FIXED32)
        self._parts.append(_FLOAT.pack(value))
        return self

    def add_signed(self, field_id: int, value: int) -> "ProtoWriter":
        self._key(field_id, WIRE_VARINT)
        self._parts.append(encode_varint(zigzag_encode(int(value))))
        return self

    def add_unsigned(self, field_id: int, value: int) -> "ProtoWriter":
        self._key(field_id, WIRE_VARINT)
        self._parts.append(encode_varint(int(value)))
        return self

    def add_bytes(self, field_id: int, value: bytes) -> "ProtoWriter":
        self._key(field_id, WIRE_LENGTH_DELIMITED)
        self._parts.append(encode_varint(len(value)))
        self._parts.append(bytes(value))
        return self

    def add_field(self, field_id: int, wire_type: int, value: FieldValue) -> "ProtoWriter":
        """Write back a field exactly as ``iter_fields`` returned it."""
        if wire_type == WIRE_VARINT:
            return self.add_unsigned(field_id, int(value))
        if wire_type == WIRE_LENGTH_DELIMITED:
            return self.add_bytes(field_id, bytes(value))
        if wire_type == WIRE_FIXED32:
            width = 4
        elif wire_type == WIRE_FIXED64:
            width = 8
        else:
            raise ValueError(f"unsupported wire type {wire_type}")
        self._key(field_id, wire_type)
        self._parts.append(int(value).to_bytes(width, "little"))
        return self

    def encoded(self) -> bytes:
        return b"".join(self._parts)


def iter_fields(data: bytes) -> Iterator[Tuple[int, int, FieldValue]]:
    """Yield ``(field_id, wire_type, value)`` for every field in ``data``.

    Fixed-width values are returned as raw unsigned integers; use
    ``unpack_float`` to reinterpret four-byte values.
    """
    pos = 0
    end = len(data)
    while pos < end:
        key, pos = decode_varint(data, pos)
        field_id = key >> 3
        wire_type = key & 0x07
        if wire_type == WIRE_VARINT:
            value, pos = decode_varint(data, pos)
            yield field_id, wire_type, value
        elif wire_type == WIRE_FIXED32:
            if pos + 4 > end:
                raise PayloadDecodeError(f"truncated 4-byte field {field_id}")
            yield field_id, wire_type, int.from_bytes(data[pos : pos + 4], "little")
            pos += 4
        elif wire_type == WIRE_FIXED64:
            if pos + 8 > end:
                raise PayloadDecodeError(f"truncated 8-byte field {field_id}")
            yield field_id, wire_type, int.from_bytes(data[pos : pos + 8], "little")
            pos += 8
        elif wire_type == WIRE_LENGTH_DELIMITED:
            length, pos = decode_varint(data, pos)
            if pos + length > end:
                raise PayloadDecodeError(f"field {field_id} length {length} past end of payload")
            yield field_id, wire_type, bytes(data[pos : pos + length])
            pos += length
        else:
            raise PayloadDecodeError(f"unsupported wire type {wire_type} for field {field_id}")
