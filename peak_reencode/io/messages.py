"""Reading kinds, message-set IDs and payload dataclasses."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from peak_reencode.errors import PayloadDecodeError
from peak_reencode.io.proto import WIRE_FIXED32, ProtoWriter, iter_fields, unpack_float


class ReadingKind(enum.Enum):
    LEGACY_ACCELERATION = "LegacyAcceleration"
    ACCELERATION = "AccelerationReading"
    MAGNETIC_FIELD = "MagneticFieldReading"
    ANGULAR_VELOCITY = "AngularVelocityReading"
    ALTITUDE = "AltitudeReading"
    GROUND_SPEED = "GroundSpeedReading"
    GEODETIC_HEADING = "GeodeticHeadingReading"
    SWITCH_STATE = "SwitchStateReading"


# Field names as they appear in the message definitions; used for verbose dumps.
FIELD_NAMES: Dict[ReadingKind, Tuple[str, ...]] = {
    ReadingKind.LEGACY_ACCELERATION: ("accelerationX", "accelerationY", "accelerationZ"),
    ReadingKind.ACCELERATION: ("accelerationX", "accelerationY", "accelerationZ"),
    ReadingKind.MAGNETIC_FIELD: ("magneticFieldX", "magneticFieldY", "magneticFieldZ"),
    ReadingKind.ANGULAR_VELOCITY: ("angularVelocityX", "angularVelocityY", "angularVelocityZ"),
    ReadingKind.ALTITUDE: ("altitude",),
    ReadingKind.GROUND_SPEED: ("groundSpeed",),
    ReadingKind.GEODETIC_HEADING: ("northHeading",),
}


@dataclass(frozen=True)
class Vector3Reading:
    x: float
    y: float
    z: float

    def values(self) -> Tuple[float, ...]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class ScalarReading:
    value: float

    def values(self) -> Tuple[float, ...]:
        return (self.value,)


Reading = Union[Vector3Reading, ScalarReading]


def _default_ids() -> Dict[ReadingKind, int]:
    return {
        ReadingKind.ACCELERATION: 1030,
        ReadingKind.ANGULAR_VELOCITY: 1031,
        ReadingKind.MAGNETIC_FIELD: 1032,
        ReadingKind.ALTITUDE: 1033,
        ReadingKind.SWITCH_STATE: 1040,
        ReadingKind.GROUND_SPEED: 1046,
        ReadingKind.GEODETIC_HEADING: 1051,
        ReadingKind.LEGACY_ACCELERATION: 1101,
    }


@dataclass
class MessageSet:
    """Bidirectional mapping between envelope data-type IDs and reading kinds."""

    ids: Dict[ReadingKind, int] = field(default_factory=_default_ids)

    def __post_init__(self) -> None:
        self._by_id: Dict[int, ReadingKind] = {}
        for kind, data_type in self.ids.items():
            if data_type in self._by_id:
                raise ValueError(
                    f"data type {data_type} assigned to both {self._by_id[data_type].value} and {kind.value}"
                )
            self._by_id[data_type] = kind

    def kind_of(self, data_type: int) -> Optional[ReadingKind]:
        return self._by_id.get(data_type)

    def id_of(self, kind: ReadingKind) -> int:
        return self.ids[kind]

    @classmethod
    def from_json(cls, path: str) -> "MessageSet":
        """Load ID overrides from a JSON object keyed by message name.

        Example: ``{"LegacyAcceleration": 1101, "SwitchStateReading": 1040}``.
        Kinds not mentioned keep their default ID.
        """
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError(f"{path}: message set must be a JSON object")
        ids = _default_ids()
        for name, data_type in payload.items():
            try:
                kind = ReadingKind(name)
            except ValueError:
                raise ValueError(f"{path}: unknown message name '{name}'") from None
            ids[kind] = int(data_type)
        return cls(ids)

    def serialize(self) -> Dict[str, Any]:
        ordered = sorted(self.ids.items(), key=lambda item: item[1])
        return {kind.value: data_type for kind, data_type in ordered}


def decode_payload(kind: ReadingKind, data: bytes) -> Reading:
    """Decode the float fields of a reading payload.

    Absent fields default to 0.0. A field with the wrong wire type, or any
    malformed byte sequence, raises ``PayloadDecodeError``.
    """
    if kind not in FIELD_NAMES:
        raise PayloadDecodeError(f"{kind.value} payloads are opaque")
    width = len(FIELD_NAMES[kind])
    values = [0.0] * width
    for field_id, wire_type, raw in iter_fields(data):
        if not 1 <= field_id <= width:
            continue
        if wire_type != WIRE_FIXED32:
            raise PayloadDecodeError(f"{kind.value} field {field_id} has wire type {wire_type}, expected float")
        values[field_id - 1] = unpack_float(int(raw))
    if width == 3:
        return Vector3Reading(values[0], values[1], values[2])
    return ScalarReading(values[0])


def encode_payload(reading: Reading, original: bytes = b"") -> bytes:
    """Encode ``reading`` as float fields 1..n.

    Fields of ``original`` outside 1..n are appended unchanged, so a rewritten
    payload keeps whatever ``decode_payload`` skipped.
    """
    values = reading.values()
    writer = ProtoWriter()
    for field_id, value in enumerate(values, start=1):
        writer.add_float(field_id, value)
    for field_id, wire_type, raw in iter_fields(original):
        if not 1 <= field_id <= len(values):
            writer.add_field(field_id, wire_type, raw)
    return writer.encoded()


def describe(kind: ReadingKind, reading: Reading) -> str:
    names = FIELD_NAMES.get(kind, ())
    return "\n".join(f"{name} = {value}" for name, value in zip(names, reading.values()))
