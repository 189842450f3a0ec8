"""Internal keys: a user key tagged with a sequence number and a value type."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

MAX_SEQUENCE = (1 << 64) - 1
TRAILER_SIZE = 9

_SEQUENCE = struct.Struct(">Q")


class ValueType(IntEnum):
    """Kind of entry an internal key refers to."""

    DELETION = 0
    VALUE = 1


def encode_internal_key(user_key: bytes, sequence: int, value_type: ValueType) -> bytes:
    """Encode a user key, sequence and value type into one sortable key.

    The sequence is stored inverted and big-endian so that, for equal user
    keys, newer entries sort before older ones.
    """
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"sequence out of range: {sequence}")
    kind = ValueType(value_type)
    return (
        bytes(user_key)
        + _SEQUENCE.pack(MAX_SEQUENCE ^ sequence)
        + bytes([kind])
    )


@dataclass(frozen=True)
class InternalKey:
    """A decoded internal key."""

    user_key: bytes
    sequence: int
    value_type: ValueType

    def encode(self) -> bytes:
        return encode_internal_key(self.user_key, self.sequence, self.value_type)

    @classmethod
    def decode(cls, data: bytes) -> "InternalKey":
        """Parse an encoded internal key; raise ValueError if it is malformed."""
        data = bytes(data)
        if len(data) < TRAILER_SIZE:
            raise ValueError("internal key too short")
        split = len(data) - TRAILER_SIZE
        (inverted,) = _SEQUENCE.unpack_from(data, split)
        try:
            kind = ValueType(data[-1])
        except ValueError:
            raise ValueError(f"unknown value type {data[-1]}") from None
        return cls(data[:split], MAX_SEQUENCE ^ inverted, kind)