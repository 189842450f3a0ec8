"""Write batches: a sequence of puts and deletions applied together."""

from __future__ import annotations

import struct
from typing import Union

BATCH_TYPE_PUT = 1
BATCH_TYPE_DELETE = 2

_LEN = struct.Struct("<I")

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode()
    return bytes(data)


class WriteBatch:
    """Collects operations in their serialised form.

    A put is ``0x01, u32 key length, key, u32 value length, value`` and a
    deletion ``0x02, u32 key length, key``, lengths little-endian.
    """

    def __init__(self) -> None:
        self._rep = bytearray()
        self._count = 0

    def put(self, key: BytesLike, value: BytesLike) -> None:
        key = _as_bytes(key)
        value = _as_bytes(value)
        self._rep.append(BATCH_TYPE_PUT)
        self._rep += _LEN.pack(len(key))
        self._rep += key
        self._rep += _LEN.pack(len(value))
        self._rep += value
        self._count += 1

    def delete(self, key: BytesLike) -> None:
        key = _as_bytes(key)
        self._rep.append(BATCH_TYPE_DELETE)
        self._rep += _LEN.pack(len(key))
        self._rep += key
        self._count += 1

    def __len__(self) -> int:
        return self._count

    def is_empty(self) -> bool:
        return self._count == 0

    def to_bytes(self) -> bytes:
        return bytes(self._rep)