"""In-memory write buffer keyed by internal keys."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

from gneiss.keys import (
    MAX_SEQUENCE,
    TRAILER_SIZE,
    InternalKey,
    ValueType,
    encode_internal_key,
)
from gneiss.skiplist import SkipList


class LookupStatus(Enum):
    """Outcome of a point lookup."""

    FOUND = "found"
    DELETED = "deleted"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LookupResult:
    """A lookup outcome, carrying the value when one was found."""

    status: LookupStatus
    value: Optional[bytes] = None


_NOT_FOUND = LookupResult(LookupStatus.NOT_FOUND)
_DELETED = LookupResult(LookupStatus.DELETED)


def _seek_key(user_key: bytes, sequence: int) -> bytes:
    return bytes(user_key) + (MAX_SEQUENCE ^ sequence).to_bytes(8, "big")


class Memtable:
    """A sorted, versioned buffer of puts and deletions."""

    def __init__(self, max_size: int) -> None:
        self._skiplist = SkipList()
        self._size = 0
        self._max_size = max_size
        self._lock = threading.Lock()

    def _insert(self, user_key: bytes, sequence: int, value: Optional[bytes]) -> int:
        value_type = ValueType.DELETION if value is None else ValueType.VALUE
        encoded = encode_internal_key(user_key, sequence, value_type)
        return self._skiplist.insert(encoded, b"" if value is None else value)

    def put(self, user_key: bytes, sequence: int, value: bytes) -> None:
        self.add_size(self._insert(user_key, sequence, bytes(value)))

    def delete(self, user_key: bytes, sequence: int) -> None:
        self.add_size(self._insert(user_key, sequence, None))

    def put_batch(
        self, ops: Iterable[tuple[bytes, int, Optional[bytes]]]
    ) -> None:
        """Apply (user_key, sequence, value) triples; a None value deletes."""
        total = sum(
            self._insert(user_key, sequence, None if value is None else bytes(value))
            for user_key, sequence, value in ops
        )
        if total:
            self.add_size(total)

    def add_size(self, size: int) -> None:
        with self._lock:
            self._size += size

    def get(self, user_key: bytes, sequence: int) -> LookupResult:
        """Find the newest entry for a key visible at the given sequence."""
        user_key = bytes(user_key)
        for encoded, value in self._skiplist.range_from(_seek_key(user_key, sequence)):
            try:
                key = InternalKey.decode(encoded)
            except ValueError:
                continue
            if key.user_key != user_key:
                break
            if key.sequence <= sequence:
                if key.value_type is ValueType.VALUE:
                    return LookupResult(LookupStatus.FOUND, value)
                return _DELETED
        return _NOT_FOUND

    def approximate_size(self) -> int:
        with self._lock:
            return self._size

    def is_full(self) -> bool:
        return self.approximate_size() >= self._max_size

    def scan_range(
        self, start: bytes, end: bytes, sequence: int, limit: int
    ) -> list[tuple[bytes, bytes]]:
        """Return live (key, value) pairs with start <= key < end, in order.

        Only the newest version visible at ``sequence`` is considered for each
        key; keys whose visible version is a deletion are left out.
        """
        start = bytes(start)
        end = bytes(end)
        results: list[tuple[bytes, bytes]] = []
        if limit <= 0:
            return results
        last_user_key: Optional[bytes] = None
        for encoded, value in self._skiplist.range_from(start):
            if len(encoded) < TRAILER_SIZE:
                continue
            split = len(encoded) - TRAILER_SIZE
            user_key = encoded[:split]
            if user_key >= end:
                break
            if user_key < start or user_key == last_user_key:
                continue
            key_sequence = MAX_SEQUENCE ^ int.from_bytes(encoded[split : split + 8], "big")
            if key_sequence > sequence:
                continue
            last_user_key = user_key
            if encoded[-1] == ValueType.VALUE:
                results.append((user_key, value))
                if len(results) >= limit:
                    break
        return results

    def __iter__(self) -> Iterator[tuple[InternalKey, bytes]]:
        entries = []
        for encoded, value in self._skiplist:
            try:
                entries.append((InternalKey.decode(encoded), value))
            except ValueError:
                continue
        return iter(entries)

    def __len__(self) -> int:
        return len(self._skiplist)


class ImmutableMemtable:
    """A read-only view of a memtable that no longer takes writes."""

    def __init__(self, memtable: Memtable) -> None:
        self._inner = memtable

    def get(self, key: bytes, sequence: int) -> LookupResult:
        return self._inner.get(key, sequence)

    def inner(self) -> Memtable:
        return self._inner