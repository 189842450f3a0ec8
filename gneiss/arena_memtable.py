"""A memtable backed by a fixed-budget arena skip list."""

from __future__ import annotations

import threading
from typing import Iterator, Optional

from gneiss.arena import ArenaSkipList
from gneiss.keys import (
    MAX_SEQUENCE,
    TRAILER_SIZE,
    InternalKey,
    ValueType,
    encode_internal_key,
)
from gneiss.memtable import LookupResult, LookupStatus

# Keys longer than this are not remembered for de-duplication during scans.
_DEDUP_KEY_LIMIT = 256


def _key_sequence(encoded: bytes, split: int) -> int:
    return MAX_SEQUENCE ^ int.from_bytes(encoded[split : split + 8], "big")


class ArenaMemtable:
    """A sorted, versioned write buffer whose storage has a hard limit.

    The arena holds twice ``max_size`` bytes; writes that no longer fit are
    dropped silently and not counted towards the size.
    """

    def __init__(self, max_size: int) -> None:
        self._skiplist = ArenaSkipList(max_size * 2)
        self._size = 0
        self._max_size = max_size
        self._lock = threading.Lock()

    def _insert(self, user_key: bytes, sequence: int, value_type: ValueType, value: bytes) -> None:
        encoded = encode_internal_key(bytes(user_key), sequence, value_type)
        entry_size = self._skiplist.insert(encoded, value)
        if entry_size is not None:
            self.add_size(entry_size)

    def put(self, user_key: bytes, sequence: int, value: bytes) -> None:
        self._insert(user_key, sequence, ValueType.VALUE, bytes(value))

    def delete(self, user_key: bytes, sequence: int) -> None:
        self._insert(user_key, sequence, ValueType.DELETION, b"")

    def add_size(self, size: int) -> None:
        with self._lock:
            self._size += size

    def get(self, user_key: bytes, sequence: int) -> LookupResult:
        """Find the newest entry for a key visible at the given sequence."""
        user_key = bytes(user_key)
        seek = user_key + (MAX_SEQUENCE ^ sequence).to_bytes(8, "big")
        for encoded, value in self._skiplist.range_from(seek):
            if len(encoded) < TRAILER_SIZE:
                continue
            split = len(encoded) - TRAILER_SIZE
            if encoded[:split] != user_key:
                break
            if _key_sequence(encoded, split) <= sequence:
                if encoded[split + 8] == ValueType.VALUE:
                    return LookupResult(LookupStatus.FOUND, value)
                return LookupResult(LookupStatus.DELETED)
        return LookupResult(LookupStatus.NOT_FOUND)

    def approximate_size(self) -> int:
        with self._lock:
            return self._size

    def is_full(self) -> bool:
        return self.approximate_size() >= self._max_size

    def scan_range(
        self, start: bytes, end: bytes, sequence: int, limit: int
    ) -> list[tuple[bytes, bytes]]:
        """Return live (key, value) pairs with key < end, from start onwards.

        For each key only the newest version visible at ``sequence`` counts;
        keys whose visible version is a deletion are left out.
        """
        end = bytes(end)
        results: list[tuple[bytes, bytes]] = []
        if limit <= 0:
            return results
        last_user_key: Optional[bytes] = None
        for encoded, value in self._skiplist.range_from(bytes(start)):
            if len(encoded) < TRAILER_SIZE:
                continue
            split = len(encoded) - TRAILER_SIZE
            user_key = encoded[:split]
            if user_key >= end:
                break
            if last_user_key and last_user_key == user_key:
                continue
            if _key_sequence(encoded, split) > sequence:
                continue
            last_user_key = user_key if len(user_key) <= _DEDUP_KEY_LIMIT else None
            if encoded[-1] == ValueType.VALUE:
                results.append((user_key, value))
                if len(results) >= limit:
                    break
        return results

    def __iter__(self) -> Iterator[tuple[InternalKey, bytes]]:
        for encoded, value in self._skiplist:
            try:
                key = InternalKey.decode(encoded)
            except ValueError:
                continue
            yield key, value

    def __len__(self) -> int:
        return len(self._skiplist)