"""An ordered skip list mapping byte keys to byte values."""

from __future__ import annotations

import threading
from typing import Iterator, Optional

_MAX_HEIGHT = 12
_MASK64 = (1 << 64) - 1


class _Node:
    __slots__ = ("key", "value", "next")

    def __init__(self, key: bytes, value: bytes, height: int) -> None:
        self.key = key
        self.value = value
        self.next: list[Optional[_Node]] = [None] * height


class SkipList:
    """A sorted multimap; equal keys keep the newest insertion first."""

    def __init__(self) -> None:
        self._head = _Node(b"", b"", _MAX_HEIGHT)
        self._height = 1
        self._len = 0
        self._rng = 0xDEADBEEF
        self._last_insert: Optional[_Node] = None
        self._lock = threading.Lock()

    def _random_height(self) -> int:
        state = self._rng
        height = 1
        while True:
            state ^= (state << 13) & _MASK64
            state ^= state >> 17
            state ^= (state << 5) & _MASK64
            if state & 3:
                break
            height += 1
            if height >= _MAX_HEIGHT:
                break
        self._rng = state
        return height

    def _predecessors(self, key: bytes) -> list[_Node]:
        preds = [self._head] * _MAX_HEIGHT
        node = self._head
        for level in reversed(range(self._height)):
            following = node.next[level]
            while following is not None and following.key < key:
                node = following
                following = node.next[level]
            preds[level] = node
        return preds

    def _seek_ge(self, key: bytes) -> Optional[_Node]:
        return self._predecessors(key)[0].next[0]

    def insert(self, key: bytes, value: bytes) -> int:
        """Insert an entry and return its size in bytes (key plus value)."""
        key = bytes(key)
        value = bytes(value)
        with self._lock:
            height = self._random_height()
            node = _Node(key, value, height)
            hint = self._last_insert
            if (
                height == 1
                and hint is not None
                and hint.key < key
                and (hint.next[0] is None or key < hint.next[0].key)
            ):
                node.next[0] = hint.next[0]
                hint.next[0] = node
            else:
                preds = self._predecessors(key)
                for level in range(height):
                    node.next[level] = preds[level].next[level]
                    preds[level].next[level] = node
                self._height = max(self._height, height)
            self._last_insert = node
            self._len += 1
        return len(key) + len(value)

    @staticmethod
    def _walk(node: Optional[_Node]) -> Iterator[tuple[bytes, bytes]]:
        while node is not None:
            yield node.key, node.value
            node = node.next[0]

    def range_from(self, start: bytes) -> Iterator[tuple[bytes, bytes]]:
        """Yield entries in order, starting at the first key >= start."""
        return self._walk(self._seek_ge(bytes(start)))

    def __iter__(self) -> Iterator[tuple[bytes, bytes]]:
        return self._walk(self._head.next[0])

    def __len__(self) -> int:
        return self._len