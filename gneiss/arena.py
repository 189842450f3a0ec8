"""A skip list whose keys, values and nodes draw on a fixed-size arena."""

from __future__ import annotations

import threading
from typing import Iterator, Optional

_MAX_HEIGHT = 12
_BRANCHING_FACTOR = 4
_MASK32 = 0xFFFFFFFF
# Bytes charged to the arena for every node: four 32-bit fields, a height
# byte with padding, and one 8-byte link per possible level.
_NODE_SIZE = 24 + 8 * _MAX_HEIGHT
_NODE_ALIGN = 8


class _Node:
    __slots__ = ("key", "value", "next")

    def __init__(self, key: bytes, value: bytes, height: int) -> None:
        self.key = key
        self.value = value
        self.next: list[Optional[_Node]] = [None] * height


class ArenaSkipList:
    """A sorted multimap with a hard memory budget.

    Equal keys keep the newest insertion first. Once the arena is exhausted,
    further inserts are refused.
    """

    def __init__(self, arena_size: int) -> None:
        if arena_size < 0:
            raise ValueError(f"arena size must not be negative: {arena_size}")
        self._capacity = arena_size
        self._used = 0
        self._head = _Node(b"", b"", _MAX_HEIGHT)
        self._height = 1
        self._len = 0
        self._rng = 0xDEADBEEF
        self._lock = threading.Lock()

    def _allocate(self, size: int, align: int) -> bool:
        aligned = (self._used + align - 1) & ~(align - 1)
        end = aligned + size
        if end > self._capacity:
            return False
        self._used = end
        return True

    def _random_height(self) -> int:
        height = 1
        while True:
            rng = self._rng
            rng ^= (rng << 13) & _MASK32
            rng ^= rng >> 17
            rng ^= (rng << 5) & _MASK32
            self._rng = rng
            if rng % _BRANCHING_FACTOR != 0 or height >= _MAX_HEIGHT:
                break
            height += 1
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

    def insert(self, key: bytes, value: bytes) -> Optional[int]:
        """Insert an entry.

        Returns the entry's size (key plus value), or None when the arena has
        no room left for it.
        """
        key = bytes(key)
        value = bytes(value)
        with self._lock:
            if not self._allocate(len(key), 1):
                return None
            if not self._allocate(len(value), 1):
                return None
            height = self._random_height()
            if not self._allocate(_NODE_SIZE, _NODE_ALIGN):
                return None

            node = _Node(key, value, height)
            preds = self._predecessors(key)
            for level in range(height):
                node.next[level] = preds[level].next[level]
                preds[level].next[level] = node
            self._height = max(self._height, height)
            self._len += 1
        return len(key) + len(value)

    @staticmethod
    def _walk(node: Optional[_Node]) -> Iterator[tuple[bytes, bytes]]:
        while node is not None:
            yield node.key, node.value
            node = node.next[0]

    def range_from(self, start: bytes) -> Iterator[tuple[bytes, bytes]]:
        """Yield entries in order, starting at the first key >= start."""
        with self._lock:
            first = self._predecessors(bytes(start))[0].next[0]
        return self._walk(first)

    def __iter__(self) -> Iterator[tuple[bytes, bytes]]:
        return self._walk(self._head.next[0])

    def __len__(self) -> int:
        return self._len

    def memory_usage(self) -> int:
        """Bytes of the arena handed out so far."""
        return self._used