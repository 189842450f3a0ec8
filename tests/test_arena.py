import threading

import pytest

from gneiss.arena import ArenaSkipList


def test_arena_skiplist_basic():
    sl = ArenaSkipList(1024 * 1024)
    sl.insert(b"key1", b"value1")
    sl.insert(b"key2", b"value2")
    sl.insert(b"key3", b"value3")

    assert len(sl) == 3
    entries = list(sl)
    assert entries == [
        (b"key1", b"value1"),
        (b"key2", b"value2"),
        (b"key3", b"value3"),
    ]


def test_arena_skiplist_seek():
    sl = ArenaSkipList(1024 * 1024)
    sl.insert(b"aaa", b"1")
    sl.insert(b"ccc", b"3")
    sl.insert(b"eee", b"5")

    assert next(sl.range_from(b"bbb"))[0] == b"ccc"
    assert next(sl.range_from(b"ddd"))[0] == b"eee"
    assert list(sl.range_from(b"fff")) == []


def test_range_from_exact_key_included():
    sl = ArenaSkipList(1024 * 1024)
    for key in (b"b", b"a", b"c"):
        sl.insert(key, key.upper())
    assert list(sl.range_from(b"b")) == [(b"b", b"B"), (b"c", b"C")]


def test_insert_returns_entry_size():
    sl = ArenaSkipList(1024 * 1024)
    assert sl.insert(b"key", b"value") == 8


def test_unordered_inserts_are_sorted():
    sl = ArenaSkipList(1024 * 1024)
    keys = [f"k{i:04d}".encode() for i in range(500)]
    for key in reversed(keys):
        sl.insert(key, b"v")
    assert [k for k, _ in sl] == keys
    assert len(sl) == 500


def test_equal_keys_newest_first():
    sl = ArenaSkipList(1024 * 1024)
    sl.insert(b"dup", b"first")
    sl.insert(b"dup", b"second")
    assert [v for _, v in sl] == [b"second", b"first"]


def test_memory_usage_grows_and_stays_within_capacity():
    sl = ArenaSkipList(1024 * 1024)
    assert sl.memory_usage() == 0
    sl.insert(b"key", b"value")
    first = sl.memory_usage()
    assert first >= 8
    sl.insert(b"key2", b"value2")
    assert sl.memory_usage() > first
    assert sl.memory_usage() <= 1024 * 1024


def test_full_arena_refuses_insert():
    sl = ArenaSkipList(100)
    assert sl.insert(b"key", b"value") is None
    assert len(sl) == 0
    assert list(sl) == []
    assert sl.memory_usage() <= 100


def test_arena_fills_up_eventually():
    sl = ArenaSkipList(4096)
    results = [sl.insert(f"key{i:04d}".encode(), b"v" * 16) for i in range(100)]
    assert None in results
    accepted = sum(r is not None for r in results)
    assert len(sl) == accepted
    assert 0 < accepted < 100
    assert sl.memory_usage() <= 4096


def test_negative_arena_size_rejected():
    with pytest.raises(ValueError):
        ArenaSkipList(-1)


def test_concurrent_inserts():
    sl = ArenaSkipList(10 * 1024 * 1024)

    def worker(t):
        for i in range(1000):
            sl.insert(f"key-{t}-{i:04d}".encode(), f"value-{t}-{i:04d}".encode())

    threads = [threading.Thread(target=worker, args=(t,)) for t in range(4)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert len(sl) == 4000
    keys = [k for k, _ in sl]
    assert keys == sorted(keys)