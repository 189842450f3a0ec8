# gneiss

Core pieces of a log-structured merge-tree key-value store, in pure Python
with no third-party dependencies.

## What is inside

- `gneiss.version_edit`: `VersionEdit`, `NewFile` and `DeletedFile`. A
  compact binary record of changes to the set of table files. It holds the
  next file number, the last sequence number, and the files added to and
  removed from each level. `VersionEdit.encode()` produces the binary form.
  `VersionEdit.decode()` parses it and raises `ValueError` on malformed
  input.
- `gneiss.manifest`: `ManifestWriter` and `ManifestReader` handle an
  append-only log of version edits. Each edit is framed with its length and a
  CRC-32 checksum. `read_current` and `write_current` read and write the
  `CURRENT` pointer file, which `write_current` replaces atomically.
  `ManifestReader.read_all()` returns every valid edit and stops at the first
  damaged record. The exceptions are `CorruptionError` and `InvalidCrcError`.
- `gneiss.keys`: `InternalKey`, `ValueType` and `encode_internal_key`. A user
  key is tagged with an inverted big-endian sequence number and a value type,
  so that for equal user keys newer entries sort first.
- `gneiss.skiplist`: `SkipList`, an ordered multimap of byte keys to byte
  values.
- `gneiss.arena`: `ArenaSkipList`, a skip list bounded by a fixed arena size.
  `insert` returns `None` once the arena has no room left, and
  `memory_usage()` reports how much of the arena is in use.
- `gneiss.memtable`: `Memtable` and `ImmutableMemtable`, with multi-version
  point lookups returning a `LookupResult` whose `status` is a
  `LookupStatus`. `Memtable` also offers `put_batch`, range scans
  (`scan_range`) and iteration over `(InternalKey, value)` pairs.
- `gneiss.arena_memtable`: `ArenaMemtable` offers the same lookups and scans
  over an `ArenaSkipList` of twice its `max_size`. It silently drops writes
  that no longer fit.
- `gneiss.batch`: `WriteBatch`, a serialised list of puts and deletes.
  `to_bytes()` returns the encoded form.

## Installation

```
pip install .
```

## Example

```python
from gneiss.memtable import Memtable, LookupStatus
from gneiss.batch import WriteBatch

mt = Memtable(1024 * 1024)
mt.put(b"key1", 5, b"value5")
mt.put(b"key1", 10, b"value10")
mt.delete(b"key1", 12)

print(mt.get(b"key1", 7).value)          # b"value5"
print(mt.get(b"key1", 15).status)        # LookupStatus.DELETED

mt.put(b"key2", 13, b"v2")
print(mt.scan_range(b"key0", b"key9", 20, 10))   # [(b"key2", b"v2")]

batch = WriteBatch()
batch.put(b"k1", b"v1")
batch.delete(b"k2")
print(len(batch), batch.to_bytes())
```

Manifest round trip:

```python
from pathlib import Path
from gneiss.version_edit import VersionEdit
from gneiss.manifest import ManifestReader, ManifestWriter, read_current, write_current

db = Path("mydb")
db.mkdir(exist_ok=True)

edit = VersionEdit()
edit.set_next_file_number(10)
edit.add_file(0, 1, 1000, b"aaa", b"zzz")

with ManifestWriter.create(db / "MANIFEST-000001") as writer:
    writer.write_edit(edit)
    writer.sync()
write_current(db, "MANIFEST-000001")

name = read_current(db)                  # "MANIFEST-000001"
with ManifestReader(db / name) as reader:
    edits = reader.read_all()
print(edits[0].next_file_number, edits[0].new_files[0].file_number)  # 10 1
```

## What it does not do

This package provides building blocks, not a database:

- It has no table (SSTable) files, no write-ahead log, no compaction and no
  on-disk `open` / `put` / `get` front end.
- It does not rebuild the per-level layout of files from a manifest.
  `ManifestReader` returns the list of `VersionEdit`s, and applying them is
  left to the caller.

## Running the tests

```
pip install .[test]
pytest
```