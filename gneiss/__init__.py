"""Version edits, manifest logs, internal keys, skip lists, memtables and write batches for an LSM-tree key-value store."""

__version__ = "0.1.0"