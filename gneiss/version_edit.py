"""Version edits: incremental changes to the set of live table files."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

_TAG_NEXT_FILE_NUMBER = 0x01
_TAG_LAST_SEQUENCE = 0x02
_TAG_NEW_FILE = 0x03
_TAG_DELETED_FILE = 0x04

_U64 = struct.Struct("<Q")
_U32 = struct.Struct("<I")
_NEW_FILE_HEAD = struct.Struct("<BQQ")
_DELETED_FILE = struct.Struct("<BQ")


@dataclass(frozen=True)
class NewFile:
    """A table file added to a level."""

    level: int
    file_number: int
    file_size: int
    min_key: bytes
    max_key: bytes


@dataclass(frozen=True)
class DeletedFile:
    """A table file removed from a level."""

    level: int
    file_number: int


@dataclass
class VersionEdit:
    """A set of changes recorded in the manifest."""

    next_file_number: Optional[int] = None
    last_sequence: Optional[int] = None
    new_files: list[NewFile] = field(default_factory=list)
    deleted_files: list[DeletedFile] = field(default_factory=list)

    def set_next_file_number(self, num: int) -> None:
        self.next_file_number = num

    def set_last_sequence(self, seq: int) -> None:
        self.last_sequence = seq

    def add_file(
        self,
        level: int,
        file_number: int,
        file_size: int,
        min_key: bytes,
        max_key: bytes,
    ) -> None:
        self.new_files.append(
            NewFile(level, file_number, file_size, bytes(min_key), bytes(max_key))
        )

    def delete_file(self, level: int, file_number: int) -> None:
        self.deleted_files.append(DeletedFile(level, file_number))

    def encode(self) -> bytes:
        """Serialise the edit into its tagged binary form."""
        parts: list[bytes] = []
        if self.next_file_number is not None:
            parts.append(bytes([_TAG_NEXT_FILE_NUMBER]))
            parts.append(_U64.pack(self.next_file_number))
        if self.last_sequence is not None:
            parts.append(bytes([_TAG_LAST_SEQUENCE]))
            parts.append(_U64.pack(self.last_sequence))
        for new in self.new_files:
            parts.append(bytes([_TAG_NEW_FILE]))
            parts.append(
                _NEW_FILE_HEAD.pack(new.level & 0xFF, new.file_number, new.file_size)
            )
            parts.append(_U32.pack(len(new.min_key)))
            parts.append(new.min_key)
            parts.append(_U32.pack(len(new.max_key)))
            parts.append(new.max_key)
        for deleted in self.deleted_files:
            parts.append(bytes([_TAG_DELETED_FILE]))
            parts.append(_DELETED_FILE.pack(deleted.level & 0xFF, deleted.file_number))
        return b"".join(parts)

    @classmethod
    def decode(cls, data: bytes) -> "VersionEdit":
        """Parse an encoded edit; raise ValueError if it is malformed."""
        data = bytes(data)
        size = len(data)
        pos = 0

        def take(count: int) -> bytes:
            nonlocal pos
            if pos + count > size:
                raise ValueError("truncated version edit")
            chunk = data[pos : pos + count]
            pos += count
            return chunk

        edit = cls()
        while pos < size:
            tag = data[pos]
            pos += 1
            if tag == _TAG_NEXT_FILE_NUMBER:
                (edit.next_file_number,) = _U64.unpack(take(8))
            elif tag == _TAG_LAST_SEQUENCE:
                (edit.last_sequence,) = _U64.unpack(take(8))
            elif tag == _TAG_NEW_FILE:
                level, file_number, file_size = _NEW_FILE_HEAD.unpack(take(17))
                (min_len,) = _U32.unpack(take(4))
                min_key = take(min_len)
                (max_len,) = _U32.unpack(take(4))
                max_key = take(max_len)
                edit.new_files.append(
                    NewFile(level, file_number, file_size, min_key, max_key)
                )
            elif tag == _TAG_DELETED_FILE:
                level, file_number = _DELETED_FILE.unpack(take(9))
                edit.deleted_files.append(DeletedFile(level, file_number))
            else:
                raise ValueError(f"unknown version edit tag 0x{tag:02x}")
        return edit