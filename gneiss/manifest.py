"""Manifest log files and the CURRENT pointer file."""

from __future__ import annotations

import logging
import os
import struct
import zlib
from pathlib import Path
from typing import BinaryIO, Optional, Union

from gneiss.version_edit import VersionEdit

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<II")
_CURRENT = "CURRENT"
_CURRENT_TMP = "CURRENT.tmp"

PathLike = Union[str, "os.PathLike[str]"]


class CorruptionError(Exception):
    """Stored data failed validation."""


class InvalidCrcError(CorruptionError):
    """A record's checksum did not match its contents."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"invalid crc: expected {expected:#010x}, actual {actual:#010x}")
        self.expected = expected
        self.actual = actual


class ManifestReader:
    """Reads the length- and CRC-framed edits of a manifest file."""

    def __init__(self, path: PathLike) -> None:
        self._file: BinaryIO = open(path, "rb")

    def __enter__(self) -> "ManifestReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read_all(self) -> list[VersionEdit]:
        """Return every valid edit, stopping at the first damaged record."""
        edits: list[VersionEdit] = []
        while True:
            try:
                edit = self._read_edit()
            except (CorruptionError, OSError) as exc:
                logger.warning("Manifest read error, stopping: %s", exc)
                break
            if edit is None:
                break
            edits.append(edit)
        return edits

    def _read_edit(self) -> Optional[VersionEdit]:
        header = self._file.read(_HEADER.size)
        if len(header) < _HEADER.size:
            return None
        length, expected_crc = _HEADER.unpack(header)
        data = self._file.read(length)
        if len(data) < length:
            raise CorruptionError("truncated manifest record")
        actual_crc = zlib.crc32(data)
        if actual_crc != expected_crc:
            raise InvalidCrcError(expected_crc, actual_crc)
        try:
            return VersionEdit.decode(data)
        except ValueError as exc:
            raise CorruptionError("Invalid manifest edit") from exc

    def close(self) -> None:
        self._file.close()


class ManifestWriter:
    """Appends framed edits to a manifest file."""

    def __init__(self, path: PathLike, append: bool = False) -> None:
        if append:
            # The file must already exist when appending.
            self._file: BinaryIO = open(path, "r+b")
            self._file.seek(0, os.SEEK_END)
        else:
            self._file = open(path, "wb")

    @classmethod
    def create(cls, path: PathLike) -> "ManifestWriter":
        return cls(path, append=False)

    @classmethod
    def open_append(cls, path: PathLike) -> "ManifestWriter":
        return cls(path, append=True)

    def __enter__(self) -> "ManifestWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write_edit(self, edit: VersionEdit) -> None:
        data = edit.encode()
        self._file.write(_HEADER.pack(len(data), zlib.crc32(data)))
        self._file.write(data)

    def sync(self) -> None:
        self._file.flush()
        os.fsync(self._file.fileno())

    def close(self) -> None:
        self._file.close()


def read_current(db_path: PathLike) -> Optional[str]:
    """Return the manifest name stored in CURRENT, or None if it is absent."""
    try:
        contents = (Path(db_path) / _CURRENT).read_text()
    except FileNotFoundError:
        return None
    return contents.strip()


def write_current(db_path: PathLike, manifest_name: str) -> None:
    """Atomically point CURRENT at the given manifest."""
    base = Path(db_path)
    temp_path = base / _CURRENT_TMP
    temp_path.write_text(f"{manifest_name}\n")
    os.replace(temp_path, base / _CURRENT)