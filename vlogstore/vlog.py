"""Append-only value log.

Each record is laid out as::

    key size (u32 LE) | value size (u32 LE) | created at, ms (i64 LE) |
    tombstone (u8) | key | value
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator

from .util import datetime_to_milliseconds, milliseconds_to_datetime

log = logging.getLogger(__name__)

VLOG_FILE_NAME = "val_log.bin"

_HEADER = struct.Struct("<IIqB")
HEADER_SIZE = _HEADER.size


@dataclass
class ValueLogEntry:
    """A single record of the value log."""

    key: bytes
    value: bytes
    created_at: datetime
    is_tombstone: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.key, str):
            self.key = self.key.encode()
        if isinstance(self.value, str):
            self.value = self.value.encode()
        self.key = bytes(self.key)
        self.value = bytes(self.value)

    @property
    def ksize(self) -> int:
        return len(self.key)

    @property
    def vsize(self) -> int:
        return len(self.value)

    def __len__(self) -> int:
        return HEADER_SIZE + len(self.key) + len(self.value)

    def serialize(self) -> bytes:
        """Encode the entry in the on-disk record layout."""
        header = _HEADER.pack(
            len(self.key),
            len(self.value),
            datetime_to_milliseconds(self.created_at),
            int(self.is_tombstone),
        )
        return header + self.key + self.value

    @classmethod
    def from_bytes(cls, data: bytes) -> ValueLogEntry:
        """Decode one entry from the start of ``data``; raise ValueError if incomplete."""
        if len(data) < HEADER_SIZE:
            raise ValueError("value log entry header is truncated")
        ksize, vsize, millis, tombstone = _HEADER.unpack_from(data)
        end = HEADER_SIZE + ksize + vsize
        if len(data) < end:
            raise ValueError("value log entry body is truncated")
        key = bytes(data[HEADER_SIZE:HEADER_SIZE + ksize])
        value = bytes(data[HEADER_SIZE + ksize:end])
        return cls(key, value, milliseconds_to_datetime(millis), bool(tombstone))


def _read_entry(handle: BinaryIO, offset: int) -> ValueLogEntry | None:
    """Read the entry at ``offset``, or None if no complete entry starts there."""
    handle.seek(offset)
    header = handle.read(HEADER_SIZE)
    if len(header) < HEADER_SIZE:
        return None
    ksize, vsize, _, _ = _HEADER.unpack(header)
    body = handle.read(ksize + vsize)
    if len(body) < ksize + vsize:
        return None
    return ValueLogEntry.from_bytes(header + body)


class ValueLog:
    """Append-only log that keeps key/value entries persisted on disk."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path = self.directory / VLOG_FILE_NAME
        self._file: BinaryIO | None = None
        self._open()
        # Size is taken from the file so that a reopened log continues where it stopped.
        self.size: int = self.path.stat().st_size
        self.head_offset: int = 0
        self.tail_offset: int = 0

    def _open(self) -> BinaryIO:
        if self._file is None or self._file.closed:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, "a+b")
        return self._file

    def close(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.close()
        self._file = None

    def __enter__(self) -> ValueLog:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def append(
        self,
        key: bytes | str,
        value: bytes | str,
        created_at: datetime,
        is_tombstone: bool,
    ) -> int:
        """Append an entry and return the offset at which it starts."""
        data = ValueLogEntry(key, value, created_at, is_tombstone).serialize()
        handle = self._open()
        offset = self.size
        handle.seek(0, os.SEEK_END)
        handle.write(data)
        handle.flush()
        self.size += len(data)
        return offset

    def get(self, start_offset: int) -> tuple[bytes, bool] | None:
        """Return ``(value, is_tombstone)`` of the entry at ``start_offset``, if any."""
        handle = self._open()
        handle.flush()
        entry = _read_entry(handle, start_offset)
        if entry is None:
            return None
        return entry.value, entry.is_tombstone

    def sync_to_disk(self) -> None:
        """Make sure all appended entries are persisted on disk."""
        handle = self._open()
        handle.flush()
        os.fsync(handle.fileno())

    def entries(self, start_offset: int = 0) -> Iterator[tuple[int, ValueLogEntry]]:
        """Yield ``(offset, entry)`` pairs from ``start_offset`` to the end of the log."""
        handle = self._open()
        handle.flush()
        offset = start_offset
        while (entry := _read_entry(handle, offset)) is not None:
            yield offset, entry
            offset += len(entry)

    def recover(self, start_offset: int) -> list[ValueLogEntry]:
        """Return every entry from ``start_offset`` onwards."""
        return [entry for _, entry in self.entries(start_offset)]

    def read_chunk_to_garbage_collect(self, bytes_to_collect: int) -> tuple[list[ValueLogEntry], int]:
        """Read entries from the tail until at least ``bytes_to_collect`` bytes are covered.

        Returns the entries and the number of bytes they occupy.
        """
        collected: list[ValueLogEntry] = []
        total = 0
        for _, entry in self.entries(self.tail_offset):
            if total >= bytes_to_collect:
                break
            collected.append(entry)
            total += len(entry)
        return collected, total

    def clear_all(self) -> None:
        """Delete the value log file and reset all offsets."""
        self.close()
        if self.path.exists():
            try:
                self.path.unlink()
            except OSError as err:
                log.info("%s", err)
        self.size = 0
        self.tail_offset = 0
        self.head_offset = 0