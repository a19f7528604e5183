"""Sorted string table metadata: table files, in-memory entries and the key summary.

The summary file is laid out as::

    smallest key size (u32 LE) | biggest key size (u32 LE) | smallest key | biggest key
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

DATA_FILE_NAME = "data"
INDEX_FILE_NAME = "index"
SUMMARY_FILE_NAME = "summary"

SIZE_OF_U8 = 1
SIZE_OF_U64 = 8
SIZE_OF_USIZE = 8

_SUMMARY_HEADER = struct.Struct("<II")


class Summary:
    """Smallest and biggest key of a table, stored next to its data files."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.path: Path = Path(directory) / f"{SUMMARY_FILE_NAME}.db"
        self.smallest_key: bytes = b""
        self.biggest_key: bytes = b""

    def __repr__(self) -> str:
        return (
            f"Summary(path={str(self.path)!r}, smallest_key={self.smallest_key!r}, "
            f"biggest_key={self.biggest_key!r})"
        )

    def serialize(self) -> bytes:
        """Encode the summary in its on-disk layout."""
        header = _SUMMARY_HEADER.pack(len(self.smallest_key), len(self.biggest_key))
        return header + bytes(self.smallest_key) + bytes(self.biggest_key)

    @classmethod
    def parse(cls, path: str | os.PathLike[str], data: bytes) -> Summary:
        """Decode a summary read from the file at ``path``; raise ValueError if truncated."""
        if len(data) < _SUMMARY_HEADER.size:
            raise ValueError("summary header is truncated")
        smallest_len, biggest_len = _SUMMARY_HEADER.unpack_from(data)
        start = _SUMMARY_HEADER.size
        middle = start + smallest_len
        end = middle + biggest_len
        if len(data) < end:
            raise ValueError("summary body is truncated")
        file_path = Path(path)
        summary = cls(file_path.parent)
        summary.path = file_path
        summary.smallest_key = bytes(data[start:middle])
        summary.biggest_key = bytes(data[middle:end])
        return summary

    def write_to_file(self) -> None:
        """Write the summary to its file, replacing earlier contents."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "wb") as handle:
            handle.write(self.serialize())
            handle.flush()

    def recover(self) -> None:
        """Load the smallest and biggest key from the summary file."""
        recovered = self.parse(self.path, self.path.read_bytes())
        self.smallest_key = recovered.smallest_key
        self.biggest_key = recovered.biggest_key


@dataclass
class TableEntry:
    """What a table keeps for a key: value log offset, insertion time and deletion mark."""

    val_offset: int
    created_at: datetime
    is_tombstone: bool = False


def generate_file_path(directory: str | os.PathLike[str]) -> tuple[Path, Path, datetime]:
    """Create ``directory`` and return the data file path, index file path and creation time."""
    created_at = datetime.now(timezone.utc)
    base = Path(directory)
    base.mkdir(parents=True, exist_ok=True)
    data_file_path = base / f"{DATA_FILE_NAME}.db"
    index_file_path = base / f"{INDEX_FILE_NAME}.db"
    return data_file_path, index_file_path, created_at


@dataclass
class Table:
    """A sorted string table: its files, entries and bookkeeping."""

    dir: Path
    data_file_path: Path
    index_file_path: Path
    created_at: datetime
    hotness: int = 0
    size: int = 0
    entries: dict[bytes, TableEntry] = field(default_factory=dict)
    summary: Summary | None = None

    @classmethod
    def create(cls, directory: str | os.PathLike[str]) -> Table:
        """Create the table directory and its empty data and index files."""
        data_file_path, index_file_path, created_at = generate_file_path(directory)
        data_file_path.touch(exist_ok=True)
        index_file_path.touch(exist_ok=True)
        return cls(
            dir=Path(directory),
            data_file_path=data_file_path,
            index_file_path=index_file_path,
            created_at=created_at,
        )

    def increase_hotness(self) -> None:
        """Record one more use of this table."""
        self.hotness += 1

    def reset_size(self) -> None:
        self.size = 0

    def set_entries(self, entries: Mapping[bytes, TableEntry]) -> None:
        """Replace the entries, kept ordered by key, and recompute the size."""
        self.entries = {bytes(key): entries[key] for key in sorted(entries)}
        self.set_sst_size_from_entries()

    def set_sst_size_from_entries(self) -> None:
        """Set the byte size from the entries: key, offset, timestamp and tombstone."""
        self.size = sum(
            len(key) + SIZE_OF_USIZE + SIZE_OF_U64 + SIZE_OF_U8 for key in self.entries
        )

    @property
    def smallest_key(self) -> bytes | None:
        return next(iter(self.entries), None)

    @property
    def biggest_key(self) -> bytes | None:
        return next(reversed(self.entries), None) if self.entries else None