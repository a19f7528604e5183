# vlogstore

Storage building blocks for a log-structured key-value engine in which keys
live in sorted string tables and values live in an append-only value log.

## Installing

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Value log

`vlogstore.vlog.ValueLog` keeps key/value records in one append-only file
(`val_log.bin`) inside a directory, creating the directory if needed. Each
record holds the key length, value length, creation time in milliseconds, a
tombstone flag, the key and the value. When an existing log is reopened its
`size` is taken from the file, so new records are appended after the old ones.

```python
from datetime import datetime, timezone
from vlogstore.vlog import ValueLog

with ValueLog("data/vlog") as log:
    offset = log.append(b"key1", b"val1", datetime.now(timezone.utc), False)
    value, is_tombstone = log.get(offset)
    log.sync_to_disk()

    entries = log.recover(offset)                 # every record from an offset on
    chunk, read = log.read_chunk_to_garbage_collect(64)
```

- `append()` returns the offset at which the new record starts.
- `get()` returns `(value, is_tombstone)`, or `None` if no complete record
  starts at that offset.
- `entries(start_offset)` yields `(offset, entry)` pairs up to the end of the log.
- `read_chunk_to_garbage_collect(n)` reads records from `tail_offset` until at
  least `n` bytes are covered and returns them with the number of bytes read.
- `head_offset` and `tail_offset` mark where crash recovery and garbage
  collection start; `clear_all()` deletes the log file and resets `size`,
  `head_offset` and `tail_offset` to zero.
- `close()` closes the file; the log can also be used as a context manager.

`ValueLogEntry` is a single record; `serialize()` and `ValueLogEntry.from_bytes()`
convert it to and from its on-disk bytes (`from_bytes` raises `ValueError` on
truncated input). `len(entry)` is its encoded size.

## Sorted string tables

`vlogstore.sstable.generate_file_path(directory)` creates a directory and
returns the paths of its `data.db` and `index.db` files and a creation time.
`Table.create(directory)` does the same and also creates those two files empty.

A `Table` keeps its entries as `TableEntry` records (value log offset,
creation time, tombstone flag) in key order. `set_entries()` replaces them and
recomputes `size` from the entries; `set_sst_size_from_entries()` and
`reset_size()` adjust `size` directly; `increase_hotness()` counts uses of the
table. `smallest_key` and `biggest_key` give the first and last key, or `None`
when the table is empty.

`Summary` records a table's smallest and biggest keys in `summary.db`:

```python
from vlogstore.sstable import Summary

summary = Summary("data/sstable_1")
summary.smallest_key = b"apple"
summary.biggest_key = b"zebra"
summary.write_to_file()

restored = Summary("data/sstable_1")
restored.recover()
```

`serialize()` and `Summary.parse(path, data)` convert a summary to and from
its file contents; `parse` raises `ValueError` on truncated input.

## Helpers

`vlogstore.util` holds small helpers: `milliseconds_to_datetime`,
`datetime_to_milliseconds`, `default_datetime` (the Unix epoch),
`float_to_le_bytes`, `float_from_le_bytes` (returns `None` unless given
exactly 8 bytes) and `generate_random_id`.

## What this package does not do

These are building blocks, not a complete store. There is no store object
that puts, gets, updates or deletes keys, no memtable, and no flushing: a
`Table` holds its entries in memory and does not write data blocks, an index
or a bloom filter to its files, nor read entries back from them. There is no
compaction and no garbage collection; the value log only reads the chunk that
a collector would process. There is no command-line tool or server.