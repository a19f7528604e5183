from datetime import datetime, timezone

import pytest

from vlogstore.sstable import (
    SUMMARY_FILE_NAME,
    Summary,
    Table,
    TableEntry,
    generate_file_path,
)

NOW = datetime(2024, 7, 12, 12, 0, tzinfo=timezone.utc)


def test_summary_new(tmp_path):
    path = tmp_path / "summary_new"
    summary = Summary(path)
    assert summary.smallest_key == b""
    assert summary.biggest_key == b""
    assert summary.path == path / f"{SUMMARY_FILE_NAME}.db"


def test_summary_serialize_length():
    summary = Summary("summary_write")
    summary.biggest_key = bytes([1, 2, 3])
    summary.smallest_key = bytes([0, 2, 3])
    assert len(summary.serialize()) == 4 + 4 + 3 + 3


def test_summary_serialize_layout():
    summary = Summary("d")
    summary.smallest_key = b"ab"
    summary.biggest_key = b"xyz"
    assert summary.serialize() == b"\x02\x00\x00\x00\x03\x00\x00\x00abxyz"


def test_summary_write_and_recover(tmp_path):
    summary = Summary(tmp_path / "sst")
    summary.smallest_key = b"aaa"
    summary.biggest_key = b"zzz"
    summary.write_to_file()

    recovered = Summary(tmp_path / "sst")
    recovered.recover()
    assert recovered.smallest_key == b"aaa"
    assert recovered.biggest_key == b"zzz"


def test_summary_write_replaces_contents(tmp_path):
    summary = Summary(tmp_path)
    summary.smallest_key = b"a"
    summary.biggest_key = b"b"
    summary.write_to_file()
    summary.write_to_file()
    assert summary.path.read_bytes() == summary.serialize()


def test_summary_parse_round_trip(tmp_path):
    original = Summary(tmp_path)
    original.smallest_key = b"k1"
    original.biggest_key = b"k9"
    parsed = Summary.parse(original.path, original.serialize())
    assert parsed.path == original.path
    assert (parsed.smallest_key, parsed.biggest_key) == (b"k1", b"k9")


@pytest.mark.parametrize("data", [b"", b"\x01\x00", b"\x05\x00\x00\x00\x00\x00\x00\x00ab"])
def test_summary_parse_truncated(data):
    with pytest.raises(ValueError):
        Summary.parse("summary.db", data)


def test_summary_recover_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Summary(tmp_path / "missing").recover()


def test_generate_file_path(tmp_path):
    directory = tmp_path / "a" / "b"
    data_path, index_path, created_at = generate_file_path(directory)
    assert directory.is_dir()
    assert data_path == directory / "data.db"
    assert index_path == directory / "index.db"
    assert created_at.tzinfo is not None


def test_table_create(tmp_path):
    table = Table.create(tmp_path / "sstable")
    assert table.data_file_path.is_file()
    assert table.index_file_path.is_file()
    assert table.dir == tmp_path / "sstable"
    assert table.hotness == 0
    assert table.size == 0
    assert table.entries == {}
    assert table.summary is None


def test_increase_hotness(tmp_path):
    table = Table.create(tmp_path)
    table.increase_hotness()
    table.increase_hotness()
    assert table.hotness == 2


def test_set_entries_sorts_and_sizes(tmp_path):
    table = Table.create(tmp_path)
    table.set_entries(
        {
            b"key2": TableEntry(200, NOW),
            b"k1": TableEntry(100, NOW, True),
        }
    )
    assert list(table.entries) == [b"k1", b"key2"]
    assert table.size == (2 + 17) + (4 + 17)
    assert table.smallest_key == b"k1"
    assert table.biggest_key == b"key2"
    assert table.entries[b"k1"].is_tombstone is True


def test_reset_size(tmp_path):
    table = Table.create(tmp_path)
    table.set_entries({b"abc": TableEntry(0, NOW)})
    assert table.size == 20
    table.reset_size()
    assert table.size == 0


def test_empty_table_has_no_key_bounds(tmp_path):
    table = Table.create(tmp_path)
    assert table.smallest_key is None
    assert table.biggest_key is None