# =============================================================================
# Unit Tests: 3TZ and 3DTILES Package Stores
# =============================================================================

import hashlib
import sqlite3
import struct
import zipfile

import pytest

from tileset_tools.errors import TargetExistsError, TilesetError
from tileset_tools.storage import SqlitePackageStore, ZipPackageStore
from tileset_tools.storage.archive import INDEX_ENTRY_NAME


def _write(store_class, path, entries, overwrite=False):
    with store_class.open_for_write(str(path), overwrite=overwrite) as store:
        for key, data in entries.items():
            store.write_entry(key, data)


# =============================================================================
# Test: ZipPackageStore
# =============================================================================

class TestZipPackageStore:
    """Tests for 3TZ archives."""

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "city.3tz"
        _write(ZipPackageStore, path, {"tileset.json": b"{}", "tiles/a.b3dm": b"b3dm"})

        with ZipPackageStore.open_for_read(str(path)) as store:
            assert store.list_keys() == ["tiles/a.b3dm", "tileset.json"]
            assert store.read_entry("tiles/a.b3dm") == b"b3dm"
            assert store.read_entry("missing") is None

    def test_index_entry_is_last_and_sorted(self, tmp_path):
        path = tmp_path / "city.3tz"
        keys = ["tileset.json", "a.b3dm", "b/c.b3dm"]
        _write(ZipPackageStore, path, {key: key.encode() for key in keys})

        with zipfile.ZipFile(path) as archive:
            infos = archive.infolist()
            assert infos[-1].filename == INDEX_ENTRY_NAME
            index = archive.read(INDEX_ENTRY_NAME)
            offsets = {info.filename: info.header_offset for info in infos}

        assert len(index) == 24 * len(keys)
        records = [(index[i:i + 16], struct.unpack_from("<Q", index, i + 16)[0]) for i in range(0, len(index), 24)]
        sort_keys = [(int.from_bytes(d[8:16], "little"), int.from_bytes(d[0:8], "little")) for d, _ in records]
        assert sort_keys == sorted(sort_keys)
        for key in keys:
            digest = hashlib.md5(key.encode()).digest()
            assert (digest, offsets[key]) in records

    def test_identical_inputs_produce_identical_archives(self, tmp_path):
        entries = {"tileset.json": b"{}", "a.b3dm": b"data"}
        _write(ZipPackageStore, tmp_path / "one.3tz", entries)
        _write(ZipPackageStore, tmp_path / "two.3tz", entries)
        assert (tmp_path / "one.3tz").read_bytes() == (tmp_path / "two.3tz").read_bytes()

    def test_existing_target_requires_overwrite(self, tmp_path):
        path = tmp_path / "city.3tz"
        _write(ZipPackageStore, path, {"a": b"1"})
        with pytest.raises(TargetExistsError):
            ZipPackageStore.open_for_write(str(path), overwrite=False)

    def test_discard_keeps_previous_archive(self, tmp_path):
        path = tmp_path / "city.3tz"
        _write(ZipPackageStore, path, {"old": b"1"})

        store = ZipPackageStore.open_for_write(str(path), overwrite=True)
        store.write_entry("new", b"2")
        store.discard()

        assert sorted(p.name for p in tmp_path.iterdir()) == ["city.3tz"]
        with ZipPackageStore.open_for_read(str(path)) as store:
            assert store.list_keys() == ["old"]

    def test_corrupt_archive(self, tmp_path):
        path = tmp_path / "broken.3tz"
        path.write_bytes(b"not a zip file")
        with pytest.raises(TilesetError, match="Failed to open archive"):
            ZipPackageStore.open_for_read(str(path))

    def test_missing_archive(self, tmp_path):
        with pytest.raises(TilesetError, match="not found"):
            ZipPackageStore.open_for_read(str(tmp_path / "missing.3tz"))


# =============================================================================
# Test: SqlitePackageStore
# =============================================================================

class TestSqlitePackageStore:
    """Tests for 3DTILES databases."""

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "city.3dtiles"
        _write(SqlitePackageStore, path, {"tileset.json": b"{}", "tiles/a.b3dm": b"\x00\x01"})

        with SqlitePackageStore.open_for_read(str(path)) as store:
            assert store.list_keys() == ["tiles/a.b3dm", "tileset.json"]
            assert store.read_entry("tiles/a.b3dm") == b"\x00\x01"
            assert store.read_entry("missing") is None

    def test_media_table_layout(self, tmp_path):
        path = tmp_path / "city.3dtiles"
        _write(SqlitePackageStore, path, {"tileset.json": b"{}"})

        connection = sqlite3.connect(path)
        try:
            rows = connection.execute("SELECT key, content FROM media").fetchall()
        finally:
            connection.close()
        assert rows == [("tileset.json", b"{}")]

    def test_existing_target_requires_overwrite(self, tmp_path):
        path = tmp_path / "city.3dtiles"
        _write(SqlitePackageStore, path, {"a": b"1"})
        with pytest.raises(TargetExistsError):
            SqlitePackageStore.open_for_write(str(path), overwrite=False)

    def test_overwrite_replaces_database(self, tmp_path):
        path = tmp_path / "city.3dtiles"
        _write(SqlitePackageStore, path, {"old": b"1"})
        _write(SqlitePackageStore, path, {"new": b"2"}, overwrite=True)

        with SqlitePackageStore.open_for_read(str(path)) as store:
            assert store.list_keys() == ["new"]

    def test_discard_removes_staging_database(self, tmp_path):
        store = SqlitePackageStore.open_for_write(str(tmp_path / "city.3dtiles"), overwrite=False)
        store.write_entry("a", b"1")
        store.discard()
        assert list(tmp_path.iterdir()) == []

    def test_not_a_database(self, tmp_path):
        path = tmp_path / "broken.3dtiles"
        path.write_bytes(b"x" * 200)
        with pytest.raises(TilesetError):
            with SqlitePackageStore.open_for_read(str(path)) as store:
                store.list_keys()
