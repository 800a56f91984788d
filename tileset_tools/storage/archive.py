# =============================================================================
# 3TZ Archive Package Store
# =============================================================================
# Tileset package stored in a single zip archive (".3tz"), including the
# "@3dtilesIndex1@" entry that maps MD5 hashes of keys to entry offsets.
# =============================================================================

import hashlib
import os
import struct
import tempfile
import zipfile
from pathlib import Path

from ..errors import TargetExistsError, TilesetError
from .base import PackageStore

__all__ = ["ZipPackageStore", "INDEX_ENTRY_NAME", "build_index"]

INDEX_ENTRY_NAME = "@3dtilesIndex1@"

# Fixed timestamp so that equal inputs produce identical archives
_ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class ZipPackageStore(PackageStore):
    """
    Package stored as a 3TZ zip archive.

    Writes go to a temporary file next to the target that replaces it on close.
    """

    io_errors = (OSError, zipfile.BadZipFile)

    def __init__(
        self,
        name: str,
        path: Path,
        archive: zipfile.ZipFile,
        writable: bool,
        overwrite: bool = False,
        staging: Path | None = None,
    ):
        super().__init__(name, writable, overwrite)
        self.path = path
        self.archive = archive
        self.staging = staging

    @classmethod
    def open_for_read(cls, name: str) -> "ZipPackageStore":
        path = Path(name)
        if not path.is_file():
            raise TilesetError(f"Source archive not found: {name}")
        try:
            archive = zipfile.ZipFile(path, "r")
        except cls.io_errors as exc:
            raise TilesetError(f"Failed to open archive '{name}': {exc}") from exc
        return cls(name, path, archive, writable=False)

    @classmethod
    def open_for_write(cls, name: str, overwrite: bool) -> "ZipPackageStore":
        path = Path(name)
        if path.exists() and not overwrite:
            raise TargetExistsError(f"Target package already exists: {name}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, staging_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".partial", dir=path.parent)
            os.close(fd)
            archive = zipfile.ZipFile(staging_name, "w", compression=zipfile.ZIP_DEFLATED)
        except cls.io_errors as exc:
            raise TilesetError(f"Failed to create archive '{name}': {exc}") from exc
        return cls(name, path, archive, writable=True, overwrite=overwrite, staging=Path(staging_name))

    def _read(self, key: str) -> bytes | None:
        try:
            return self.archive.read(key)
        except KeyError:
            return None

    def _keys(self) -> list[str]:
        return [
            info.filename
            for info in self.archive.infolist()
            if not info.is_dir() and info.filename != INDEX_ENTRY_NAME
        ]

    def _write(self, key: str, data: bytes) -> None:
        info = zipfile.ZipInfo(key, date_time=_ENTRY_DATE_TIME)
        info.compress_type = zipfile.ZIP_DEFLATED
        self.archive.writestr(info, data)

    def _finalize(self) -> None:
        self.archive.writestr(zipfile.ZipInfo(INDEX_ENTRY_NAME, date_time=_ENTRY_DATE_TIME), build_index(self.archive))
        self.archive.close()
        if self.path.exists() and not self.overwrite:
            self.staging.unlink()
            raise TargetExistsError(f"Target package appeared while writing: {self.name}")
        os.replace(self.staging, self.path)

    def _abandon(self) -> None:
        self.archive.close()
        self.staging.unlink(missing_ok=True)

    def _release(self) -> None:
        self.archive.close()


def _md5_sort_key(digest: bytes) -> tuple[int, int]:
    # Hashes are ordered as two little-endian uint64 values, upper half first
    return (
        int.from_bytes(digest[8:16], "little"),
        int.from_bytes(digest[0:8], "little"),
    )


def build_index(archive: zipfile.ZipFile) -> bytes:
    """
    Build the 3TZ index for all entries written so far.

    Each index record is the 16-byte MD5 hash of the entry name followed by
    the uint64 offset of its local file header, sorted by hash.
    """
    records = []
    for info in archive.infolist():
        digest = hashlib.md5(info.filename.encode("utf-8"), usedforsecurity=False).digest()
        records.append((digest, info.header_offset))
    records.sort(key=lambda record: _md5_sort_key(record[0]))
    return b"".join(digest + struct.pack("<Q", offset) for digest, offset in records)
