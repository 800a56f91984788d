# =============================================================================
# 3DTILES SQLite Package Store
# =============================================================================
# Tileset package stored in an SQLite database (".3dtiles") with a single
# media(key, content) table.
# =============================================================================

import os
import sqlite3
import uuid
from pathlib import Path

from ..errors import TargetExistsError, TilesetError
from .base import PackageStore

__all__ = ["SqlitePackageStore"]


class SqlitePackageStore(PackageStore):
    """
    Package stored as a 3DTILES SQLite database.

    Writes go to a temporary database next to the target that replaces it on close.
    """

    io_errors = (OSError, sqlite3.Error)

    def __init__(
        self,
        name: str,
        path: Path,
        connection: sqlite3.Connection,
        writable: bool,
        overwrite: bool = False,
        staging: Path | None = None,
    ):
        super().__init__(name, writable, overwrite)
        self.path = path
        self.connection = connection
        self.staging = staging

    @classmethod
    def open_for_read(cls, name: str) -> "SqlitePackageStore":
        path = Path(name)
        if not path.is_file():
            raise TilesetError(f"Source database not found: {name}")
        try:
            connection = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        except cls.io_errors as exc:
            raise TilesetError(f"Failed to open database '{name}': {exc}") from exc
        return cls(name, path, connection, writable=False)

    @classmethod
    def open_for_write(cls, name: str, overwrite: bool) -> "SqlitePackageStore":
        path = Path(name)
        if path.exists() and not overwrite:
            raise TargetExistsError(f"Target package already exists: {name}")

        staging = path.parent / f".{path.name}.partial-{uuid.uuid4().hex[:8]}"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(staging)
            connection.execute("CREATE TABLE media (key TEXT PRIMARY KEY, content BLOB)")
        except cls.io_errors as exc:
            raise TilesetError(f"Failed to create database '{name}': {exc}") from exc
        return cls(name, path, connection, writable=True, overwrite=overwrite, staging=staging)

    def _read(self, key: str) -> bytes | None:
        row = self.connection.execute("SELECT content FROM media WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def _keys(self) -> list[str]:
        return [row[0] for row in self.connection.execute("SELECT key FROM media")]

    def _write(self, key: str, data: bytes) -> None:
        self.connection.execute(
            "INSERT OR REPLACE INTO media (key, content) VALUES (?, ?)",
            (key, sqlite3.Binary(data)),
        )

    def _finalize(self) -> None:
        self.connection.commit()
        self.connection.close()
        if self.path.exists() and not self.overwrite:
            self.staging.unlink()
            raise TargetExistsError(f"Target package appeared while writing: {self.name}")
        os.replace(self.staging, self.path)

    def _abandon(self) -> None:
        self.connection.close()
        self.staging.unlink(missing_ok=True)

    def _release(self) -> None:
        self.connection.close()
