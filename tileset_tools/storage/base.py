# =============================================================================
# Package Store Base Classes
# =============================================================================
# Abstract keyed byte-store behind every tileset package, and the handle that
# pairs a store with the key of its root tileset JSON.
# =============================================================================

import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..errors import MalformedTilesetError, TilesetError
from ..models.tileset import Tileset, parse_tileset, serialize_tileset

__all__ = ["PackageStore", "PackageHandle"]

logger = logging.getLogger(__name__)


class PackageStore(ABC):
    """
    Base class for package storage backends.

    A store is opened either for reading (`open_for_read`) or for writing
    (`open_for_write`). Write stores stage their output and only publish it
    in `close()`; `discard()` drops the staged output, leaving any previous
    package untouched. Both are idempotent, and only the first of the two
    calls has an effect.

    Backend exceptions listed in `io_errors` are wrapped in TilesetError.
    """

    io_errors: tuple[type[BaseException], ...] = (OSError,)

    def __init__(self, name: str, writable: bool, overwrite: bool = False):
        self.name = name
        self.writable = writable
        self.overwrite = overwrite
        self._closed = False

    # -------------------------------------------------------------------------
    # Opening
    # -------------------------------------------------------------------------

    @classmethod
    @abstractmethod
    def open_for_read(cls, name: str) -> "PackageStore":
        """Open an existing package. Raises TilesetError if it does not exist."""

    @classmethod
    @abstractmethod
    def open_for_write(cls, name: str, overwrite: bool) -> "PackageStore":
        """Open a package for writing. Raises TargetExistsError if it exists and not overwrite."""

    # -------------------------------------------------------------------------
    # Entry access
    # -------------------------------------------------------------------------

    def read_entry(self, key: str) -> bytes | None:
        """Return the bytes of an entry, or None if the package has no such entry."""
        self._check_usable(write=False)
        try:
            return self._read(key)
        except self.io_errors as exc:
            raise TilesetError(f"Failed to read '{key}' from '{self.name}': {exc}") from exc

    def list_keys(self) -> list[str]:
        """All entry keys, sorted."""
        self._check_usable(write=False)
        try:
            return sorted(self._keys())
        except self.io_errors as exc:
            raise TilesetError(f"Failed to list entries of '{self.name}': {exc}") from exc

    def write_entry(self, key: str, data: bytes) -> None:
        self._check_usable(write=True)
        normalized = posixpath.normpath(key)
        if normalized != key or key.startswith(("/", "../")) or key in (".", ".."):
            raise TilesetError(f"Invalid entry key '{key}' for '{self.name}'")
        try:
            self._write(key, data)
        except self.io_errors as exc:
            raise TilesetError(f"Failed to write '{key}' to '{self.name}': {exc}") from exc

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Release the store. For write stores, publish the staged package."""
        if self._closed:
            return
        self._closed = True
        try:
            if self.writable:
                self._finalize()
                logger.info(f"Finalized package '{self.name}'")
            else:
                self._release()
        except self.io_errors as exc:
            raise TilesetError(f"Failed to close '{self.name}': {exc}") from exc

    def discard(self) -> None:
        """Release the store. For write stores, drop the staged package."""
        if self._closed:
            return
        self._closed = True
        try:
            if self.writable:
                self._abandon()
                logger.warning(f"Discarded unfinished package '{self.name}'")
            else:
                self._release()
        except self.io_errors as exc:
            raise TilesetError(f"Failed to discard '{self.name}': {exc}") from exc

    def __enter__(self) -> "PackageStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def _check_usable(self, write: bool) -> None:
        if self._closed:
            raise TilesetError(f"Package '{self.name}' is already closed")
        if write != self.writable:
            mode = "read-only" if not self.writable else "write-only"
            raise TilesetError(f"Package '{self.name}' is {mode}")

    # -------------------------------------------------------------------------
    # Backend hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def _read(self, key: str) -> bytes | None: ...

    @abstractmethod
    def _keys(self) -> list[str]: ...

    @abstractmethod
    def _write(self, key: str, data: bytes) -> None: ...

    @abstractmethod
    def _finalize(self) -> None: ...

    @abstractmethod
    def _abandon(self) -> None: ...

    @abstractmethod
    def _release(self) -> None: ...


@dataclass
class PackageHandle:
    """
    A package store together with the key of its root tileset JSON.

    Used as a context manager: a normal exit closes (and for targets,
    publishes) the store, an exit with an exception discards it.
    """

    store: PackageStore
    tileset_key: str

    @property
    def name(self) -> str:
        return self.store.name

    def read_tileset(self) -> Tileset:
        """
        Load the root tileset document.

        Raises:
            MalformedTilesetError: If the package has no root tileset entry,
                or the entry is not a valid tileset
        """
        data = self.store.read_entry(self.tileset_key)
        if data is None:
            raise MalformedTilesetError(
                f"Package '{self.name}' has no tileset JSON entry '{self.tileset_key}'"
            )
        return parse_tileset(data, f"{self.name}:{self.tileset_key}")

    def write_tileset(self, tileset: Tileset, indent: int = 2) -> None:
        self.store.write_entry(self.tileset_key, serialize_tileset(tileset, indent))

    def close(self) -> None:
        self.store.close()

    def discard(self) -> None:
        self.store.discard()

    def __enter__(self) -> "PackageHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.store.__exit__(exc_type, exc, tb)
