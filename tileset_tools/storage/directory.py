# =============================================================================
# Directory Package Store
# =============================================================================
# Tileset package stored as plain files below a directory.
# =============================================================================

import logging
import os
import shutil
import uuid
from pathlib import Path

from ..errors import TargetExistsError, TilesetError
from .base import PackageStore

__all__ = ["DirectoryPackageStore"]

logger = logging.getLogger(__name__)


class DirectoryPackageStore(PackageStore):
    """
    Package stored as files in a directory; keys are posix paths relative to it.

    Writes go to a hidden sibling staging directory that replaces the target
    directory on close.
    """

    def __init__(
        self,
        name: str,
        root: Path,
        writable: bool,
        overwrite: bool = False,
        staging: Path | None = None,
    ):
        super().__init__(name, writable, overwrite)
        self.root = root
        self.staging = staging

    @classmethod
    def open_for_read(cls, name: str) -> "DirectoryPackageStore":
        root = Path(name)
        if not root.is_dir():
            raise TilesetError(f"Source package directory not found: {name}")
        return cls(name, root, writable=False)

    @classmethod
    def open_for_write(cls, name: str, overwrite: bool) -> "DirectoryPackageStore":
        root = Path(name).resolve()
        if root == Path.cwd().resolve() or root.parent == root:
            raise TilesetError(f"Refusing to use '{name}' as a target directory; choose a subdirectory")
        if cls._exists(root) and not overwrite:
            raise TargetExistsError(f"Target package already exists: {name}")

        staging = root.parent / f".{root.name}.partial-{uuid.uuid4().hex[:8]}"
        try:
            staging.mkdir(parents=True)
        except OSError as exc:
            raise TilesetError(f"Failed to create staging directory for '{name}': {exc}") from exc
        logger.debug(f"Staging '{name}' in {staging}")
        return cls(name, root, writable=True, overwrite=overwrite, staging=staging)

    @staticmethod
    def _exists(root: Path) -> bool:
        if not root.exists():
            return False
        return root.is_file() or any(root.iterdir())

    def _read(self, key: str) -> bytes | None:
        path = self.root / key
        if not path.is_file():
            return None
        return path.read_bytes()

    def _keys(self) -> list[str]:
        return [p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file()]

    def _write(self, key: str, data: bytes) -> None:
        path = self.staging / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def _finalize(self) -> None:
        if self._exists(self.root) and not self.overwrite:
            shutil.rmtree(self.staging, ignore_errors=True)
            raise TargetExistsError(f"Target package appeared while writing: {self.name}")
        if self.root.is_dir():
            shutil.rmtree(self.root)
        elif self.root.exists():
            self.root.unlink()
        os.replace(self.staging, self.root)

    def _abandon(self) -> None:
        shutil.rmtree(self.staging, ignore_errors=True)

    def _release(self) -> None:
        pass
