# =============================================================================
# Package Store Factory
# =============================================================================
# Selects the store backend from a package name and opens package handles.
# =============================================================================

import os

from ..paths import determine_tileset_json_file_name, is_json_name
from .archive import ZipPackageStore
from .base import PackageHandle, PackageStore
from .directory import DirectoryPackageStore
from .minio_store import MinioPackageStore
from .sqlite_store import SqlitePackageStore

__all__ = ["store_class_for", "open_package_for_read", "open_package_for_write"]


def store_class_for(name: str) -> type[PackageStore]:
    """
    Select the store backend for a package name.

    - "s3://bucket/prefix" → MinioPackageStore
    - "*.3tz" → ZipPackageStore
    - "*.3dtiles" → SqlitePackageStore
    - anything else → DirectoryPackageStore
    """
    lowered = name.lower()
    if lowered.startswith("s3://"):
        return MinioPackageStore
    if lowered.endswith(".3tz"):
        return ZipPackageStore
    if lowered.endswith(".3dtiles"):
        return SqlitePackageStore
    return DirectoryPackageStore


def _store_name(name: str, store_class: type[PackageStore]) -> str:
    # Directory packages named by their tileset JSON live in its directory
    if store_class is DirectoryPackageStore and is_json_name(name):
        return os.path.dirname(name) or "."
    return name


def open_package_for_read(name: str) -> PackageHandle:
    """Open a source package read-only."""
    store_class = store_class_for(name)
    store = store_class.open_for_read(_store_name(name, store_class))
    return PackageHandle(store, determine_tileset_json_file_name(name))


def open_package_for_write(name: str, overwrite: bool) -> PackageHandle:
    """
    Open a target package for writing.

    Raises:
        TargetExistsError: If the package exists and overwrite is False
    """
    store_class = store_class_for(name)
    store = store_class.open_for_write(_store_name(name, store_class), overwrite)
    return PackageHandle(store, determine_tileset_json_file_name(name))
