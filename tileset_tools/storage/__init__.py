# =============================================================================
# Storage Library
# =============================================================================
# Package stores: directories, 3TZ zip archives, 3DTILES SQLite databases
# and MinIO object storage.
# =============================================================================

"""
Package storage for the tileset tools.

This library provides:
- PackageStore: keyed byte-store base class
- PackageHandle: store plus root tileset JSON key
- Backends: DirectoryPackageStore, ZipPackageStore, SqlitePackageStore, MinioPackageStore
- open_package_for_read / open_package_for_write: backend selection by name
"""

from .base import PackageHandle, PackageStore
from .directory import DirectoryPackageStore
from .archive import ZipPackageStore
from .sqlite_store import SqlitePackageStore
from .minio_store import MinioPackageStore
from .factory import open_package_for_read, open_package_for_write, store_class_for

__all__ = [
    "PackageHandle",
    "PackageStore",
    "DirectoryPackageStore",
    "ZipPackageStore",
    "SqlitePackageStore",
    "MinioPackageStore",
    "open_package_for_read",
    "open_package_for_write",
    "store_class_for",
]
