# =============================================================================
# Tilesets Facade
# =============================================================================
# Entry points for the package operations: combine, merge and upgrade.
# =============================================================================

"""
Static facade over the package operations.

Example:
    >>> from tileset_tools import Tilesets
    >>> Tilesets.combine("input/tileset.json", "output", overwrite=True)
    >>> Tilesets.merge(["a", "b.3tz"], "merged.3tz", overwrite=False)
    >>> Tilesets.upgrade("old", "new", overwrite=False, target_version="1.1")
"""

from typing import Any

from . import paths
from .models.config import GltfUpgradeOptions
from .models.tileset import Tileset
from .processing.combiner import TilesetCombiner
from .processing.merger import TilesetMerger
from .processing.upgrader import ContentUpgrade, TilesetUpgrader

__all__ = ["Tilesets"]


class Tilesets:
    """
    Operations on tileset packages.

    Package names select the storage backend: "s3://bucket/prefix" for
    MinIO, "*.3tz" for zip archives, "*.3dtiles" for SQLite databases and
    anything else for a directory ("dir/name.json" selects the directory
    and the tileset JSON entry "name.json").

    All operations raise TilesetError (or a subclass) on failure and never
    leave a partial target behind.
    """

    @staticmethod
    def combine(source_name: str, target_name: str, overwrite: bool, json_indent: int = 2) -> None:
        """Inline all external tilesets of the source into a single tileset JSON."""
        TilesetCombiner(json_indent=json_indent).combine(source_name, target_name, overwrite)

    @staticmethod
    def merge(source_names: list[str], target_name: str, overwrite: bool, json_indent: int = 2) -> None:
        """Merge the sources as children of a synthetic root, namespacing source i under "tileset_i/"."""
        TilesetMerger(json_indent=json_indent).merge(source_names, target_name, overwrite)

    @staticmethod
    def upgrade(
        source_name: str,
        target_name: str,
        overwrite: bool,
        target_version: str,
        gltf_upgrade_options: GltfUpgradeOptions | dict[str, Any] | None = None,
        content_upgrade: ContentUpgrade | None = None,
        json_indent: int = 2,
    ) -> None:
        """
        Upgrade a package to the target version.

        Args:
            source_name: Source package name
            target_name: Target package name
            overwrite: Replace an existing target
            target_version: "1.0" or "1.1"
            gltf_upgrade_options: Options for the default B3DM/I3DM/CMPT content upgrade
            content_upgrade: Callback (bytes, content type) -> bytes for B3DM/I3DM/CMPT content
            json_indent: Indentation of the written tileset JSON
        """
        upgrader = TilesetUpgrader(
            target_version,
            gltf_upgrade_options=gltf_upgrade_options,
            content_upgrade=content_upgrade,
            json_indent=json_indent,
        )
        upgrader.upgrade(source_name, target_name, overwrite)

    @staticmethod
    def upgrade_tileset(tileset: Tileset, target_version: str) -> Tileset:
        """Return an upgraded copy of an in-memory tileset document."""
        return TilesetUpgrader(target_version).upgrade_tileset(tileset)

    @staticmethod
    def determine_tileset_json_file_name(name: str) -> str:
        return paths.determine_tileset_json_file_name(name)

    @staticmethod
    def are_equal_packages(name_a: str, name_b: str) -> bool:
        return paths.are_equal_packages(name_a, name_b)
