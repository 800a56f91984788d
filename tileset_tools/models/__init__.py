# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models for tileset documents and tool configuration.
# =============================================================================

"""
Data models for the tileset tools.

This library provides:
- Tileset, Tile, Content, BoundingVolume, Asset: tileset document model
- VersionTag: (major, minor) document version
- Configuration models
"""

from .version import SUPPORTED_VERSIONS, VersionTag, validate_version

from .tileset import (
    REFINE_MODES,
    Asset,
    BoundingVolume,
    Content,
    Tile,
    Tileset,
    parse_tileset,
    serialize_tileset,
    traverse_tiles,
    wrap_root,
)

from .config import (
    GltfUpgradeOptions,
    MinIOSettings,
    TilesetToolsSettings,
)

__all__ = [
    # Versions
    "SUPPORTED_VERSIONS",
    "VersionTag",
    "validate_version",
    # Document model
    "REFINE_MODES",
    "Asset",
    "BoundingVolume",
    "Content",
    "Tile",
    "Tileset",
    "parse_tileset",
    "serialize_tileset",
    "traverse_tiles",
    "wrap_root",
    # Configuration models
    "GltfUpgradeOptions",
    "MinIOSettings",
    "TilesetToolsSettings",
]
