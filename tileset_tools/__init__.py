# =============================================================================
# Tileset Tools
# =============================================================================
# Combine, merge and upgrade 3D Tiles tileset packages stored as directories,
# 3TZ archives, 3DTILES databases or MinIO prefixes.
# =============================================================================

from .errors import (
    CyclicReferenceError,
    DanglingReferenceError,
    MalformedTilesetError,
    TargetExistsError,
    TileFormatError,
    TilesetError,
    UnsupportedDowngradeError,
)
from .models import GltfUpgradeOptions, Tile, Tileset, parse_tileset, serialize_tileset
from .tilesets import Tilesets

__version__ = "0.1.0"

__all__ = [
    "Tilesets",
    "Tileset",
    "Tile",
    "GltfUpgradeOptions",
    "parse_tileset",
    "serialize_tileset",
    "TilesetError",
    "MalformedTilesetError",
    "TargetExistsError",
    "DanglingReferenceError",
    "CyclicReferenceError",
    "UnsupportedDowngradeError",
    "TileFormatError",
]
