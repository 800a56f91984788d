# =============================================================================
# Content Library
# =============================================================================
# Content type detection and binary tile format handling.
# =============================================================================

"""
Content handling for tileset packages.

This library provides:
- classify_content / is_external_tileset: content type sniffing
- TileData and readers/writers for B3DM, I3DM and CMPT tiles
- upgrade_embedded_glb: rewrite the glTF payload of a binary tile
"""

from .classifier import (
    ContentKind,
    ContentType,
    UPGRADABLE_TYPES,
    classify_content,
    content_kind,
    is_external_tileset,
    is_upgradable_content,
    ungzip,
)
from .tile_formats import (
    TileData,
    read_composite,
    read_tile_data,
    upgrade_embedded_glb,
    write_composite,
    write_tile_data,
)

__all__ = [
    "ContentKind",
    "ContentType",
    "UPGRADABLE_TYPES",
    "classify_content",
    "content_kind",
    "is_external_tileset",
    "is_upgradable_content",
    "ungzip",
    "TileData",
    "read_composite",
    "read_tile_data",
    "upgrade_embedded_glb",
    "write_composite",
    "write_tile_data",
]
