# =============================================================================
# Processing Helpers
# =============================================================================
# Helpers shared by the combine, merge and upgrade operations:
# - extension declarations (extensionsUsed / extensionsRequired)
# - implicit tiling lookup
# - content reference checks against the keys of a package
# =============================================================================

from typing import Any

from ..errors import DanglingReferenceError
from ..models.tileset import Tile, Tileset, traverse_tiles
from ..paths import resolve_content_key

__all__ = [
    "CONTENT_GLTF_EXTENSION",
    "IMPLICIT_TILING_EXTENSION",
    "MULTIPLE_CONTENTS_EXTENSION",
    "tile_extensions",
    "implicit_tiling_of",
    "declare_extension",
    "remove_extension_declarations",
    "merge_extension_declarations",
    "check_content_keys",
]

CONTENT_GLTF_EXTENSION = "3DTILES_content_gltf"
IMPLICIT_TILING_EXTENSION = "3DTILES_implicit_tiling"
MULTIPLE_CONTENTS_EXTENSION = "3DTILES_multiple_contents"


def tile_extensions(tile: Tile) -> dict[str, Any] | None:
    """The tile's `extensions` object, or None when absent."""
    return (tile.model_extra or {}).get("extensions")


def implicit_tiling_of(tile: Tile) -> dict[str, Any] | None:
    """Implicit tiling definition in 1.1 form or as the 1.0 extension."""
    if tile.implicit_tiling is not None:
        return tile.implicit_tiling
    return (tile_extensions(tile) or {}).get(IMPLICIT_TILING_EXTENSION)


def declare_extension(tileset: Tileset, name: str, required: bool = False) -> None:
    """Add an extension to extensionsUsed (and extensionsRequired) if missing."""
    used = list(tileset.extensions_used or [])
    if name not in used:
        used.append(name)
    tileset.extensions_used = used

    if required:
        required_list = list(tileset.extensions_required or [])
        if name not in required_list:
            required_list.append(name)
        tileset.extensions_required = required_list


def remove_extension_declarations(tileset: Tileset, names: set[str]) -> None:
    """Remove extensions from both declaration lists, dropping lists that become empty."""
    used = [name for name in tileset.extensions_used or [] if name not in names]
    required = [name for name in tileset.extensions_required or [] if name not in names]
    tileset.extensions_used = used or None
    tileset.extensions_required = required or None


def merge_extension_declarations(target: Tileset, source: Tileset) -> None:
    """Add the extensions declared by `source` to `target`, keeping order."""
    required = set(source.extensions_required or [])
    for name in source.extensions_used or []:
        declare_extension(target, name, required=name in required)


def check_content_keys(tileset: Tileset, keys: set[str], base_dir: str, package_name: str) -> None:
    """
    Verify that every explicit content URI of the document resolves to one of `keys`.

    URIs are resolved against `base_dir`, the directory of the document's
    own key. Implicit tiles are skipped; their URIs are templates.

    Raises:
        DanglingReferenceError: If a content URI has no matching entry
    """
    for tile, _ in traverse_tiles(tileset.root):
        if implicit_tiling_of(tile) is not None:
            continue
        for content in tile.content_refs():
            if resolve_content_key(base_dir, content.uri, package_name) not in keys:
                raise DanglingReferenceError(content.uri, package_name)
