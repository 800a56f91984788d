# =============================================================================
# Tileset Combiner
# =============================================================================
# Inlines every external tileset referenced (transitively) by a package's
# root tileset, producing a package with a single tileset JSON.
# =============================================================================

"""
Combine operation.

External tilesets are content entries that are themselves tileset JSON
documents. The combiner replaces each such reference by the root tile of
the referenced tileset, recursively. Every other entry of the package is
copied unchanged, so resources that content refers to stay resolvable.
"""

import logging
import posixpath
from typing import Callable

from ..content.classifier import is_external_tileset
from ..errors import CyclicReferenceError, DanglingReferenceError, TilesetError
from ..models.tileset import Content, Tile, Tileset, parse_tileset, traverse_tiles
from ..paths import are_equal_packages, resolve_content_key
from ..storage.base import PackageHandle
from ..storage.factory import open_package_for_read, open_package_for_write
from .common import implicit_tiling_of, merge_extension_declarations

__all__ = ["TilesetCombiner"]

logger = logging.getLogger(__name__)


class TilesetCombiner:
    """
    Combines a package's nested external tilesets into one tileset JSON.

    Args:
        external_tileset_detector: Decides whether content bytes are an
            external tileset (default: tileset JSON sniffing)
        json_indent: Indentation of the written tileset JSON
    """

    def __init__(
        self,
        external_tileset_detector: Callable[[bytes], bool] = is_external_tileset,
        json_indent: int = 2,
    ):
        self.external_tileset_detector = external_tileset_detector
        self.json_indent = json_indent

    def combine(self, source_name: str, target_name: str, overwrite: bool) -> None:
        """
        Combine the source package into the target package.

        Every source entry is copied except the root tileset JSON and the
        external tilesets that were inlined. Entries that content refers to
        indirectly (glTF buffers and images, subtree buffers) are kept.

        Raises:
            TilesetError: If source and target are the same package
            TargetExistsError: If the target exists and overwrite is False
            DanglingReferenceError: If a content URI does not resolve to an entry
            CyclicReferenceError: If external tilesets reference each other in a cycle
        """
        if are_equal_packages(source_name, target_name):
            raise TilesetError(f"Source and target are the same package: '{source_name}'")

        logger.info(f"Combining '{source_name}' into '{target_name}'")
        with open_package_for_read(source_name) as source:
            tileset = source.read_tileset()
            inlined_keys: set[str] = set()
            combined = self._combine_tileset(
                source, source.tileset_key, tileset, [source.tileset_key], inlined_keys
            )

            copied = 0
            with open_package_for_write(target_name, overwrite) as target:
                for key in source.store.list_keys():
                    if key == source.tileset_key or key in inlined_keys:
                        continue
                    logger.debug(f"Copying '{key}'")
                    target.store.write_entry(key, source.store.read_entry(key))
                    copied += 1
                target.write_tileset(combined, self.json_indent)

        logger.info(
            f"Combined '{source_name}' into '{target_name}' "
            f"({len(inlined_keys)} tilesets inlined, {copied} entries copied)"
        )

    def _combine_tileset(
        self,
        source: PackageHandle,
        tileset_key: str,
        tileset: Tileset,
        chain: list[str],
        inlined_keys: set[str],
    ) -> Tileset:
        """
        Return a copy of `tileset` with all external tilesets inlined.

        Content URIs of the result are package keys. Keys of inlined
        tilesets are added to `inlined_keys`.
        """
        combined = tileset.model_copy(deep=True)
        base_dir = posixpath.dirname(tileset_key)

        # Snapshot: inlined roots are already combined and must not be revisited
        for tile, _ in list(traverse_tiles(combined.root)):
            implicit = implicit_tiling_of(tile)
            if implicit is not None:
                _rebase_implicit_tile(tile, implicit, base_dir, source.name)
                continue

            for content in tile.content_refs():
                key = resolve_content_key(base_dir, content.uri, source.name)
                data = source.store.read_entry(key)
                if data is None:
                    raise DanglingReferenceError(content.uri, source.name)

                if not self.external_tileset_detector(data):
                    content.uri = key
                    continue

                if key in chain:
                    raise CyclicReferenceError(chain + [key])

                logger.debug(f"Inlining external tileset '{key}'")
                nested = parse_tileset(data, f"{source.name}:{key}")
                nested_combined = self._combine_tileset(source, key, nested, chain + [key], inlined_keys)
                inlined_keys.add(key)
                merge_extension_declarations(combined, nested_combined)
                tile.replace_content(content, None)
                tile.add_child(_inlined_child(content, nested_combined.root))

        return combined


def _rebase_implicit_tile(tile: Tile, implicit: dict, base_dir: str, package_name: str) -> None:
    for content in tile.content_refs():
        content.uri = resolve_content_key(base_dir, content.uri, package_name)

    subtrees = implicit.get("subtrees")
    if isinstance(subtrees, dict) and subtrees.get("uri"):
        subtrees["uri"] = resolve_content_key(base_dir, subtrees["uri"], package_name)


def _inlined_child(content: Content, nested_root: Tile) -> Tile:
    if content.bounding_volume is None:
        return nested_root
    return Tile.synthetic(
        [nested_root],
        bounding_volume=content.bounding_volume.model_copy(deep=True),
        geometric_error=nested_root.geometric_error,
    )
