# =============================================================================
# Tileset Merger
# =============================================================================
# Merges several tileset packages into one package whose synthetic root has
# one child per source. Source i's entries are namespaced under "tileset_i/".
# =============================================================================

import logging
from contextlib import ExitStack

from ..bounding_volumes import union_bounding_volumes
from ..errors import TilesetError
from ..models.tileset import Asset, Tile, Tileset, traverse_tiles
from ..models.version import VersionTag
from ..paths import are_equal_packages, resolve_content_key
from ..storage.factory import open_package_for_read, open_package_for_write
from .common import check_content_keys, implicit_tiling_of, merge_extension_declarations

__all__ = ["TilesetMerger", "namespace_prefix"]

logger = logging.getLogger(__name__)


def namespace_prefix(index: int) -> str:
    """Key prefix of the entries of the index-th source, e.g. "tileset_0/"."""
    return f"tileset_{index}/"


class TilesetMerger:
    """
    Merges tileset packages under a synthetic root.

    Args:
        json_indent: Indentation of the written tileset JSON
    """

    def __init__(self, json_indent: int = 2):
        self.json_indent = json_indent

    def merge(self, source_names: list[str], target_name: str, overwrite: bool) -> None:
        """
        Merge the source packages into the target package.

        Raises:
            TilesetError: If no sources are given, or a source is the target package
            TargetExistsError: If the target exists and overwrite is False
            DanglingReferenceError: If a source declares content it does not contain
        """
        if not source_names:
            raise TilesetError("At least one source tileset is required for merging")
        for source_name in source_names:
            if are_equal_packages(source_name, target_name):
                raise TilesetError(f"Source and target are the same package: '{source_name}'")

        logger.info(f"Merging {len(source_names)} tilesets into '{target_name}'")
        with ExitStack() as stack:
            sources = [stack.enter_context(open_package_for_read(name)) for name in source_names]
            tilesets = [source.read_tileset() for source in sources]
            for source, tileset in zip(sources, tilesets):
                check_content_keys(tileset, set(source.store.list_keys()), "", source.name)
            merged = self.merge_tilesets(tilesets)

            with open_package_for_write(target_name, overwrite) as target:
                for index, source in enumerate(sources):
                    prefix = namespace_prefix(index)
                    for key in source.store.list_keys():
                        if key == source.tileset_key:
                            continue
                        logger.debug(f"Copying '{source.name}:{key}' to '{prefix}{key}'")
                        target.store.write_entry(prefix + key, source.store.read_entry(key))
                target.write_tileset(merged, self.json_indent)

        logger.info(f"Merged {len(source_names)} tilesets into '{target_name}'")

    def merge_tilesets(self, tilesets: list[Tileset]) -> Tileset:
        """
        Build the merged document. The given documents are not modified.

        Content URIs of the i-th document are prefixed with "tileset_i/".

        Raises:
            TilesetError: If no documents are given
        """
        if not tilesets:
            raise TilesetError("At least one source tileset is required for merging")

        children = []
        for index, tileset in enumerate(tilesets):
            child = tileset.root.model_copy(deep=True)
            _prefix_content_uris(child, namespace_prefix(index), f"source {index}")
            children.append(child)

        bounding_volume = union_bounding_volumes(
            [(tileset.root.bounding_volume, tileset.root.transform) for tileset in tilesets]
        )
        root_error = max(tileset.root.geometric_error for tileset in tilesets)
        version = max((tileset.asset.version for tileset in tilesets), key=VersionTag.parse)

        merged = Tileset(
            asset=Asset(version=version),
            geometric_error=max([tileset.geometric_error for tileset in tilesets] + [root_error]),
            root=Tile.synthetic(children, bounding_volume, root_error, refine="ADD"),
        )
        for tileset in tilesets:
            merge_extension_declarations(merged, tileset)
        return merged


def _prefix_content_uris(root: Tile, prefix: str, label: str) -> None:
    for tile, _ in traverse_tiles(root):
        for content in tile.content_refs():
            content.uri = prefix + resolve_content_key("", content.uri, label)

        implicit = implicit_tiling_of(tile)
        subtrees = implicit.get("subtrees") if implicit else None
        if isinstance(subtrees, dict) and subtrees.get("uri"):
            subtrees["uri"] = prefix + resolve_content_key("", subtrees["uri"], label)
