# =============================================================================
# Upgrade Rules
# =============================================================================
# Structural rewrites of a tileset document between 3D Tiles versions, and
# the registry mapping (source version, target version) to a rule.
# =============================================================================

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from ..errors import MalformedTilesetError, TilesetError, UnsupportedDowngradeError
from ..models.tileset import Content, Tileset, traverse_tiles
from ..models.version import SUPPORTED_VERSIONS
from .common import (
    CONTENT_GLTF_EXTENSION,
    IMPLICIT_TILING_EXTENSION,
    MULTIPLE_CONTENTS_EXTENSION,
    declare_extension,
    remove_extension_declarations,
    tile_extensions,
)

__all__ = [
    "UpgradeRule",
    "IdentityRule",
    "UpgradeTo11Rule",
    "DowngradeTo10Rule",
    "UpgradeRuleRegistry",
]

logger = logging.getLogger(__name__)

_GLTF_SUFFIXES = (".glb", ".gltf")

# 1.1 properties without a 1.0 counterpart
_TILESET_METADATA_PROPERTIES = ("schema", "schemaUri", "statistics", "groups", "metadata")
_TILE_METADATA_PROPERTIES = ("metadata",)
_CONTENT_METADATA_PROPERTIES = ("metadata", "group")


class UpgradeRule(ABC):
    """
    Base class for version transitions.

    A rule rewrites a document in place. Callers that need the original
    document must pass a copy.
    """

    source_version: str
    target_version: str

    @abstractmethod
    def apply(self, tileset: Tileset) -> None:
        """
        Rewrite the document from source_version to target_version.

        Raises:
            MalformedTilesetError: If the document cannot be rewritten
            UnsupportedDowngradeError: If the target version cannot express it
        """
        pass


class IdentityRule(UpgradeRule):
    """Same-version transition. Only re-validates the document."""

    def __init__(self, version: str):
        self.source_version = version
        self.target_version = version

    def apply(self, tileset: Tileset) -> None:
        try:
            Tileset.model_validate(tileset.to_dict())
        except ValidationError as exc:
            raise MalformedTilesetError(f"Tileset is malformed: {exc.errors()[0]['msg']}") from exc


class UpgradeTo11Rule(UpgradeRule):
    """
    1.0 → 1.1.

    Promotes the multiple-contents and implicit-tiling extensions into core
    properties, upper-cases refine modes and drops the glTF content
    extension, which 1.1 no longer needs.
    """

    source_version = "1.0"
    target_version = "1.1"

    def apply(self, tileset: Tileset) -> None:
        for tile, _ in traverse_tiles(tileset.root):
            if tile.refine is not None:
                tile.refine = tile.refine.upper()

            extensions = tile_extensions(tile)
            if extensions:
                multiple = extensions.pop(MULTIPLE_CONTENTS_EXTENSION, None)
                if multiple is not None:
                    tile.contents = (tile.contents or []) + self._promoted_contents(multiple)
                implicit = extensions.pop(IMPLICIT_TILING_EXTENSION, None)
                if implicit is not None:
                    tile.implicit_tiling = implicit
                if not extensions:
                    del tile.model_extra["extensions"]

            if tile.content is not None and tile.contents:
                tile.contents = [tile.content] + tile.contents
                tile.content = None

        if tileset.root.refine is None:
            tileset.root.refine = "REPLACE"

        remove_extension_declarations(
            tileset,
            {CONTENT_GLTF_EXTENSION, MULTIPLE_CONTENTS_EXTENSION, IMPLICIT_TILING_EXTENSION},
        )
        tileset.asset.version = self.target_version

    @staticmethod
    def _promoted_contents(extension: dict) -> list[Content]:
        try:
            return [Content.model_validate(entry) for entry in extension.get("contents") or []]
        except ValidationError as exc:
            raise MalformedTilesetError(
                f"Invalid {MULTIPLE_CONTENTS_EXTENSION} content: {exc.errors()[0]['msg']}"
            ) from exc


class DowngradeTo10Rule(UpgradeRule):
    """
    1.1 → 1.0.

    Only single-entry `contents` can be expressed in 1.0; implicit tiling
    moves back into its extension. Metadata and groups (`schema`,
    `schemaUri`, `statistics`, `groups` and `metadata` on the tileset,
    `metadata` on tiles, `metadata` and `group` on contents) have no 1.0
    form and are rejected rather than written into a 1.0 document.
    """

    source_version = "1.1"
    target_version = "1.0"

    def apply(self, tileset: Tileset) -> None:
        _check_no_metadata(tileset)

        uses_gltf = False
        uses_implicit = False

        for tile, _ in traverse_tiles(tileset.root):
            if tile.contents:
                refs = tile.content_refs()
                if len(refs) > 1:
                    raise UnsupportedDowngradeError(
                        f"A tile with {len(refs)} contents cannot be expressed in 3D Tiles 1.0"
                    )
                tile.content = refs[0]
                tile.contents = None

            if tile.implicit_tiling is not None:
                tile.model_extra.setdefault("extensions", {})[IMPLICIT_TILING_EXTENSION] = tile.implicit_tiling
                tile.implicit_tiling = None
                uses_implicit = True

            if any(ref.uri.lower().endswith(_GLTF_SUFFIXES) for ref in tile.content_refs()):
                uses_gltf = True

        if uses_gltf:
            declare_extension(tileset, CONTENT_GLTF_EXTENSION, required=True)
        if uses_implicit:
            declare_extension(tileset, IMPLICIT_TILING_EXTENSION, required=True)
        tileset.asset.version = self.target_version


def _check_no_metadata(tileset: Tileset) -> None:
    def present(model, names):
        return [name for name in names if name in (model.model_extra or {})]

    found = present(tileset, _TILESET_METADATA_PROPERTIES)
    if found:
        raise UnsupportedDowngradeError(f"Tileset properties {found} cannot be expressed in 3D Tiles 1.0")
    for tile, _ in traverse_tiles(tileset.root):
        found = present(tile, _TILE_METADATA_PROPERTIES)
        for content in tile.content_refs():
            found += present(content, _CONTENT_METADATA_PROPERTIES)
        if found:
            raise UnsupportedDowngradeError(f"Tile properties {found} cannot be expressed in 3D Tiles 1.0")


class UpgradeRuleRegistry:
    """
    Registry of version transitions.

    Rules are instantiated fresh on each lookup (no shared state).
    """

    @staticmethod
    def get_rule(source_version: str, target_version: str) -> UpgradeRule:
        """
        Get the rule rewriting source_version documents into target_version.

        Raises:
            MalformedTilesetError: If source_version is not a known version
            TilesetError: If target_version is not a known version
        """
        if source_version not in SUPPORTED_VERSIONS:
            raise MalformedTilesetError(f"Unknown tileset version '{source_version}'")
        if target_version not in SUPPORTED_VERSIONS:
            raise TilesetError(
                f"Unknown target version '{target_version}', expected one of {SUPPORTED_VERSIONS}"
            )

        if source_version == target_version:
            return IdentityRule(source_version)

        rules = {
            ("1.0", "1.1"): UpgradeTo11Rule,
            ("1.1", "1.0"): DowngradeTo10Rule,
        }
        rule = rules[(source_version, target_version)]()
        logger.debug(f"Using {type(rule).__name__} for {source_version} -> {target_version}")
        return rule
