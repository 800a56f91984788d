# =============================================================================
# Tileset Upgrader
# =============================================================================
# Rewrites a tileset package to another 3D Tiles version:
# - the root tileset JSON and every nested external tileset are upgraded
#   structurally via the UpgradeRuleRegistry
# - B3DM / I3DM / CMPT entries are passed through a content upgrade callback
# - all other entries are copied unchanged
# =============================================================================

import gzip
import logging
import posixpath
from typing import Any, Callable

from ..content.classifier import GZIP_MAGIC, ContentType, classify_content, is_upgradable_content, ungzip
from ..content.tile_formats import upgrade_embedded_glb
from ..errors import TilesetError
from ..models.config import GltfUpgradeOptions
from ..models.tileset import Tileset, parse_tileset, serialize_tileset
from ..models.version import SUPPORTED_VERSIONS
from ..paths import are_equal_packages
from ..storage.factory import open_package_for_read, open_package_for_write
from .common import check_content_keys
from .upgrade_rules import UpgradeRuleRegistry

__all__ = ["ContentUpgrade", "GlbUpgrade", "GlbContentUpgrade", "TilesetUpgrader"]

logger = logging.getLogger(__name__)

# (content bytes, content type) -> upgraded content bytes
ContentUpgrade = Callable[[bytes, ContentType], bytes]

# (GLB bytes, options) -> upgraded GLB bytes
GlbUpgrade = Callable[[bytes, GltfUpgradeOptions], bytes]


class GlbContentUpgrade:
    """
    Default content upgrade for tiles wrapping a GLB payload.

    Legacy B3DM headers are rewritten to the current layout. When a
    `glb_upgrade` hook is given, every embedded GLB (including those in
    CMPT inner tiles) is replaced by the hook's result.
    """

    def __init__(self, options: GltfUpgradeOptions | None = None, glb_upgrade: GlbUpgrade | None = None):
        self.options = options or GltfUpgradeOptions()
        self.glb_upgrade = glb_upgrade

    def __call__(self, data: bytes, content_type: ContentType) -> bytes:
        hook = None
        if self.glb_upgrade is not None:
            def hook(glb: bytes) -> bytes:
                return self.glb_upgrade(glb, self.options)

        return upgrade_embedded_glb(data, hook, self.options.normalize_legacy_headers)


class TilesetUpgrader:
    """
    Upgrades (or downgrades) a tileset package to a target version.

    Args:
        target_version: "1.0" or "1.1"
        gltf_upgrade_options: Options for the default GlbContentUpgrade, used
            when no content_upgrade is given
        content_upgrade: Callback for B3DM/I3DM/CMPT entries
        upgradable_detector: Decides whether entry bytes go through
            content_upgrade (default: B3DM/I3DM/CMPT sniffing)
        json_indent: Indentation of the written tileset JSON
    """

    def __init__(
        self,
        target_version: str,
        gltf_upgrade_options: GltfUpgradeOptions | dict[str, Any] | None = None,
        content_upgrade: ContentUpgrade | None = None,
        upgradable_detector: Callable[[bytes], bool] = is_upgradable_content,
        json_indent: int = 2,
    ):
        if target_version not in SUPPORTED_VERSIONS:
            raise TilesetError(
                f"Unknown target version '{target_version}', expected one of {SUPPORTED_VERSIONS}"
            )
        if isinstance(gltf_upgrade_options, dict):
            gltf_upgrade_options = GltfUpgradeOptions.model_validate(gltf_upgrade_options)
        if content_upgrade is None and gltf_upgrade_options is not None:
            content_upgrade = GlbContentUpgrade(gltf_upgrade_options)

        self.target_version = target_version
        self.content_upgrade = content_upgrade
        self.upgradable_detector = upgradable_detector
        self.json_indent = json_indent

    def upgrade_tileset(self, tileset: Tileset) -> Tileset:
        """
        Return an upgraded copy of the document. The given document is not modified.

        Raises:
            MalformedTilesetError: If the document's version is unknown
            UnsupportedDowngradeError: If the target version cannot express the document
        """
        rule = UpgradeRuleRegistry.get_rule(tileset.asset.version, self.target_version)
        upgraded = tileset.model_copy(deep=True)
        rule.apply(upgraded)
        return upgraded

    def upgrade(self, source_name: str, target_name: str, overwrite: bool) -> None:
        """
        Upgrade a whole package into a new package.

        Raises:
            TilesetError: If source and target are the same package
            TargetExistsError: If the target exists and overwrite is False
            DanglingReferenceError: If the root tileset or a nested tileset
                references content the package does not contain
        """
        if are_equal_packages(source_name, target_name):
            raise TilesetError(f"Source and target are the same package: '{source_name}'")

        logger.info(f"Upgrading '{source_name}' to version {self.target_version} into '{target_name}'")
        copied = 0
        with open_package_for_read(source_name) as source:
            keys = source.store.list_keys()
            tileset = source.read_tileset()
            key_set = set(keys)
            check_content_keys(tileset, key_set, "", source.name)
            upgraded = self.upgrade_tileset(tileset)

            with open_package_for_write(target_name, overwrite) as target:
                for key in keys:
                    if key == source.tileset_key:
                        continue
                    data = source.store.read_entry(key)
                    target.store.write_entry(key, self._upgrade_entry(key, data, source.name, key_set))
                    copied += 1
                target.write_tileset(upgraded, self.json_indent)

        logger.info(f"Upgraded '{source_name}' into '{target_name}' ({copied} entries)")

    def _upgrade_entry(self, key: str, data: bytes, package_name: str, keys: set[str]) -> bytes:
        content_type = classify_content(data)

        if content_type == ContentType.TILESET:
            logger.debug(f"Upgrading nested tileset '{key}'")
            nested = parse_tileset(data, f"{package_name}:{key}")
            check_content_keys(nested, keys, posixpath.dirname(key), package_name)
            return _keep_compression(data, serialize_tileset(self.upgrade_tileset(nested), self.json_indent))

        if self.content_upgrade is not None and self.upgradable_detector(data):
            logger.debug(f"Upgrading {content_type.value} content '{key}'")
            try:
                upgraded = self.content_upgrade(ungzip(data), content_type)
            except TilesetError:
                raise
            except Exception as exc:
                raise TilesetError(f"Content upgrade failed for '{key}': {exc}") from exc
            return _keep_compression(data, upgraded)

        logger.debug(f"Copying '{key}'")
        return data


def _keep_compression(original: bytes, data: bytes) -> bytes:
    if original[:2] == GZIP_MAGIC:
        return gzip.compress(data, mtime=0)
    return data
