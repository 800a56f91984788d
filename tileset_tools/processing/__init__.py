# =============================================================================
# Processing Module
# =============================================================================
# Package operations: combine, merge and upgrade.
# =============================================================================

from .combiner import TilesetCombiner
from .merger import TilesetMerger, namespace_prefix
from .upgrade_rules import (
    DowngradeTo10Rule,
    IdentityRule,
    UpgradeRule,
    UpgradeRuleRegistry,
    UpgradeTo11Rule,
)
from .upgrader import ContentUpgrade, GlbContentUpgrade, GlbUpgrade, TilesetUpgrader

__all__ = [
    "TilesetCombiner",
    "TilesetMerger",
    "namespace_prefix",
    "TilesetUpgrader",
    "GlbContentUpgrade",
    "ContentUpgrade",
    "GlbUpgrade",
    "UpgradeRule",
    "IdentityRule",
    "UpgradeTo11Rule",
    "DowngradeTo10Rule",
    "UpgradeRuleRegistry",
]
