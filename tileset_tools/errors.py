# =============================================================================
# Tileset Errors
# =============================================================================
# Typed error hierarchy raised by the combine / merge / upgrade operations.
# =============================================================================

"""
Error taxonomy for tileset package operations.

Every error is fatal to the operation that raised it. Callers can catch
`TilesetError` to handle all of them, or one of the subclasses for a
specific failure.
"""

__all__ = [
    "TilesetError",
    "MalformedTilesetError",
    "TargetExistsError",
    "DanglingReferenceError",
    "CyclicReferenceError",
    "UnsupportedDowngradeError",
    "TileFormatError",
]


class TilesetError(RuntimeError):
    """Base class for all tileset errors, also wraps package store I/O failures."""


class MalformedTilesetError(TilesetError):
    """Tileset JSON is structurally invalid (missing fields, unknown asset.version)."""


class TargetExistsError(TilesetError):
    """Target package already exists and overwrite was not requested."""


class DanglingReferenceError(TilesetError):
    """A content URI does not resolve to an entry of its package."""

    def __init__(self, uri: str, package_name: str):
        super().__init__(f"Content '{uri}' does not resolve to an entry in '{package_name}'")
        self.uri = uri
        self.package_name = package_name


class CyclicReferenceError(TilesetError):
    """An external tileset references itself through nested tilesets."""

    def __init__(self, chain: list[str]):
        super().__init__(f"Cyclic external tileset reference: {' -> '.join(chain)}")
        self.chain = chain


class UnsupportedDowngradeError(TilesetError):
    """A 1.1 structure cannot be expressed in 1.0 without losing data."""


class TileFormatError(TilesetError):
    """Binary tile content (B3DM, I3DM, CMPT) could not be parsed."""
