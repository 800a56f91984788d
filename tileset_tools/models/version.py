# =============================================================================
# Version Tag Module
# =============================================================================
# Two-part (major, minor) 3D Tiles version attached to a tileset document.
# =============================================================================

from typing import NamedTuple

__all__ = ["VersionTag", "SUPPORTED_VERSIONS", "validate_version"]

SUPPORTED_VERSIONS = ("1.0", "1.1")


def validate_version(value: str) -> str:
    """
    Validate a tileset asset.version string.

    Raises:
        ValueError: If the value is not a string or not one of SUPPORTED_VERSIONS
    """
    if not isinstance(value, str):
        raise ValueError(f"asset.version must be a string, got {type(value).__name__}")
    if value not in SUPPORTED_VERSIONS:
        raise ValueError(
            f"Unsupported asset.version '{value}'. Expected one of: {', '.join(SUPPORTED_VERSIONS)}"
        )
    return value


class VersionTag(NamedTuple):
    """Version of a tileset, ordered by (major, minor)."""

    major: int
    minor: int

    @classmethod
    def parse(cls, value: str) -> "VersionTag":
        """
        Parse a "major.minor" string.

        Examples:
            >>> VersionTag.parse("1.1")
            VersionTag(major=1, minor=1)
        """
        parts = value.split(".")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid version string: '{value}'")
        return cls(int(parts[0]), int(parts[1]))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"
