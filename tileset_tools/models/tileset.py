# =============================================================================
# Tileset Document Model
# =============================================================================
# Defines the in-memory tileset document:
# - BoundingVolume: box, region or sphere
# - Content: reference from a tile to an entry of the same package
# - Tile: node of the tile tree
# - Tileset: document root with asset metadata
# Plus parsing, serialization, traversal and re-rooting helpers.
# =============================================================================

import json
import zlib
from typing import Any, Iterator

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ..content.classifier import ungzip
from ..errors import MalformedTilesetError
from .version import VersionTag, validate_version

__all__ = [
    "BoundingVolume",
    "Content",
    "Tile",
    "Asset",
    "Tileset",
    "REFINE_MODES",
    "parse_tileset",
    "serialize_tileset",
    "traverse_tiles",
    "wrap_root",
]

REFINE_MODES = ("ADD", "REPLACE")

# Unknown properties (extensions, extras, metadata, ...) are kept verbatim
_DOCUMENT_CONFIG = ConfigDict(extra="allow", populate_by_name=True)


# =============================================================================
# Bounding Volume
# =============================================================================

class BoundingVolume(BaseModel):
    """
    Bounding volume of a tile or of a content entry.

    Attributes:
        box: Center followed by three half-axis vectors (12 numbers)
        region: [west, south, east, north, minHeight, maxHeight], radians and meters
        sphere: Center followed by radius (4 numbers)
    """

    box: list[float] | None = None
    region: list[float] | None = None
    sphere: list[float] | None = None

    model_config = _DOCUMENT_CONFIG

    @model_validator(mode="after")
    def validate_shape(self) -> "BoundingVolume":
        """Require at least one known volume (or an extension) with correct arity."""
        expected_lengths = {"box": 12, "region": 6, "sphere": 4}
        defined = False
        for name, length in expected_lengths.items():
            value = getattr(self, name)
            if value is None:
                continue
            if len(value) != length:
                raise ValueError(f"boundingVolume.{name} must have {length} elements, got {len(value)}")
            defined = True

        if not defined and not (self.model_extra or {}).get("extensions"):
            raise ValueError("boundingVolume must define a box, region or sphere")
        return self


# =============================================================================
# Content
# =============================================================================

class Content(BaseModel):
    """
    Reference from a tile to a content entry (renderable geometry or an
    external tileset) in the same package.

    The pre-1.0 property name "url" is accepted and written back as "uri".
    """

    uri: str = Field(
        ...,
        validation_alias=AliasChoices("uri", "url"),
        serialization_alias="uri",
        description="URI of the content, relative to the declaring tileset JSON",
    )
    bounding_volume: BoundingVolume | None = Field(None, alias="boundingVolume")

    model_config = _DOCUMENT_CONFIG


# =============================================================================
# Tile
# =============================================================================

class Tile(BaseModel):
    """
    Node of the tile tree.

    A tile without content and children is a structural-only node; it still
    carries a bounding volume like every other tile.
    """

    bounding_volume: BoundingVolume = Field(..., alias="boundingVolume")
    geometric_error: float = Field(..., ge=0, alias="geometricError")
    refine: str | None = None
    transform: list[float] | None = None
    content: Content | None = None
    contents: list[Content] | None = None
    implicit_tiling: dict[str, Any] | None = Field(None, alias="implicitTiling")
    children: list["Tile"] | None = None

    model_config = _DOCUMENT_CONFIG

    @field_validator("refine")
    @classmethod
    def validate_refine(cls, v: str | None) -> str | None:
        """Accept ADD/REPLACE in any casing. Casing is normalized by the 1.1 upgrade."""
        if v is not None and v.upper() not in REFINE_MODES:
            raise ValueError(f"refine must be one of {REFINE_MODES}, got '{v}'")
        return v

    @field_validator("transform")
    @classmethod
    def validate_transform(cls, v: list[float] | None) -> list[float] | None:
        if v is not None and len(v) != 16:
            raise ValueError(f"transform must have 16 elements, got {len(v)}")
        return v

    @classmethod
    def synthetic(
        cls,
        children: list["Tile"],
        bounding_volume: BoundingVolume,
        geometric_error: float,
        refine: str = "ADD",
    ) -> "Tile":
        """Create a content-less tile grouping the given children."""
        return cls(
            bounding_volume=bounding_volume,
            geometric_error=geometric_error,
            refine=refine,
            children=list(children),
        )

    def content_refs(self) -> list[Content]:
        """All content references of this tile (`content` first, then `contents`)."""
        refs = []
        if self.content is not None:
            refs.append(self.content)
        if self.contents:
            refs.extend(self.contents)
        return refs

    def replace_children(self, children: list["Tile"] | None) -> None:
        self.children = list(children) if children else None

    def add_child(self, child: "Tile") -> None:
        if self.children is None:
            self.children = []
        self.children.append(child)

    def replace_content(self, old: Content, new: Content | None) -> None:
        """
        Replace (or remove, when `new` is None) one content reference.

        Raises:
            ValueError: If `old` is not a content reference of this tile
        """
        if self.content is old:
            self.content = new
            return

        for index, entry in enumerate(self.contents or []):
            if entry is old:
                if new is None:
                    del self.contents[index]
                else:
                    self.contents[index] = new
                if not self.contents:
                    self.contents = None
                return

        raise ValueError(f"Content '{old.uri}' does not belong to this tile")


Tile.model_rebuild()


# =============================================================================
# Tileset
# =============================================================================

class Asset(BaseModel):
    """Asset metadata. `version` must be a supported 3D Tiles version."""

    version: str
    tileset_version: str | None = Field(None, alias="tilesetVersion")

    model_config = _DOCUMENT_CONFIG

    @field_validator("version", mode="before")
    @classmethod
    def check_version(cls, v: Any) -> str:
        return validate_version(v)


class Tileset(BaseModel):
    """Tileset document: asset metadata plus the root of the tile tree."""

    asset: Asset
    geometric_error: float = Field(..., ge=0, alias="geometricError")
    root: Tile
    extensions_used: list[str] | None = Field(None, alias="extensionsUsed")
    extensions_required: list[str] | None = Field(None, alias="extensionsRequired")

    model_config = _DOCUMENT_CONFIG

    @property
    def version_tag(self) -> VersionTag:
        return VersionTag.parse(self.asset.version)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dictionary using the 3D Tiles property names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Parsing, Serialization, Traversal
# =============================================================================

def parse_tileset(data: bytes, name: str = "tileset.json") -> Tileset:
    """
    Parse tileset JSON bytes (optionally gzipped) into a Tileset.

    Args:
        data: Raw entry bytes
        name: Entry or package name, used for error messages

    Raises:
        MalformedTilesetError: If the bytes are not JSON or the document
            misses required fields or declares an unknown asset.version
    """
    try:
        obj = json.loads(ungzip(data))
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedTilesetError(f"Tileset '{name}' is not valid JSON: {exc}") from exc

    if not isinstance(obj, dict):
        raise MalformedTilesetError(f"Tileset '{name}' must be a JSON object")

    try:
        return Tileset.model_validate(obj)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()[:5]
        )
        raise MalformedTilesetError(f"Tileset '{name}' is malformed: {problems}") from exc


def serialize_tileset(tileset: Tileset, indent: int = 2) -> bytes:
    """Serialize a Tileset into UTF-8 JSON bytes."""
    text = json.dumps(tileset.to_dict(), indent=indent or None, ensure_ascii=False)
    return text.encode("utf-8")


def traverse_tiles(root: Tile) -> Iterator[tuple[Tile, Tile | None]]:
    """
    Depth-first, pre-order traversal yielding (tile, parent) pairs.

    The root is yielded with parent None. Children are read when a tile is
    expanded, so callers that add children while iterating should iterate a
    snapshot (`list(traverse_tiles(root))`).
    """
    stack: list[tuple[Tile, Tile | None]] = [(root, None)]
    while stack:
        tile, parent = stack.pop()
        yield tile, parent
        if tile.children:
            stack.extend((child, tile) for child in reversed(tile.children))


def wrap_root(
    tileset: Tileset,
    bounding_volume: BoundingVolume,
    geometric_error: float,
    refine: str = "ADD",
) -> Tileset:
    """
    Re-root a document under a new synthetic root tile.

    Returns a new document; the given one is left untouched.
    """
    wrapped = tileset.model_copy(deep=True)
    wrapped.root = Tile.synthetic(
        [wrapped.root],
        bounding_volume=bounding_volume.model_copy(deep=True),
        geometric_error=geometric_error,
        refine=refine,
    )
    wrapped.geometric_error = max(wrapped.geometric_error, geometric_error)
    return wrapped
