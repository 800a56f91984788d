# =============================================================================
# Content Classifier
# =============================================================================
# Sniffs the type of a package entry from its bytes (magic header or JSON
# structure) and groups types into the kinds the package operations need.
# =============================================================================

"""Content type detection for package entries."""

import gzip
import json
import logging
import zlib
from enum import Enum

__all__ = [
    "ContentType",
    "ContentKind",
    "GZIP_MAGIC",
    "ungzip",
    "classify_content",
    "content_kind",
    "is_external_tileset",
    "is_upgradable_content",
    "UPGRADABLE_TYPES",
]

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

# JSON documents are parsed only up to this size to check for a tileset
_MAX_JSON_SNIFF_BYTES = 64 * 1024 * 1024


class ContentType(str, Enum):
    """Recognized content types."""

    TILESET = "tileset"
    B3DM = "b3dm"
    I3DM = "i3dm"
    CMPT = "cmpt"
    PNTS = "pnts"
    GLB = "glb"
    GLTF = "gltf"
    SUBTREE = "subtree"
    GEOJSON = "geojson"
    JSON = "json"
    UNKNOWN = "unknown"


class ContentKind(str, Enum):
    """Coarse grouping of content types."""

    EXTERNAL_TILESET = "external-tileset"
    RENDERABLE_GEOMETRY = "renderable-geometry"
    OPAQUE = "opaque"


_MAGIC_TYPES = {
    b"b3dm": ContentType.B3DM,
    b"i3dm": ContentType.I3DM,
    b"cmpt": ContentType.CMPT,
    b"pnts": ContentType.PNTS,
    b"glTF": ContentType.GLB,
    b"subt": ContentType.SUBTREE,
}

_GEOMETRY_TYPES = {
    ContentType.B3DM,
    ContentType.I3DM,
    ContentType.CMPT,
    ContentType.PNTS,
    ContentType.GLB,
    ContentType.GLTF,
    ContentType.GEOJSON,
}

# Types wrapping an embedded glTF payload that a content upgrade can rewrite
UPGRADABLE_TYPES = frozenset({ContentType.B3DM, ContentType.I3DM, ContentType.CMPT})

_GLTF_PROPERTIES = ("scenes", "nodes", "meshes", "accessors", "buffers")


def ungzip(data: bytes) -> bytes:
    """Return the decompressed bytes if `data` is gzipped, else `data` itself."""
    if data[:2] == GZIP_MAGIC:
        return gzip.decompress(data)
    return data


def classify_content(data: bytes) -> ContentType:
    """
    Determine the content type of an entry.

    Binary tile formats are recognized by their 4-byte magic. JSON documents
    are told apart by their top-level properties: a tileset has "asset" and
    "root", a glTF has "asset" and glTF collections. Gzipped data is
    decompressed first; corrupt gzip data is UNKNOWN.
    """
    try:
        data = ungzip(data)
    except (OSError, EOFError, zlib.error):
        return ContentType.UNKNOWN

    content_type = _MAGIC_TYPES.get(data[:4])
    if content_type is not None:
        return content_type

    return _classify_json(data)


def _classify_json(data: bytes) -> ContentType:
    head = data[:16].lstrip(b"\xef\xbb\xbf \t\r\n")
    if not head.startswith(b"{"):
        return ContentType.UNKNOWN
    if len(data) > _MAX_JSON_SNIFF_BYTES:
        logger.warning(
            f"JSON document of {len(data)} bytes exceeds the {_MAX_JSON_SNIFF_BYTES} byte "
            f"inspection limit and is classified as unknown; an external tileset this "
            f"large is not inlined or upgraded"
        )
        return ContentType.UNKNOWN

    try:
        obj = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return ContentType.UNKNOWN
    if not isinstance(obj, dict):
        return ContentType.UNKNOWN

    if "asset" in obj and "root" in obj:
        return ContentType.TILESET
    if "asset" in obj and any(key in obj for key in _GLTF_PROPERTIES):
        return ContentType.GLTF
    if obj.get("type") in ("FeatureCollection", "Feature"):
        return ContentType.GEOJSON
    return ContentType.JSON


def content_kind(content_type: ContentType) -> ContentKind:
    """Map a content type to its kind."""
    if content_type == ContentType.TILESET:
        return ContentKind.EXTERNAL_TILESET
    if content_type in _GEOMETRY_TYPES:
        return ContentKind.RENDERABLE_GEOMETRY
    return ContentKind.OPAQUE


def is_external_tileset(data: bytes) -> bool:
    """Whether the bytes are a tileset JSON document (an external tileset)."""
    return classify_content(data) == ContentType.TILESET


def is_upgradable_content(data: bytes) -> bool:
    """Whether the bytes wrap a glTF payload that a content upgrade can rewrite."""
    return classify_content(data) in UPGRADABLE_TYPES
