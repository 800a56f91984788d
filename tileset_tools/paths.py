# =============================================================================
# Package Name and Content URI Utilities
# =============================================================================
# Shared helpers for interpreting package names and resolving content URIs
# into package keys. Used by all package operations.
# =============================================================================

"""
Package name and content URI utilities.

This module provides functions for:
- Determining the key of the root tileset JSON entry of a package
- Detecting whether two package names refer to the same package
- Parsing s3:// package names into bucket and prefix components
- Resolving content URIs against the tileset JSON that declares them
"""

import os
import posixpath
import re
from typing import Tuple
from urllib.parse import unquote

from .errors import DanglingReferenceError

__all__ = [
    "DEFAULT_TILESET_JSON_FILE_NAME",
    "determine_tileset_json_file_name",
    "are_equal_packages",
    "is_json_name",
    "parse_s3_path",
    "resolve_content_key",
]

DEFAULT_TILESET_JSON_FILE_NAME = "tileset.json"

_URI_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def is_json_name(name: str) -> bool:
    """Whether a package name points directly at a tileset JSON file."""
    return name.lower().endswith(".json")


def determine_tileset_json_file_name(package_name: str) -> str:
    """
    Determine the key of the entry that holds the root tileset JSON.

    Names ending in ".json" (case-insensitive) point at the tileset JSON
    file itself, so its final path segment is the key. Directories and
    archives (".3tz", ".3dtiles") do not encode the key and use the
    default "tileset.json".

    Examples:
        >>> determine_tileset_json_file_name("foo/bar.JSON")
        'bar.JSON'
        >>> determine_tileset_json_file_name("foo/archive.3tz")
        'tileset.json'
    """
    if is_json_name(package_name):
        return os.path.basename(package_name)
    return DEFAULT_TILESET_JSON_FILE_NAME


def are_equal_packages(name_a: str, name_b: str) -> bool:
    """
    Whether two package names refer to the same physical package.

    Both names are normalized as filesystem paths. A name ending in ".json"
    is replaced by its containing directory before comparing.

    Examples:
        >>> are_equal_packages("a/b/tileset.json", "a/b")
        True
        >>> are_equal_packages("a/b", "a/c")
        False
    """
    return _package_identity(name_a) == _package_identity(name_b)


def _package_identity(name: str) -> str:
    normalized = os.path.normpath(name)
    if is_json_name(normalized):
        normalized = os.path.normpath(os.path.dirname(normalized) or ".")
    return normalized


def parse_s3_path(s3_path: str) -> Tuple[str, str]:
    """
    Parse an s3:// package name into bucket and key prefix.

    Unlike object paths, a package may live at the bucket root, so the
    prefix can be empty.

    Returns:
        Tuple of (bucket, prefix) e.g. ("tiles", "city/tileset.json")

    Raises:
        ValueError: If the name does not start with s3:// or has no bucket
    """
    if not s3_path.startswith("s3://"):
        raise ValueError(
            f"Invalid S3 path format: '{s3_path}'. Must start with 's3://'"
        )

    parts = s3_path[5:].split("/", 1)
    if not parts[0]:
        raise ValueError(
            f"Invalid S3 path format: '{s3_path}'. Expected 's3://bucket/prefix'"
        )

    prefix = parts[1] if len(parts) == 2 else ""
    return parts[0], prefix


def resolve_content_key(base_dir: str, uri: str, package_name: str) -> str:
    """
    Resolve a content URI into a key of the package that declares it.

    Args:
        base_dir: Key directory of the tileset JSON declaring the URI ("" for the root)
        uri: Content URI as written in the tileset JSON
        package_name: Package name, used for error messages

    Returns:
        Normalized posix key relative to the package root

    Raises:
        DanglingReferenceError: If the URI has a scheme, is absolute, or
            escapes the package root
    """
    if not uri or _URI_SCHEME.match(uri) or uri.startswith("/"):
        raise DanglingReferenceError(uri, package_name)

    path = unquote(uri.split("?", 1)[0].split("#", 1)[0])
    key = posixpath.normpath(posixpath.join(base_dir, path))
    if key == "." or key == ".." or key.startswith("../"):
        raise DanglingReferenceError(uri, package_name)
    return key
