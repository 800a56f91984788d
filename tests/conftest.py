"""
Shared pytest fixtures for the tileset tools tests.

Provides factories for tileset documents, binary tile content and small
directory packages written to tmp_path.
"""

import json
import struct
from pathlib import Path

import pytest


UNIT_BOX = [0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]


# =============================================================================
# Document Fixtures
# =============================================================================

@pytest.fixture
def make_tile():
    """Factory for tile dictionaries."""
    def _make_tile(uri=None, children=None, box=None, geometric_error=10.0, **extra):
        tile = {
            "boundingVolume": {"box": list(box or UNIT_BOX)},
            "geometricError": geometric_error,
        }
        if uri is not None:
            tile["content"] = {"uri": uri}
        if children is not None:
            tile["children"] = children
        tile.update(extra)
        return tile

    return _make_tile


@pytest.fixture
def make_tileset(make_tile):
    """Factory for tileset dictionaries."""
    def _make_tileset(root=None, version="1.1", geometric_error=100.0, **extra):
        tileset = {
            "asset": {"version": version},
            "geometricError": geometric_error,
            "root": root if root is not None else make_tile(refine="REPLACE"),
        }
        tileset.update(extra)
        return tileset

    return _make_tileset


# =============================================================================
# Binary Content Fixtures
# =============================================================================

@pytest.fixture
def make_glb():
    """Factory for minimal GLB bytes (length is a multiple of 8)."""
    def _make_glb(name="mesh"):
        chunk = json.dumps({"asset": {"version": "2.0"}, "extras": {"name": name}}).encode("utf-8")
        chunk += b" " * ((4 - len(chunk) % 8) % 8)
        body = struct.pack("<II", len(chunk), 0x4E4F534A) + chunk
        return b"glTF" + struct.pack("<II", 2, 12 + len(body)) + body

    return _make_glb


@pytest.fixture
def make_b3dm(make_glb):
    """Factory for B3DM bytes in the current 28-byte header layout."""
    def _make_b3dm(glb=None, batch_length=0):
        from tileset_tools.content.tile_formats import TileData, write_tile_data

        feature_table = json.dumps({"BATCH_LENGTH": batch_length}).encode("utf-8")
        return write_tile_data(TileData(
            magic=b"b3dm",
            version=1,
            feature_table_json=feature_table,
            feature_table_binary=b"",
            batch_table_json=b"",
            batch_table_binary=b"",
            payload=glb if glb is not None else make_glb(),
        ))

    return _make_b3dm


# =============================================================================
# Package Fixtures
# =============================================================================

@pytest.fixture
def make_package(tmp_path):
    """
    Factory writing a directory package below tmp_path.

    Entries are given as {key: bytes | dict}; dicts are written as JSON.
    Returns the package directory path as a string.
    """
    def _make_package(name, entries):
        root = tmp_path / name
        for key, value in entries.items():
            path = root / key
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(value, dict):
                value = json.dumps(value).encode("utf-8")
            path.write_bytes(value)
        return str(root)

    return _make_package


@pytest.fixture
def read_json():
    """Read a JSON file from a directory package."""
    def _read_json(package, key="tileset.json"):
        return json.loads((Path(package) / key).read_text(encoding="utf-8"))

    return _read_json


@pytest.fixture
def nested_package(make_package, make_tile, make_tileset, make_b3dm):
    """
    Package with a root tileset referencing an external tileset in a subdirectory.

    tileset.json -> a.b3dm, sub/external.json -> sub/b.b3dm
    """
    external = make_tileset(root=make_tile(uri="b.b3dm", geometric_error=5.0))
    root = make_tileset(root=make_tile(
        refine="ADD",
        children=[
            make_tile(uri="a.b3dm"),
            make_tile(uri="sub/external.json"),
        ],
    ))
    return make_package("nested", {
        "tileset.json": root,
        "a.b3dm": make_b3dm(),
        "sub/external.json": external,
        "sub/b.b3dm": make_b3dm(batch_length=1),
    })
