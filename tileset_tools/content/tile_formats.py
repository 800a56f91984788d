# =============================================================================
# Tile Formats
# =============================================================================
# Reading and writing of the binary tile formats that wrap glTF payloads:
# - B3DM (batched 3D model), including the two legacy header layouts
# - I3DM (instanced 3D model)
# - CMPT (composite of other tiles)
# =============================================================================

import json
import struct
from dataclasses import dataclass, replace
from typing import Callable

from ..errors import TileFormatError

__all__ = [
    "TileData",
    "read_tile_data",
    "write_tile_data",
    "read_composite",
    "write_composite",
    "upgrade_embedded_glb",
]

B3DM_MAGIC = b"b3dm"
I3DM_MAGIC = b"i3dm"
CMPT_MAGIC = b"cmpt"

B3DM_HEADER_LENGTH = 28
I3DM_HEADER_LENGTH = 32
CMPT_HEADER_LENGTH = 16

# A header field this large can only be the start of a JSON string ('{"' etc.),
# which identifies the legacy B3DM layouts
_LEGACY_B3DM_THRESHOLD = 570425344

# I3DM gltfFormat: 0 = payload is a URI, 1 = payload is an embedded GLB
I3DM_GLTF_FORMAT_URI = 0
I3DM_GLTF_FORMAT_GLB = 1


@dataclass(frozen=True)
class TileData:
    """Sections of a B3DM or I3DM tile."""

    magic: bytes
    version: int
    feature_table_json: bytes
    feature_table_binary: bytes
    batch_table_json: bytes
    batch_table_binary: bytes
    payload: bytes
    gltf_format: int | None = None
    legacy_header: bool = False


def read_tile_data(data: bytes) -> TileData:
    """
    Split a B3DM or I3DM tile into its sections.

    Raises:
        TileFormatError: If the magic is unknown or the lengths are inconsistent
    """
    magic = data[:4]
    if magic == B3DM_MAGIC:
        return _read_b3dm(data)
    if magic == I3DM_MAGIC:
        return _read_i3dm(data)
    raise TileFormatError(f"Expected b3dm or i3dm data, got magic {magic!r}")


def _read_b3dm(data: bytes) -> TileData:
    if len(data) < B3DM_HEADER_LENGTH:
        raise TileFormatError(f"B3DM data too short: {len(data)} bytes")

    _, version, byte_length = struct.unpack_from("<4sII", data, 0)
    ft_json_length, ft_bin_length, bt_json_length, bt_bin_length = struct.unpack_from("<4I", data, 12)
    offset = B3DM_HEADER_LENGTH
    legacy = False
    feature_table_json = None

    if bt_json_length >= _LEGACY_B3DM_THRESHOLD:
        # Legacy layout 1: [batchLength] [batchTableByteLength]
        batch_length = ft_json_length
        bt_json_length = ft_bin_length
        bt_bin_length = 0
        ft_json_length = ft_bin_length = 0
        offset = 20
        legacy = True
    elif bt_bin_length >= _LEGACY_B3DM_THRESHOLD:
        # Legacy layout 2: [batchTableJsonByteLength] [batchTableBinaryByteLength] [batchLength]
        batch_length = bt_json_length
        bt_json_length = ft_json_length
        bt_bin_length = ft_bin_length
        ft_json_length = ft_bin_length = 0
        offset = 24
        legacy = True

    if legacy:
        feature_table_json = json.dumps({"BATCH_LENGTH": batch_length}).encode("utf-8")

    sections = _split_sections(
        data, byte_length, offset, [ft_json_length, ft_bin_length, bt_json_length, bt_bin_length]
    )
    return TileData(
        magic=B3DM_MAGIC,
        version=version,
        feature_table_json=feature_table_json if legacy else sections[0],
        feature_table_binary=sections[1],
        batch_table_json=sections[2],
        batch_table_binary=sections[3],
        payload=sections[4],
        legacy_header=legacy,
    )


def _read_i3dm(data: bytes) -> TileData:
    if len(data) < I3DM_HEADER_LENGTH:
        raise TileFormatError(f"I3DM data too short: {len(data)} bytes")

    _, version, byte_length, *lengths, gltf_format = struct.unpack_from("<4s7I", data, 0)
    sections = _split_sections(data, byte_length, I3DM_HEADER_LENGTH, lengths)
    return TileData(
        magic=I3DM_MAGIC,
        version=version,
        feature_table_json=sections[0],
        feature_table_binary=sections[1],
        batch_table_json=sections[2],
        batch_table_binary=sections[3],
        payload=sections[4],
        gltf_format=gltf_format,
    )


def _split_sections(data: bytes, byte_length: int, offset: int, lengths: list[int]) -> list[bytes]:
    """Slice consecutive sections; the remainder up to byte_length is the payload."""
    if byte_length > len(data):
        raise TileFormatError(f"Tile declares {byte_length} bytes but only {len(data)} are present")

    sections = []
    for length in lengths:
        end = offset + length
        if end > byte_length:
            raise TileFormatError(f"Tile section ends at {end}, beyond byteLength {byte_length}")
        sections.append(data[offset:end])
        offset = end
    sections.append(data[offset:byte_length])
    return sections


def _pad_json(data: bytes, start: int) -> bytes:
    if not data:
        return data
    return data + b" " * ((8 - (start + len(data)) % 8) % 8)


def _pad_binary(data: bytes) -> bytes:
    return data + b"\x00" * ((8 - len(data) % 8) % 8)


def write_tile_data(tile: TileData) -> bytes:
    """
    Assemble a B3DM or I3DM tile with the current header layout.

    JSON sections are padded with spaces and binary sections with zeros so
    that every section starts on an 8-byte boundary.
    """
    is_i3dm = tile.magic == I3DM_MAGIC
    header_length = I3DM_HEADER_LENGTH if is_i3dm else B3DM_HEADER_LENGTH

    ft_json = _pad_json(tile.feature_table_json, header_length)
    ft_bin = _pad_binary(tile.feature_table_binary)
    bt_json = _pad_json(tile.batch_table_json, header_length + len(ft_json) + len(ft_bin))
    bt_bin = _pad_binary(tile.batch_table_binary)
    body = ft_json + ft_bin + bt_json + bt_bin + tile.payload
    body += b"\x00" * ((8 - (header_length + len(body)) % 8) % 8)
    byte_length = header_length + len(body)

    header = struct.pack(
        "<4sII4I",
        tile.magic,
        1,
        byte_length,
        len(ft_json),
        len(ft_bin),
        len(bt_json),
        len(bt_bin),
    )
    if is_i3dm:
        header += struct.pack("<I", tile.gltf_format if tile.gltf_format is not None else I3DM_GLTF_FORMAT_GLB)
    return header + body


def read_composite(data: bytes) -> list[bytes]:
    """
    Split a CMPT tile into its inner tiles.

    Raises:
        TileFormatError: If the header or an inner tile length is inconsistent
    """
    if len(data) < CMPT_HEADER_LENGTH or data[:4] != CMPT_MAGIC:
        raise TileFormatError("Invalid CMPT header")

    _, _, byte_length, tiles_length = struct.unpack_from("<4sIII", data, 0)
    if byte_length > len(data):
        raise TileFormatError(f"CMPT declares {byte_length} bytes but only {len(data)} are present")

    tiles = []
    offset = CMPT_HEADER_LENGTH
    for index in range(tiles_length):
        if offset + 12 > byte_length:
            raise TileFormatError(f"CMPT inner tile {index} header is truncated")
        (inner_length,) = struct.unpack_from("<I", data, offset + 8)
        if inner_length < 12 or offset + inner_length > byte_length:
            raise TileFormatError(f"CMPT inner tile {index} has invalid byteLength {inner_length}")
        tiles.append(data[offset:offset + inner_length])
        offset += inner_length
    return tiles


def write_composite(tiles: list[bytes]) -> bytes:
    """Assemble a CMPT tile from inner tiles."""
    body = b"".join(tiles)
    header = struct.pack("<4sIII", CMPT_MAGIC, 1, CMPT_HEADER_LENGTH + len(body), len(tiles))
    return header + body


def upgrade_embedded_glb(
    data: bytes,
    glb_upgrade: Callable[[bytes], bytes] | None = None,
    normalize_legacy_headers: bool = True,
) -> bytes:
    """
    Rewrite the glTF payload embedded in a B3DM, I3DM or CMPT tile.

    CMPT tiles are processed per inner tile. I3DM tiles that reference an
    external glTF by URI are returned unchanged. When no `glb_upgrade` is
    given, only legacy B3DM headers are rewritten (if requested); other
    tiles are returned unchanged.

    Args:
        data: Tile bytes
        glb_upgrade: Function receiving and returning GLB bytes
        normalize_legacy_headers: Rewrite legacy B3DM headers to the 28-byte layout
    """
    magic = data[:4]
    if magic == CMPT_MAGIC:
        inner_tiles = [
            upgrade_embedded_glb(inner, glb_upgrade, normalize_legacy_headers)
            if inner[:4] in (B3DM_MAGIC, I3DM_MAGIC, CMPT_MAGIC)
            else inner
            for inner in read_composite(data)
        ]
        return write_composite(inner_tiles)

    tile = read_tile_data(data)
    if tile.magic == I3DM_MAGIC and tile.gltf_format == I3DM_GLTF_FORMAT_URI:
        return data
    if glb_upgrade is None:
        if tile.legacy_header and normalize_legacy_headers:
            return write_tile_data(tile)
        return data
    return write_tile_data(replace(tile, payload=glb_upgrade(tile.payload)))
