# =============================================================================
# Bounding Volume Utilities
# =============================================================================
# Geometry helpers for 3D Tiles bounding volumes:
# - Corner points of boxes, spheres and regions (in ECEF for regions)
# - Application of a tile transform
# - Union of several bounding volumes
# =============================================================================

import math
from dataclasses import dataclass

from .errors import TilesetError
from .models.tileset import BoundingVolume

__all__ = [
    "Aabb",
    "cartographic_to_ecef",
    "bounding_volume_points",
    "union_bounding_volumes",
]

WGS84_A = 6378137.0
WGS84_F = 1 / 298.257223563
WGS84_E2 = WGS84_F * (2 - WGS84_F)

# Grid resolution (per axis) used to sample region surfaces
_REGION_SAMPLES = 8


@dataclass(frozen=True)
class Aabb:
    """Axis-aligned bounding box."""

    min_xyz: tuple[float, float, float]
    max_xyz: tuple[float, float, float]

    @staticmethod
    def empty() -> "Aabb":
        inf = float("inf")
        return Aabb((inf, inf, inf), (-inf, -inf, -inf))

    @staticmethod
    def from_points(points: list[tuple[float, float, float]]) -> "Aabb":
        if not points:
            return Aabb.empty()
        xs, ys, zs = zip(*points)
        return Aabb((min(xs), min(ys), min(zs)), (max(xs), max(ys), max(zs)))

    def is_empty(self) -> bool:
        return any(self.min_xyz[i] > self.max_xyz[i] for i in range(3))

    def union(self, other: "Aabb") -> "Aabb":
        if self.is_empty():
            return other
        if other.is_empty():
            return self
        return Aabb(
            tuple(min(self.min_xyz[i], other.min_xyz[i]) for i in range(3)),
            tuple(max(self.max_xyz[i], other.max_xyz[i]) for i in range(3)),
        )

    def contains(self, other: "Aabb", epsilon: float = 1e-6) -> bool:
        return all(
            self.min_xyz[i] - epsilon <= other.min_xyz[i] and other.max_xyz[i] <= self.max_xyz[i] + epsilon
            for i in range(3)
        )

    def to_box(self) -> list[float]:
        """Express as a 3D Tiles box: center followed by three half-axes."""
        min_x, min_y, min_z = self.min_xyz
        max_x, max_y, max_z = self.max_xyz
        cx, cy, cz = (min_x + max_x) / 2, (min_y + max_y) / 2, (min_z + max_z) / 2
        hx, hy, hz = (max_x - min_x) / 2, (max_y - min_y) / 2, (max_z - min_z) / 2
        return [cx, cy, cz, hx, 0.0, 0.0, 0.0, hy, 0.0, 0.0, 0.0, hz]


def _mat4_transform_point(m: list[float], p: tuple[float, float, float]) -> tuple[float, float, float]:
    x, y, z = p
    tx = m[0] * x + m[4] * y + m[8] * z + m[12]
    ty = m[1] * x + m[5] * y + m[9] * z + m[13]
    tz = m[2] * x + m[6] * y + m[10] * z + m[14]
    tw = m[3] * x + m[7] * y + m[11] * z + m[15]
    if tw not in (0.0, 1.0):
        tx /= tw
        ty /= tw
        tz /= tw
    return (tx, ty, tz)


def cartographic_to_ecef(lon: float, lat: float, height: float) -> tuple[float, float, float]:
    """Convert WGS84 longitude/latitude (radians) and height (meters) to ECEF."""
    sin_lat = math.sin(lat)
    cos_lat = math.cos(lat)
    n = WGS84_A / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)
    x = (n + height) * cos_lat * math.cos(lon)
    y = (n + height) * cos_lat * math.sin(lon)
    z = ((1.0 - WGS84_E2) * n + height) * sin_lat
    return (x, y, z)


def _box_corners(box: list[float]) -> list[tuple[float, float, float]]:
    center = box[0:3]
    axes = (box[3:6], box[6:9], box[9:12])
    corners = []
    for su in (-1.0, 1.0):
        for sv in (-1.0, 1.0):
            for sw in (-1.0, 1.0):
                corners.append(tuple(
                    center[i] + su * axes[0][i] + sv * axes[1][i] + sw * axes[2][i]
                    for i in range(3)
                ))
    return corners


def _sphere_corners(sphere: list[float]) -> list[tuple[float, float, float]]:
    cx, cy, cz, r = sphere
    return _box_corners([cx, cy, cz, r, 0.0, 0.0, 0.0, r, 0.0, 0.0, 0.0, r])


def _region_points(region: list[float]) -> list[tuple[float, float, float]]:
    west, south, east, north, min_height, max_height = region
    if east < west:
        east += 2 * math.pi
    points = []
    for i in range(_REGION_SAMPLES + 1):
        lon = west + (east - west) * i / _REGION_SAMPLES
        for j in range(_REGION_SAMPLES + 1):
            lat = south + (north - south) * j / _REGION_SAMPLES
            for height in (min_height, max_height):
                points.append(cartographic_to_ecef(lon, lat, height))
    return points


def bounding_volume_points(
    volume: BoundingVolume, transform: list[float] | None = None
) -> list[tuple[float, float, float]]:
    """
    Points whose convex hull encloses the bounding volume.

    Boxes and spheres are in the tile's local frame and are moved by
    `transform`. Regions are always in WGS84 and are sampled on a grid in
    ECEF coordinates, ignoring the transform.

    Raises:
        TilesetError: For extension-only bounding volumes
    """
    if volume.box is not None:
        points = _box_corners(volume.box)
    elif volume.sphere is not None:
        points = _sphere_corners(volume.sphere)
    elif volume.region is not None:
        return _region_points(volume.region)
    else:
        raise TilesetError("Cannot compute bounds of an extension-only bounding volume")

    if transform:
        points = [_mat4_transform_point(transform, p) for p in points]
    return points


def _union_regions(regions: list[list[float]]) -> list[float]:
    return [
        min(r[0] for r in regions),
        min(r[1] for r in regions),
        max(r[2] for r in regions),
        max(r[3] for r in regions),
        min(r[4] for r in regions),
        max(r[5] for r in regions),
    ]


def union_bounding_volumes(
    volumes: list[tuple[BoundingVolume, list[float] | None]]
) -> BoundingVolume:
    """
    Compute a bounding volume containing all given volumes.

    Args:
        volumes: (bounding volume, tile transform or None) pairs

    Returns:
        A region when every input is a region that does not cross the
        antimeridian, otherwise an axis-aligned box in the common frame.

    Raises:
        ValueError: If no volumes are given
    """
    if not volumes:
        raise ValueError("At least one bounding volume is required")

    regions = [bv.region for bv, _ in volumes if bv.region is not None]
    if len(regions) == len(volumes) and all(r[0] <= r[2] for r in regions):
        return BoundingVolume(region=_union_regions(regions))

    aabb = Aabb.empty()
    for volume, transform in volumes:
        aabb = aabb.union(Aabb.from_points(bounding_volume_points(volume, transform)))
    return BoundingVolume(box=aabb.to_box())
