# =============================================================================
# Unit Tests: Bounding Volumes
# =============================================================================

import math

import pytest

from tileset_tools.bounding_volumes import (
    WGS84_A,
    Aabb,
    bounding_volume_points,
    cartographic_to_ecef,
    union_bounding_volumes,
)
from tileset_tools.errors import TilesetError
from tileset_tools.models import BoundingVolume


def _box(cx, cy, cz, half):
    return BoundingVolume(box=[cx, cy, cz, half, 0, 0, 0, half, 0, 0, 0, half])


def _translation(tx, ty, tz):
    return [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, tx, ty, tz, 1]


# =============================================================================
# Test: Aabb
# =============================================================================

class TestAabb:
    """Tests for Aabb."""

    def test_empty_union_is_identity(self):
        box = Aabb((0, 0, 0), (1, 1, 1))
        assert Aabb.empty().union(box) == box
        assert box.union(Aabb.empty()) == box

    def test_from_points(self):
        aabb = Aabb.from_points([(1, 2, 3), (-1, 5, 0)])
        assert aabb.min_xyz == (-1, 2, 0)
        assert aabb.max_xyz == (1, 5, 3)

    def test_to_box(self):
        box = Aabb((0, 0, 0), (2, 4, 6)).to_box()
        assert box == [1, 2, 3, 1, 0, 0, 0, 2, 0, 0, 0, 3]

    def test_contains(self):
        outer = Aabb((0, 0, 0), (10, 10, 10))
        assert outer.contains(Aabb((1, 1, 1), (2, 2, 2)))
        assert not outer.contains(Aabb((1, 1, 1), (11, 2, 2)))


# =============================================================================
# Test: cartographic_to_ecef
# =============================================================================

def test_cartographic_to_ecef_on_equator():
    x, y, z = cartographic_to_ecef(0.0, 0.0, 0.0)
    assert x == pytest.approx(WGS84_A)
    assert y == pytest.approx(0.0)
    assert z == pytest.approx(0.0)


def test_cartographic_to_ecef_with_height():
    x, y, _ = cartographic_to_ecef(math.pi / 2, 0.0, 100.0)
    assert x == pytest.approx(0.0, abs=1e-6)
    assert y == pytest.approx(WGS84_A + 100.0)


# =============================================================================
# Test: bounding_volume_points
# =============================================================================

class TestBoundingVolumePoints:
    """Tests for bounding_volume_points function."""

    def test_box_corners(self):
        points = bounding_volume_points(_box(0, 0, 0, 1))
        assert len(points) == 8
        assert Aabb.from_points(points) == Aabb((-1, -1, -1), (1, 1, 1))

    def test_transform_is_applied(self):
        points = bounding_volume_points(_box(0, 0, 0, 1), _translation(10, 0, 0))
        assert Aabb.from_points(points) == Aabb((9, -1, -1), (11, 1, 1))

    def test_sphere_is_enclosed(self):
        points = bounding_volume_points(BoundingVolume(sphere=[1, 2, 3, 2]))
        assert Aabb.from_points(points) == Aabb((-1, 0, 1), (3, 4, 5))

    def test_region_ignores_transform(self):
        region = BoundingVolume(region=[0.0, 0.0, 0.01, 0.01, 0.0, 10.0])
        plain = bounding_volume_points(region)
        moved = bounding_volume_points(region, _translation(1000, 0, 0))
        assert plain == moved

    def test_extension_only_volume(self):
        volume = BoundingVolume.model_validate({"extensions": {"3DTILES_bounding_volume_S2": {"token": "3"}}})
        with pytest.raises(TilesetError):
            bounding_volume_points(volume)


# =============================================================================
# Test: union_bounding_volumes
# =============================================================================

class TestUnionBoundingVolumes:
    """Tests for union_bounding_volumes function."""

    def test_union_of_boxes_contains_inputs(self):
        union = union_bounding_volumes([(_box(0, 0, 0, 1), None), (_box(10, 0, 0, 1), None)])
        assert Aabb.from_points(bounding_volume_points(union)) == Aabb((-1, -1, -1), (11, 1, 1))

    def test_union_respects_transforms(self):
        union = union_bounding_volumes([
            (_box(0, 0, 0, 1), None),
            (_box(0, 0, 0, 1), _translation(0, 20, 0)),
        ])
        bounds = Aabb.from_points(bounding_volume_points(union))
        assert bounds.contains(Aabb((-1, 19, -1), (1, 21, 1)))

    def test_union_of_regions_is_region(self):
        union = union_bounding_volumes([
            (BoundingVolume(region=[0.0, 0.0, 0.1, 0.1, 0.0, 10.0]), None),
            (BoundingVolume(region=[0.2, -0.1, 0.3, 0.05, -5.0, 5.0]), None),
        ])
        assert union.region == [0.0, -0.1, 0.3, 0.1, -5.0, 10.0]
        assert union.box is None

    def test_mixed_inputs_yield_box_containing_region(self):
        region = BoundingVolume(region=[0.0, 0.0, 0.01, 0.01, 0.0, 10.0])
        union = union_bounding_volumes([(region, None), (_box(0, 0, 0, 1), None)])

        assert union.box is not None
        bounds = Aabb.from_points(bounding_volume_points(union))
        assert bounds.contains(Aabb.from_points(bounding_volume_points(region)))
        assert bounds.contains(Aabb((-1, -1, -1), (1, 1, 1)))

    def test_empty_input(self):
        with pytest.raises(ValueError):
            union_bounding_volumes([])
