"""
Tests for map <-> vehicle frame conversions.
"""
import math

import numpy as np
import pytest

from mpc_steering.track.transforms import to_vehicle_frame, to_world_frame

POSES = [
    (0.0, 0.0, 0.0),
    (1.0, 2.0, math.pi / 2),
    (-35.2, 110.7, -2.3),
    (179.3, -96.4, 3.1),
]

POINTS = np.array([
    [0.0, 0.0],
    [10.0, 0.0],
    [-4.5, 7.25],
    [150.0, -80.0],
])


class TestRoundTrip:
    @pytest.mark.parametrize("pose", POSES)
    def test_vehicle_of_world_is_identity(self, pose):
        back = to_vehicle_frame(to_world_frame(POINTS, pose), pose)
        np.testing.assert_allclose(back, POINTS, atol=1e-9)

    @pytest.mark.parametrize("pose", POSES)
    def test_world_of_vehicle_is_identity(self, pose):
        back = to_world_frame(to_vehicle_frame(POINTS, pose), pose)
        np.testing.assert_allclose(back, POINTS, atol=1e-9)


class TestKnownValues:
    def test_point_ahead_of_rotated_vehicle(self):
        """Vehicle at (1, 2) facing +y: the map point (1, 3) is 1 m straight ahead."""
        local = to_vehicle_frame([1.0, 3.0], (1.0, 2.0, math.pi / 2))
        assert local == pytest.approx([1.0, 0.0], abs=1e-12)

    def test_point_to_the_left(self):
        """Facing +x, a point at +y map is on the vehicle's left (+y local)."""
        local = to_vehicle_frame([5.0, 3.0], (5.0, 0.0, 0.0))
        assert local == pytest.approx([0.0, 3.0])

    def test_origin_maps_to_vehicle_position(self):
        world = to_world_frame([0.0, 0.0], (12.0, -4.0, 0.7))
        assert world == pytest.approx([12.0, -4.0])

    def test_shape_is_preserved(self):
        assert to_vehicle_frame([1.0, 2.0], (0.0, 0.0, 0.3)).shape == (2,)
        assert to_vehicle_frame(POINTS, (0.0, 0.0, 0.3)).shape == POINTS.shape
