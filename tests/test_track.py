"""
Tests for the synthetic tracks and waypoint feed.
"""
import math

import numpy as np
import pytest

from mpc_steering.track.track import (circular_track, distance_to_centerline, heading_at,
                                      nearest_index, sinusoidal_track, waypoints_ahead)


class TestTracks:
    def test_circle_radius(self):
        center = circular_track(radius=50.0, points=36)
        np.testing.assert_allclose(np.linalg.norm(center, axis=1), 50.0)
        assert center[0] == pytest.approx([50.0, 0.0])

    def test_sine_endpoints(self):
        center = sinusoidal_track(length=1000.0, amplitude=20.0, points=101)
        assert center[0] == pytest.approx([0.0, 0.0])
        assert center[-1] == pytest.approx([1000.0, 0.0], abs=1e-9)
        assert center[:, 1].max() == pytest.approx(20.0, abs=0.1)


class TestWaypoints:
    def test_starts_just_behind(self):
        center = sinusoidal_track()
        ahead = waypoints_ahead(center, center[10] + [0.5, 0.0], count=6)
        np.testing.assert_array_equal(ahead, center[9:15])

    def test_clipped_at_track_start(self):
        center = sinusoidal_track()
        ahead = waypoints_ahead(center, center[0], count=6)
        np.testing.assert_array_equal(ahead, center[0:6])

    def test_wraps_on_closed_track(self):
        center = circular_track(points=20)
        ahead = waypoints_ahead(center, center[18], count=5, closed=True)
        np.testing.assert_array_equal(ahead, center[[17, 18, 19, 0, 1]])

    def test_nearest_index(self):
        center = circular_track(points=20)
        assert nearest_index(center, center[7] * 1.01) == 7


class TestGeometry:
    def test_heading_on_circle_is_tangent(self):
        center = circular_track(points=360)
        assert heading_at(center, 0, closed=True) == pytest.approx(math.pi / 2, abs=0.01)

    def test_distance_to_straight_segment(self):
        center = np.array([[0.0, 0.0], [10.0, 0.0], [20.0, 0.0]])
        assert distance_to_centerline(center, (5.0, 3.0)) == pytest.approx(3.0)
        assert distance_to_centerline(center, (25.0, 0.0)) == pytest.approx(5.0)

    def test_distance_uses_closing_segment(self):
        square = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])
        assert distance_to_centerline(square, (-1.0, 5.0), closed=True) == pytest.approx(1.0)
        assert distance_to_centerline(square, (-1.0, 5.0), closed=False) > 1.0
