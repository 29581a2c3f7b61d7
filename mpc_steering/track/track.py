"""
Synthetic map-frame tracks and the waypoint feed drawn from them
"""
import numpy as np


def circular_track(radius=150.0, points=90):
    """Closed loop, counter-clockwise, starting at (radius, 0)."""
    theta = np.linspace(0, 2*np.pi, points, endpoint=False)
    return np.vstack([radius*np.cos(theta), radius*np.sin(theta)]).T


def sinusoidal_track(length=1500.0, amplitude=60.0, points=150):
    """
    Open sinusoidal road

    Args:
        length: Total length of the road along x (meters)
        amplitude: Amplitude of the sinusoid (meters)
        points: Number of points along the centerline

    Returns:
        center: Road centerline points [N, 2]
    """
    x = np.linspace(0, length, points)
    y = amplitude * np.sin(2 * np.pi * x / length)
    return np.vstack([x, y]).T


def nearest_index(center, position):
    return int(np.argmin(np.linalg.norm(center - np.asarray(position)[:2], axis=1)))


def waypoints_ahead(center, position, count=6, closed=False):
    """
    The `count` centerline points starting just behind the vehicle, the way the
    simulator reports its waypoints.

    Returns:
        [count, 2] array; fewer rows at the end of an open track
    """
    k = nearest_index(center, position) - 1
    if closed:
        return center[[(k + i) % len(center) for i in range(count)]]
    k = max(k, 0)
    return center[k:k + count]


def heading_at(center, k, closed=False):
    n = len(center)
    k1 = (k + 1) % n if closed else min(k + 1, n - 1)
    k0 = k1 - 1
    d = center[k1] - center[k0]
    return float(np.arctan2(d[1], d[0]))


def distance_to_centerline(center, position, closed=False):
    """Distance from a point to the closest centerline segment."""
    p = np.asarray(position, dtype=float)[:2]
    if closed:
        center = np.vstack([center, center[:1]])
    a, b = center[:-1], center[1:]
    ab = b - a
    t = np.clip(np.einsum("ij,ij->i", p - a, ab) / np.einsum("ij,ij->i", ab, ab), 0.0, 1.0)
    closest = a + t[:, None] * ab
    return float(np.min(np.linalg.norm(closest - p, axis=1)))
