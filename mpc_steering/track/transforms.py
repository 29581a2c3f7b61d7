"""
Conversions between the map frame and the vehicle frame
"""
import numpy as np


def _rotation(psi):
    c, s = np.cos(psi), np.sin(psi)
    return np.array([[c, -s], [s, c]])


def to_vehicle_frame(points, pose):
    """
    Express map-frame points in the vehicle frame.

    Args:
        points: (N, 2) or (2,) map-frame coordinates
        pose: vehicle (x, y, psi) in the map frame

    Returns:
        Points with the same shape, vehicle at the origin facing +x
    """
    x_v, y_v, psi = pose
    p = np.asarray(points, dtype=float)
    # Row vectors: d @ R(psi) == R(-psi) applied to each column d
    return (p - np.array([x_v, y_v])) @ _rotation(psi)


def to_world_frame(points, pose):
    """
    Express vehicle-frame points in the map frame. Inverse of to_vehicle_frame.
    """
    x_v, y_v, psi = pose
    p = np.asarray(points, dtype=float)
    return p @ _rotation(psi).T + np.array([x_v, y_v])
