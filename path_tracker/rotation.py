"""
Body-frame to world-frame rotation.

Builds the three elementary rotation matrices from an Orientation and applies
them in a fixed axis order. Rotations do not commute, so the order is part of
the recorded data: live recording and offline replay must use the same one.

Default order "ZXY" applies Z first, then X, then Y:

    world = Ry(gamma) · Rx(beta) · Rz(alpha) · body

The orientation angles are bound to their axes (alpha → Z, beta → X,
gamma → Y) regardless of the order in which the rotations are applied.
"""

import math

import numpy as np

from .models import Orientation, Vector3

DEFAULT_AXIS_ORDER = 'ZXY'


def rotation_matrix_x(radians):
    c = math.cos(radians)
    s = math.sin(radians)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, -s],
        [0.0, s, c],
    ])


def rotation_matrix_y(radians):
    c = math.cos(radians)
    s = math.sin(radians)
    return np.array([
        [c, 0.0, s],
        [0.0, 1.0, 0.0],
        [-s, 0.0, c],
    ])


def rotation_matrix_z(radians):
    c = math.cos(radians)
    s = math.sin(radians)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])


_ELEMENTARY = {
    'X': (rotation_matrix_x, 'beta'),
    'Y': (rotation_matrix_y, 'gamma'),
    'Z': (rotation_matrix_z, 'alpha'),
}


def compose_rotation(orientation, order=DEFAULT_AXIS_ORDER):
    """
    Combined body-to-world matrix for one orientation.

    Args:
        orientation (Orientation): alpha/beta/gamma in radians
        order (str): axes in application order, e.g. "ZXY" applies Rz first

    Returns:
        np.ndarray: 3x3 rotation matrix
    """
    order = order.upper()
    if sorted(order) != ['X', 'Y', 'Z']:
        raise ValueError(f"order must be a permutation of 'XYZ', got {order!r}")

    combined = np.eye(3)
    for axis in order:
        factory, angle_name = _ELEMENTARY[axis]
        # Later rotations multiply from the left
        combined = factory(getattr(orientation, angle_name)) @ combined
    return combined


def rotate_to_world(acceleration_body, orientation, order=DEFAULT_AXIS_ORDER):
    """Rotate a body-frame vector into the world frame."""
    if orientation == Orientation(0.0, 0.0, 0.0):
        return Vector3(*acceleration_body)
    world = compose_rotation(orientation, order) @ np.asarray(acceleration_body, dtype=float)
    return Vector3(float(world[0]), float(world[1]), float(world[2]))


def rotate_many(vectors, orientations, order=DEFAULT_AXIS_ORDER):
    """
    Batch variant for offline replay and analysis.

    Args:
        vectors: (N, 3) array-like of body-frame vectors
        orientations: (N, 3) array-like of (alpha, beta, gamma) radians

    Returns:
        np.ndarray: (N, 3) world-frame vectors
    """
    vectors = np.asarray(vectors, dtype=float).reshape(-1, 3)
    orientations = np.asarray(orientations, dtype=float).reshape(-1, 3)
    if len(vectors) != len(orientations):
        raise ValueError(f"Got {len(vectors)} vectors but {len(orientations)} orientations")

    out = np.empty_like(vectors)
    for i, (vec, angles) in enumerate(zip(vectors, orientations)):
        out[i] = compose_rotation(Orientation(*angles), order) @ vec
    return out
