"""
Geometry Primitives
===================

Exact vector helpers used by the mesh store and the simplifier.

All comparisons are exact: two facets only count as coplanar when the
cross product of their normals is precisely the zero vector. Input grids
produce axis-aligned, integer-valued coordinates, so exact arithmetic holds.
"""

import numpy as np
from typing import Tuple


def as_point(x: float, y: float, z: float) -> np.ndarray:
    """Build a float64 point from three components."""
    return np.array([x, y, z], dtype=np.float64)


def points_equal(p0: np.ndarray, p1: np.ndarray) -> bool:
    """Are two points the same location."""
    return p0[0] == p1[0] and p0[1] == p1[1] and p0[2] == p1[2]


def points_differ(p0: np.ndarray, p1: np.ndarray) -> bool:
    """Are two points different locations."""
    return p0[0] != p1[0] or p0[1] != p1[1] or p0[2] != p1[2]


def sub(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return a - b


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def cross(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.array([
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    ])


def is_zero(v: np.ndarray) -> bool:
    return v[0] == 0.0 and v[1] == 0.0 and v[2] == 0.0


def facet_normal(v0: np.ndarray, v1: np.ndarray,
                 v2: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Compute the (unnormalized) surface normal of a triangle.

    n = (v1 - v0) x (v2 - v0)

    Args:
        v0, v1, v2: Triangle corners

    Returns:
        Tuple of (normal, is_degenerate). A degenerate triangle
        (collinear or coincident corners) has the zero vector as normal.
    """
    normal = cross(sub(v1, v0), sub(v2, v0))
    return normal, is_zero(normal)


def same_orientation(n1: np.ndarray, n2: np.ndarray) -> bool:
    """
    Check two normals are parallel and not opposed.

    Magnitudes may differ; (1, 0, 0) and (2, 0, 0) share an orientation.
    """
    if dot(n1, n2) < 0:
        return False

    return is_zero(cross(n1, n2))


def point_key(p: np.ndarray) -> bytes:
    """
    Canonical byte key for hashing a point.

    Adding 0.0 folds -0.0 into 0.0 so equal points always hash equally.
    """
    return (np.asarray(p, dtype=np.float64) + 0.0).tobytes()
