#!/usr/bin/env python3
"""
Vector helper functions for 3D positions.

Positions travel through the pipeline as plain 3-tuples; these small functions
cover the handful of operations the scale transform and history store need.
"""
import math
from typing import Sequence, Tuple

Vec3 = Tuple[float, float, float]


def as_vec3(values: Sequence[float]) -> Vec3:
    if len(values) != 3:
        raise ValueError(f"expected 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def vec_scale(a: Vec3, s: float) -> Vec3:
    return (a[0] * s, a[1] * s, a[2] * s)


def vec_len(a: Vec3) -> float:
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])


def planar_len(a: Vec3) -> float:
    """Distance from the origin in the x/y plane (the top-down view)."""
    return math.hypot(a[0], a[1])


def vec_close(a: Vec3, b: Vec3, tolerance: float = 0.0, abs_tol: float = 0.0) -> bool:
    """
    Component-wise equality.

    With both tolerances 0 the comparison is exact. Otherwise each component
    matches within `tolerance` relative to itself, with an absolute floor of
    `tolerance` times the larger vector length (so a component near zero, like
    z in the ecliptic, is judged against the vector's scale) or `abs_tol`
    meters, whichever is larger.
    """
    if tolerance <= 0.0 and abs_tol <= 0.0:
        return a[0] == b[0] and a[1] == b[1] and a[2] == b[2]
    floor = max(abs_tol, tolerance * max(vec_len(a), vec_len(b)))
    return all(math.isclose(x, y, rel_tol=tolerance, abs_tol=floor) for x, y in zip(a, b))
