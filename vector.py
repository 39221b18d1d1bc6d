"""
2D vector helpers on numpy arrays of shape (2,).

Addition, subtraction and scalar multiply are the plain numpy operators;
this module adds the few named operations the physics step needs.
"""

import math
import numpy as np


def vec2(x: float = 0.0, y: float = 0.0) -> np.ndarray:
    return np.array([x, y], dtype=float)


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(a[0] * b[0] + a[1] * b[1])


def norm(v: np.ndarray) -> float:
    """Squared length."""
    return dot(v, v)


def length(v: np.ndarray) -> float:
    return math.sqrt(norm(v))


def normalize(v: np.ndarray) -> np.ndarray:
    """Scale ``v`` to unit length in place and return it.

    Callers must not pass a zero vector.
    """
    n = length(v)
    assert n > 0.0, "normalize() called on a zero vector"
    v /= n
    return v


def perpendicular(n: np.ndarray) -> np.ndarray:
    """Counter-clockwise perpendicular (-n.y, n.x)."""
    return vec2(-n[1], n[0])
