"""
Small vector helpers shared by the growth algorithms.

All helpers take and return numpy arrays of shape (3,). Random helpers
draw from the caller's ``np.random.Generator`` so that a single seeded
generator can be threaded through a whole simulation.
"""

import numpy as np

EPSILON = 1e-9


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector along ``v``, or the zero vector if ``v`` is degenerate."""
    norm = np.linalg.norm(v)
    if norm < EPSILON:
        return np.zeros(3)
    return v / norm


def lerp(a, b, t: float):
    """Linear interpolation ``a + (b - a) * t``; works for floats and arrays."""
    return a + (b - a) * t


def random_on_unit_sphere(rng: np.random.Generator) -> np.ndarray:
    """Uniform random unit vector."""
    while True:
        v = rng.normal(size=3)
        norm = np.linalg.norm(v)
        if norm > EPSILON:
            return v / norm


def random_in_unit_sphere(rng: np.random.Generator) -> np.ndarray:
    """Uniform random point inside the unit ball."""
    direction = random_on_unit_sphere(rng)
    return direction * rng.random() ** (1.0 / 3.0)


def perpendicular(v: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Random unit vector perpendicular to ``v``."""
    axis = normalize(v)
    if not axis.any():
        return random_on_unit_sphere(rng)
    for _ in range(8):
        candidate = np.cross(axis, random_on_unit_sphere(rng))
        norm = np.linalg.norm(candidate)
        if norm > 1e-6:
            return candidate / norm
    # Fall back to the cross product with the least aligned basis axis.
    basis = np.eye(3)[int(np.argmin(np.abs(axis)))]
    return normalize(np.cross(axis, basis))


def axis_vector(axis: int) -> np.ndarray:
    """Unit basis vector for axis index 0, 1 or 2."""
    v = np.zeros(3)
    v[axis] = 1.0
    return v
