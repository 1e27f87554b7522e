"""
Axis-aligned bounding volume that confines growth.
"""

from dataclasses import dataclass
from typing import Any
import numpy as np

from .types import Point3D, as_point


@dataclass
class Bounds:
    """
    Axis-aligned box given by its minimum and maximum corners.

    Degenerate (zero-thickness) boxes are allowed so that flat growth
    in a plane can be expressed.
    """

    minimum: Point3D
    maximum: Point3D

    def __post_init__(self):
        self.minimum = as_point(self.minimum)
        self.maximum = as_point(self.maximum)
        for axis, lo, hi in zip("xyz", self.minimum.to_tuple(), self.maximum.to_tuple()):
            if lo > hi:
                raise ValueError(f"{axis} minimum ({lo}) must not exceed maximum ({hi})")

    @classmethod
    def from_center_size(cls, center: Any, size: Any) -> "Bounds":
        """Create bounds centered on ``center`` with full extents ``size``."""
        c = as_point(center).to_array()
        half = np.abs(np.asarray(size, dtype=float)) * 0.5
        return cls(Point3D.from_array(c - half), Point3D.from_array(c + half))

    @property
    def min_array(self) -> np.ndarray:
        return self.minimum.to_array()

    @property
    def max_array(self) -> np.ndarray:
        return self.maximum.to_array()

    @property
    def size(self) -> np.ndarray:
        return self.max_array - self.min_array

    @property
    def center(self) -> np.ndarray:
        return (self.min_array + self.max_array) * 0.5

    @property
    def volume(self) -> float:
        return float(np.prod(self.size))

    def contains(self, point: Any) -> bool:
        """Check if point is inside the box (boundary inclusive)."""
        p = np.asarray(point.to_array() if isinstance(point, Point3D) else point, dtype=float)
        return bool(np.all(p >= self.min_array) and np.all(p <= self.max_array))

    def project_inside(self, point: np.ndarray) -> np.ndarray:
        """Clamp a position array into the box."""
        return np.clip(np.asarray(point, dtype=float), self.min_array, self.max_array)

    def sample_points(self, n_points: int, rng: np.random.Generator) -> np.ndarray:
        """Sample ``n_points`` uniformly inside the box, shape (n, 3)."""
        return rng.uniform(self.min_array, self.max_array, size=(n_points, 3))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {"min": self.minimum.to_dict(), "max": self.maximum.to_dict()}

    @classmethod
    def from_dict(cls, d: dict) -> "Bounds":
        """Create from dictionary."""
        return cls(Point3D.from_dict(d["min"]), Point3D.from_dict(d["max"]))
