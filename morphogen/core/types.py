"""
Basic geometric types.
"""

from dataclasses import dataclass
from typing import Any, Union
import numpy as np


@dataclass
class Point3D:
    """3D point in world units."""

    x: float
    y: float
    z: float

    def to_array(self) -> np.ndarray:
        """Convert to numpy array of shape (3,)."""
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, arr) -> "Point3D":
        """Create from any length-3 sequence."""
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    def to_tuple(self) -> tuple:
        return (self.x, self.y, self.z)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, d: dict) -> "Point3D":
        """Create from dictionary."""
        return cls(float(d["x"]), float(d["y"]), float(d["z"]))

    def distance_to(self, other: "Point3D") -> float:
        """Euclidean distance to another point."""
        return float(np.linalg.norm(self.to_array() - other.to_array()))


PointLike = Union[Point3D, np.ndarray, tuple, list]


def as_point(value: Any) -> Point3D:
    """
    Normalize a point-like value to a Point3D.

    Accepts Point3D, dicts with x/y/z keys and length-3 sequences.
    """
    if isinstance(value, Point3D):
        return value
    if isinstance(value, dict):
        return Point3D.from_dict(value)
    return Point3D.from_array(value)


def as_array(value: Any) -> np.ndarray:
    """Normalize a point-like value to a float array of shape (3,)."""
    if isinstance(value, Point3D):
        return value.to_array()
    if isinstance(value, dict):
        return Point3D.from_dict(value).to_array()
    arr = np.asarray(value, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {arr.shape}")
    return arr
