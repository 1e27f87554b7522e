"""Core data model: points, bounds, IDs and the morphology graph."""

from .types import Point3D, as_point, as_array
from .bounds import Bounds
from .ids import IDGenerator
from .graph import MorphNode, MorphEdge, MorphologyGraph, GraphInvariantError

__all__ = [
    "Point3D",
    "as_point",
    "as_array",
    "Bounds",
    "IDGenerator",
    "MorphNode",
    "MorphEdge",
    "MorphologyGraph",
    "GraphInvariantError",
]
