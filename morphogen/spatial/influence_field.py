"""
Sparse scalar influence field over the growth bounds.

Every created node deposits influence into the cell that contains it. The
finite-difference gradient of the field points toward denser regions;
exploratory growth moves against it to fill empty space.
"""

from collections import defaultdict
from typing import Dict, Iterable, Optional, Tuple
import numpy as np

from ..core.bounds import Bounds
from ..core.types import as_array

_NEIGHBOR_OFFSETS = (
    ((1, 0, 0), np.array([1.0, 0.0, 0.0])),
    ((-1, 0, 0), np.array([-1.0, 0.0, 0.0])),
    ((0, 1, 0), np.array([0.0, 1.0, 0.0])),
    ((0, -1, 0), np.array([0.0, -1.0, 0.0])),
    ((0, 0, 1), np.array([0.0, 0.0, 1.0])),
    ((0, 0, -1), np.array([0.0, 0.0, -1.0])),
)

GRADIENT_EPSILON = 1e-3


class InfluenceField:
    """
    Grid of accumulated influence keyed by integer cell coordinates.

    Cells are ``floor((p - bounds.min) / cell_size)``. Only touched cells
    are stored.
    """

    def __init__(self, bounds: Bounds, cell_size: float = 1.0):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be > 0, got {cell_size}")
        self.bounds = bounds
        self.cell_size = cell_size
        self.cells: Dict[Tuple[int, int, int], float] = defaultdict(float)

    def __len__(self) -> int:
        return len(self.cells)

    def reset(self) -> None:
        """Drop all accumulated influence."""
        self.cells.clear()

    def rebuild(self, bounds: Optional[Bounds] = None, positions: Iterable = ()) -> None:
        """
        Reset the field, optionally over new bounds, and re-deposit
        unit influence at each position.
        """
        if bounds is not None:
            self.bounds = bounds
        self.reset()
        for position in positions:
            self.add_influence_point(position)

    def cell_of(self, position) -> Tuple[int, int, int]:
        rel = (as_array(position) - self.bounds.min_array) / self.cell_size
        cell = np.floor(rel).astype(int)
        return (int(cell[0]), int(cell[1]), int(cell[2]))

    def add_influence_point(self, position, strength: float = 1.0) -> None:
        self.cells[self.cell_of(position)] += strength

    def influence_at(self, position) -> float:
        return self.cells.get(self.cell_of(position), 0.0)

    def gradient_at(self, position) -> np.ndarray:
        """
        Normalized finite-difference gradient at ``position``.

        Sums ``axis_direction * (neighbor - center)`` over the six axis
        neighbors of the containing cell. Returns the zero vector when the
        magnitude is at or below 1e-3.
        """
        ci, cj, ck = self.cell_of(position)
        center = self.cells.get((ci, cj, ck), 0.0)
        gradient = np.zeros(3)
        for (di, dj, dk), direction in _NEIGHBOR_OFFSETS:
            neighbor = self.cells.get((ci + di, cj + dj, ck + dk), 0.0)
            gradient += direction * (neighbor - center)
        magnitude = np.linalg.norm(gradient)
        if magnitude <= GRADIENT_EPSILON:
            return np.zeros(3)
        return gradient / magnitude
