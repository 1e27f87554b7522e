"""
Uniform grid-based spatial index for fast node proximity queries.
"""

from collections import defaultdict
from typing import Dict, Iterable, Set, Tuple
import numpy as np


class NodeGridIndex:
    """
    Dynamic uniform 3D grid over node positions.

    Supports incremental insertion, removal and movement of nodes as the
    morphology grows. Queries return candidate IDs from every cell that a
    query sphere overlaps; callers are expected to do the exact distance
    check on the (small) candidate set.
    """

    def __init__(self, cell_size: float = 5.0):
        """
        Initialize the node grid.

        Parameters
        ----------
        cell_size : float
            Edge length of a grid cell. Best set to the largest radius that
            is routinely queried, so a query touches at most 27 cells.
        """
        if cell_size <= 0:
            raise ValueError(f"cell_size must be > 0, got {cell_size}")
        self.cell_size = cell_size
        self.inv_cell_size = 1.0 / cell_size
        self.grid: Dict[Tuple[int, int, int], Set[int]] = defaultdict(set)
        self._node_cells: Dict[int, Tuple[int, int, int]] = {}

    def __len__(self) -> int:
        return len(self._node_cells)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._node_cells

    def clear(self) -> None:
        """Remove all indexed nodes."""
        self.grid.clear()
        self._node_cells.clear()

    def _get_cell_coords(self, point: np.ndarray) -> Tuple[int, int, int]:
        """Convert world coordinates to grid cell coordinates."""
        return (
            int(np.floor(point[0] * self.inv_cell_size)),
            int(np.floor(point[1] * self.inv_cell_size)),
            int(np.floor(point[2] * self.inv_cell_size)),
        )

    def insert(self, node_id: int, point: np.ndarray) -> None:
        """Index a node at ``point``, replacing any previous entry."""
        if node_id in self._node_cells:
            self.remove(node_id)
        cell = self._get_cell_coords(point)
        self.grid[cell].add(node_id)
        self._node_cells[node_id] = cell

    def bulk_insert(self, items: Iterable[Tuple[int, np.ndarray]]) -> None:
        for node_id, point in items:
            self.insert(node_id, point)

    def remove(self, node_id: int) -> None:
        cell = self._node_cells.pop(node_id, None)
        if cell is None:
            return
        members = self.grid.get(cell)
        if members is not None:
            members.discard(node_id)
            if not members:
                del self.grid[cell]

    def move(self, node_id: int, point: np.ndarray) -> None:
        """Update a node's cell after its position changed."""
        cell = self._get_cell_coords(point)
        if self._node_cells.get(node_id) == cell:
            return
        self.insert(node_id, point)

    def query_radius(self, point: np.ndarray, radius: float) -> Set[int]:
        """
        Candidate node IDs whose cells overlap the sphere at ``point``.

        Parameters
        ----------
        point : np.ndarray
            Query center, shape (3,)
        radius : float
            Query radius

        Returns
        -------
        Set[int]
            Superset of the node IDs within ``radius``
        """
        lo = self._get_cell_coords(point - radius)
        hi = self._get_cell_coords(point + radius)
        result: Set[int] = set()
        for i in range(lo[0], hi[0] + 1):
            for j in range(lo[1], hi[1] + 1):
                for k in range(lo[2], hi[2] + 1):
                    members = self.grid.get((i, j, k))
                    if members:
                        result.update(members)
        return result
