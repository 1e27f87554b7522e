"""
Attraction-point field for space colonization growth.

Attraction points are scattered uniformly inside the bounds. Every live
point pulls on all nodes within the attraction radius and dies as soon as
a node comes within the kill radius.
"""

from typing import Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np
from scipy.spatial import cKDTree

from morph_policies import SpaceColonizationPolicy

from ..core.bounds import Bounds
from ..utils.vectors import normalize

logger = logging.getLogger(__name__)


class AttractionField:
    """
    Bounded set of live attraction points.

    Parameters
    ----------
    bounds : Bounds
        Volume that new points are sampled from
    policy : SpaceColonizationPolicy
        Radii and injection limits
    """

    def __init__(self, bounds: Bounds, policy: Optional[SpaceColonizationPolicy] = None):
        self.bounds = bounds
        self.policy = policy or SpaceColonizationPolicy()
        self.points = np.empty((0, 3))
        self.influences: Dict[int, List[int]] = {}

    def __len__(self) -> int:
        return len(self.points)

    def clear(self) -> None:
        self.points = np.empty((0, 3))
        self.influences = {}

    def inject(self, rng: np.random.Generator) -> int:
        """
        Add up to ``attractors_per_step`` uniform points without exceeding
        ``max_attractors``.

        Returns
        -------
        int
            Number of points added
        """
        room = self.policy.max_attractors - len(self.points)
        count = min(self.policy.attractors_per_step, room)
        if count <= 0:
            return 0
        new_points = self.bounds.sample_points(count, rng)
        self.points = np.vstack([self.points, new_points])
        return count

    def update(
        self,
        node_ids: Sequence[int],
        positions: np.ndarray,
        can_kill: Optional[np.ndarray] = None,
    ) -> int:
        """
        Kill reached points and recompute node influences.

        Parameters
        ----------
        node_ids : sequence of int
            Node IDs aligned with ``positions``
        positions : np.ndarray
            Node positions, shape (N, 3)
        can_kill : np.ndarray of bool, optional
            Per-node mask of nodes allowed to consume points. All nodes
            kill when omitted.

        Returns
        -------
        int
            Number of points killed
        """
        self.influences = {}
        if not len(self.points) or not len(node_ids):
            return 0

        tree = cKDTree(positions)

        kill_hits = tree.query_ball_point(self.points, self.policy.kill_radius)
        alive = np.ones(len(self.points), dtype=bool)
        for i, hits in enumerate(kill_hits):
            if not hits:
                continue
            if can_kill is None or any(can_kill[j] for j in hits):
                alive[i] = False
        killed = int((~alive).sum())
        self.points = self.points[alive]

        if len(self.points):
            near = tree.query_ball_point(self.points, self.policy.attraction_radius)
            for i, hits in enumerate(near):
                for j in hits:
                    self.influences.setdefault(int(node_ids[j]), []).append(i)

        if killed:
            logger.debug(f"Killed {killed} attraction points, {len(self.points)} remain")
        return killed

    def influence_count(self, node_id: int) -> int:
        return len(self.influences.get(node_id, ()))

    def growth_direction(self, node_id: int, position: np.ndarray) -> Tuple[np.ndarray, int]:
        """
        Normalized sum of unit vectors from ``position`` toward each point
        influencing the node, plus the number of such points.
        """
        indices = self.influences.get(node_id)
        if not indices:
            return np.zeros(3), 0
        offsets = self.points[indices] - position
        norms = np.linalg.norm(offsets, axis=1)
        valid = norms > 1e-9
        if not valid.any():
            return np.zeros(3), len(indices)
        direction = (offsets[valid] / norms[valid, None]).sum(axis=0)
        return normalize(direction), len(indices)
