"""
Space colonization growth.

Nodes grow toward ephemeral attraction points scattered through the
bounds. Each call tops up the point set, kills points that have been
reached and grows from the node pulled on by the most live points.
A caller-supplied environmental vector (wind, light, flow) bends the
growth direction in proportion to its magnitude.
"""

from typing import Any, List, Optional
import logging

import numpy as np

from morph_policies import SpaceColonizationPolicy, coerce_vec3

from .base import GrowthAlgorithm, GrowthContext, GrowthResult, is_growth_eligible
from ..ops.structure import place_candidate
from ..spatial.attraction_field import AttractionField
from ..utils.vectors import lerp, normalize, random_on_unit_sphere

logger = logging.getLogger(__name__)


class SpaceColonizationGrowth(GrowthAlgorithm):
    """
    Attraction-point driven growth.

    Parameters
    ----------
    policy : SpaceColonizationPolicy, optional
        Radii, injection limits and branch length
    """

    name = "space_colonization"

    def __init__(self, policy: Optional[SpaceColonizationPolicy] = None):
        self.policy = policy or SpaceColonizationPolicy()
        self.environmental_influence = np.zeros(3)
        self.attractors: Optional[AttractionField] = None

    def set_environmental_influence(self, vector: Any) -> None:
        """Set the environmental bias vector; its magnitude is its weight."""
        self.environmental_influence = np.array(coerce_vec3(vector), dtype=float)

    def spacing(self, context: GrowthContext) -> float:
        return self.policy.min_node_spacing

    def energy_cost(self, context: GrowthContext) -> float:
        return self.policy.energy_cost

    def reset(self) -> None:
        self.attractors = None

    def _can_branch(self, graph, node_id: int) -> bool:
        return graph.degree(node_id) < self.policy.max_degree and is_growth_eligible(graph, node_id)

    def refresh_attractors(self, graph, context: GrowthContext) -> None:
        """Inject new points, kill reached ones and recompute influences."""
        if context.bounds is None:
            return
        if self.attractors is None or self.attractors.bounds != context.bounds:
            self.attractors = AttractionField(context.bounds, self.policy)
        self.attractors.inject(context.rng)

        ids, points = graph.positions_array()
        can_kill = None
        if not self.policy.exhausted_nodes_kill:
            can_kill = np.array([graph.nodes[int(i)].energy > 0 for i in ids], dtype=bool)
        self.attractors.update(ids, points, can_kill)

    def select_sources(self, graph, context: GrowthContext) -> List[int]:
        """Branchable nodes ordered by how many live points influence them."""
        if self.attractors is None:
            return []
        sources = [
            node_id for node_id in self.attractors.influences
            if node_id in graph.nodes and self._can_branch(graph, node_id)
        ]
        sources.sort(key=lambda node_id: (-self.attractors.influence_count(node_id), node_id))
        return sources[:context.max_sources]

    def _upward_random(self, context: GrowthContext) -> np.ndarray:
        direction = random_on_unit_sphere(context.rng)
        up = context.policy.up_axis
        direction[up] = abs(direction[up])
        return direction

    def _blend_environment(self, direction: np.ndarray) -> np.ndarray:
        env = self.environmental_influence
        weight = float(np.linalg.norm(env)) * self.policy.environmental_strength
        if weight <= 0:
            return direction
        blended = normalize(lerp(direction, normalize(env), min(1.0, weight)))
        return blended if blended.any() else direction

    def propose_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        origin = graph.position_of(source_id)
        count = 0
        direction = np.zeros(3)
        if self.attractors is not None:
            direction, count = self.attractors.growth_direction(source_id, origin)
        if not direction.any():
            direction = self._upward_random(context)
        direction = self._blend_environment(direction)

        variation = self.policy.branch_length_variation
        distance = self.policy.branch_length * (1.0 + variation * context.rng.uniform(-1.0, 1.0))
        position = place_candidate(graph, origin, direction, distance, context, self.spacing(context))
        if position is None:
            return GrowthResult.invalid(self.name)
        return GrowthResult(
            is_valid=True,
            position=position,
            parent_id=source_id,
            direction=direction,
            probability=min(1.0, count / max(1, self.policy.attractors_per_step)),
            distance=distance,
            parent_degree=graph.degree(source_id),
            source=self.name,
        )

    def calculate_growth(self, graph, context: GrowthContext) -> GrowthResult:
        """
        Grow from the most attracted node, or else from a random
        branchable node in a random upward direction.
        """
        if not context.has_room(graph):
            return GrowthResult.invalid(self.name)
        self.refresh_attractors(graph, context)

        for source_id in self.select_sources(graph, context):
            result = self.propose_from(graph, source_id, context)
            if result.is_valid:
                return result

        candidates = [node_id for node_id in graph.nodes if self._can_branch(graph, node_id)]
        if not candidates:
            return GrowthResult.invalid(self.name)
        for _ in range(min(len(candidates), context.max_sources)):
            source_id = candidates[int(context.rng.integers(len(candidates)))]
            origin = graph.position_of(source_id)
            direction = self._blend_environment(self._upward_random(context))
            distance = self.policy.branch_length
            position = place_candidate(graph, origin, direction, distance, context, self.spacing(context))
            if position is not None:
                return GrowthResult(
                    is_valid=True,
                    position=position,
                    parent_id=source_id,
                    direction=direction,
                    probability=0.0,
                    distance=distance,
                    parent_degree=graph.degree(source_id),
                    source=self.name,
                )
        logger.debug("Space colonization found no valid growth candidate")
        return GrowthResult.invalid(self.name)
