"""
Mycelium-like growth.

Hyphae branch profusely from their tips in near-random directions,
sometimes toward a load and more often away from it, and occasionally
fuse with distant strands (anastomosis).
"""

from typing import List

from .base import GrowthAlgorithm, GrowthContext, GrowthResult, force_vector, is_growth_eligible
from ..ops.structure import (
    connect_to_nearby,
    form_anastomoses,
    lerp_distance,
    place_candidate,
    sprout_side_branches,
)
from ..utils.vectors import lerp, normalize, random_on_unit_sphere


class MyceliumGrowth(GrowthAlgorithm):
    """Exploratory branching with long-range fusion."""

    name = "mycelium"
    connectivity_factor = 0.7

    def spacing(self, context: GrowthContext) -> float:
        return context.policy.min_node_distance * context.policy.mycelium_spacing_factor

    def select_sources(self, graph, context: GrowthContext) -> List[int]:
        """Tip-like (degree <= 2) and stressed nodes, tips first, then shuffled."""
        policy = context.policy
        candidates = [
            node_id for node_id, node in graph.nodes.items()
            if (graph.degree(node_id) <= 2 or node.stress > policy.growth_threshold)
            and is_growth_eligible(graph, node_id)
        ]
        candidates.sort(key=lambda node_id: (0 if graph.degree(node_id) <= 2 else 1, node_id))
        candidates = candidates[:context.max_sources * 3]
        return [candidates[i] for i in context.rng.permutation(len(candidates))]

    def spawn_probability(self, graph, source_id, amount, context) -> float:
        return amount * (1.8 if graph.degree(source_id) <= 1 else 1.0)

    def propose_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        rng = context.rng
        direction = random_on_unit_sphere(rng)
        force = force_vector(graph, source_id)
        if (force ** 2).sum() > context.policy.force_deflection_threshold ** 2:
            force_dir = normalize(force)
            if rng.random() < 0.3:
                direction = lerp(direction, force_dir, 0.7)
            else:
                direction = lerp(direction, -force_dir, 0.4)
            direction = normalize(direction)
            if not direction.any():
                direction = random_on_unit_sphere(rng)

        distance = lerp_distance(context, rng.random() * context.parameters.complexity)
        position = place_candidate(
            graph, graph.position_of(source_id), direction, distance, context, self.spacing(context)
        )
        if position is None:
            return GrowthResult.invalid(self.name)
        degree = graph.degree(source_id)
        return GrowthResult(
            is_valid=True,
            position=position,
            parent_id=source_id,
            direction=direction,
            probability=1.8 if degree <= 1 else 1.0,
            distance=distance,
            parent_degree=degree,
            source=self.name,
        )

    def after_growth(self, graph, result: GrowthResult, new_id: int, context: GrowthContext) -> float:
        """
        Link to the neighborhood, then maybe sprout side branches from
        the same parent.

        Returns
        -------
        float
            0.5 per side branch
        """
        connect_to_nearby(graph, new_id, context.parameters.connectivity * self.connectivity_factor, context)
        branch_chance = context.parameters.complexity * context.policy.side_branch_factor
        if result.parent_id is None or context.rng.random() >= branch_chance:
            return 0.0
        branches = sprout_side_branches(
            graph, result.parent_id, result.direction, result.distance, context, self.spacing(context)
        )
        return 0.5 * branches

    def reinforce(self, graph, amount: float, context: GrowthContext) -> float:
        """
        Occasionally fuse distant strands.

        Returns
        -------
        float
            0.3 per long-range edge
        """
        policy = context.policy
        if graph.node_count <= policy.anastomosis_min_nodes:
            return 0.0
        if context.rng.random() >= amount * context.parameters.connectivity:
            return 0.0
        return 0.3 * form_anastomoses(graph, policy.max_anastomoses, context)
