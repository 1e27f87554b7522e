"""
Coral-like growth.

Coral reaches upward from its tallest tips, leans away from currents and
occasionally flattens into ring-shaped plates.
"""

from typing import List

from .base import GrowthAlgorithm, GrowthContext, GrowthResult, force_vector, is_growth_eligible
from ..ops.structure import connect_to_nearby, form_coral_plate, lerp_distance, place_candidate
from ..utils.vectors import axis_vector, normalize, random_in_unit_sphere


class CoralGrowth(GrowthAlgorithm):
    """Upward tip growth with plate formation."""

    name = "coral"
    connectivity_factor = 0.5
    settles = True

    def select_sources(self, graph, context: GrowthContext) -> List[int]:
        """
        Tips (degree <= 1) and stressed nodes, tallest first.

        The top ``2 * max_sources`` are shuffled so growth does not always
        start from the same tip.
        """
        policy = context.policy
        up = policy.up_axis
        candidates = [
            node_id for node_id, node in graph.nodes.items()
            if (graph.degree(node_id) <= 1 or node.stress > policy.growth_threshold)
            and is_growth_eligible(graph, node_id)
        ]
        candidates.sort(key=lambda node_id: (-graph.nodes[node_id].position.to_tuple()[up], node_id))
        candidates = candidates[:context.max_sources * 2]
        return [candidates[i] for i in context.rng.permutation(len(candidates))]

    def spawn_probability(self, graph, source_id, amount, context) -> float:
        return amount * (1.5 if graph.degree(source_id) <= 1 else 1.0)

    def propose_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        policy = context.policy
        direction = axis_vector(policy.up_axis) * 0.5 + random_in_unit_sphere(context.rng) * 0.5
        force = force_vector(graph, source_id)
        if (force ** 2).sum() > policy.force_deflection_threshold ** 2:
            direction = direction - normalize(force) * 0.5
        direction = normalize(direction)
        if not direction.any():
            direction = axis_vector(policy.up_axis)

        distance = lerp_distance(context, context.parameters.complexity)
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
            probability=1.5 if degree <= 1 else 1.0,
            distance=distance,
            parent_degree=degree,
            source=self.name,
        )

    def after_growth(self, graph, result: GrowthResult, new_id: int, context: GrowthContext) -> float:
        """
        Tip growth sometimes spreads into a plate; otherwise the new node
        links sparsely to its neighborhood.

        Returns
        -------
        float
            Number of plate nodes created
        """
        if result.parent_degree <= 1 and context.rng.random() < context.policy.plate_probability:
            return float(form_coral_plate(graph, new_id, context))
        connect_to_nearby(graph, new_id, context.parameters.connectivity * self.connectivity_factor, context)
        return 0.0
