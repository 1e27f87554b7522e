"""
Mold-like growth.

Slime molds push new pathways away from the load they feel and thicken
the routes that carry it. Under load, the most stressed nodes sprout
against their force. Without load, growth explores: low-degree nodes
extend into sparsely occupied space, steered against the influence
gradient.
"""

from typing import List

import numpy as np

from .base import GrowthAlgorithm, GrowthContext, GrowthResult, force_vector, is_growth_eligible
from ..ops.structure import lerp_distance, place_candidate, reinforce_stressed_edges
from ..utils.vectors import normalize, random_in_unit_sphere, random_on_unit_sphere


class MoldGrowth(GrowthAlgorithm):
    """Stress-avoiding, edge-reinforcing growth."""

    name = "mold"

    def select_sources(self, graph, context: GrowthContext) -> List[int]:
        """Nodes above ``stress_threshold``, most stressed first, capped."""
        threshold = context.policy.stress_threshold
        stressed = [
            node_id for node_id, node in graph.nodes.items()
            if node.stress > threshold and is_growth_eligible(graph, node_id)
        ]
        stressed.sort(key=lambda node_id: (-graph.nodes[node_id].stress, node_id))
        return stressed[:context.max_sources]

    def exploration_sources(self, graph, context: GrowthContext) -> List[int]:
        """Eligible nodes with the fewest edges first, capped."""
        candidates = [node_id for node_id in graph.nodes if is_growth_eligible(graph, node_id)]
        candidates.sort(key=lambda node_id: (graph.degree(node_id), node_id))
        return candidates[:context.max_sources]

    def spawn_probability(self, graph, source_id, amount, context) -> float:
        return amount * graph.nodes[source_id].stress

    def _distance_for(self, graph, source_id: int, context: GrowthContext) -> float:
        # Busy nodes grow shorter links
        return lerp_distance(context, 1.0 / (1.0 + graph.degree(source_id) * 0.3))

    def propose_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        force_dir = normalize(force_vector(graph, source_id))
        direction = normalize(-force_dir + random_in_unit_sphere(context.rng) * context.policy.direction_jitter)
        if not direction.any():
            direction = random_on_unit_sphere(context.rng)
        return self._build(graph, source_id, direction, graph.nodes[source_id].stress, context)

    def explore_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        """Propose growth away from already dense regions."""
        origin = graph.position_of(source_id)
        away = -context.influence_field.gradient_at(origin) if context.influence_field is not None else np.zeros(3)
        direction = normalize(away + random_on_unit_sphere(context.rng))
        if not direction.any():
            direction = random_on_unit_sphere(context.rng)
        return self._build(graph, source_id, direction, graph.nodes[source_id].growth_potential, context)

    def _build(self, graph, source_id, direction, probability, context) -> GrowthResult:
        distance = self._distance_for(graph, source_id, context)
        position = place_candidate(
            graph, graph.position_of(source_id), direction, distance, context, self.spacing(context)
        )
        if position is None:
            return GrowthResult.invalid(self.name)
        return GrowthResult(
            is_valid=True,
            position=position,
            parent_id=source_id,
            direction=direction,
            probability=probability,
            distance=distance,
            parent_degree=graph.degree(source_id),
            source=self.name,
        )

    def fallback_sources(self, graph, context: GrowthContext) -> List[int]:
        return self.exploration_sources(graph, context)

    def propose_fallback(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        return self.explore_from(graph, source_id, context)

    def reinforce(self, graph, amount: float, context: GrowthContext) -> float:
        return reinforce_stressed_edges(graph, amount, context.policy.growth_threshold)
