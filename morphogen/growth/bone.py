"""
Bone-like growth.

Bone is edge-centric: load is judged per edge from the average stress of
its endpoints. Growth adds struts off the most loaded edges, and
adaptation remodels strength (loaded edges thicken, idle ones thin out)
and triangulates around highly stressed nodes.
"""

from typing import List, Optional

from .base import GrowthAlgorithm, GrowthContext, GrowthResult, is_growth_eligible
from ..ops.structure import (
    connect_to_nearby,
    lerp_distance,
    place_candidate,
    prune_weak_edges,
    remodel_edges,
    triangulate_stressed_nodes,
)
from ..utils.vectors import perpendicular, random_on_unit_sphere


class BoneGrowth(GrowthAlgorithm):
    """Strut growth with stress-driven remodeling."""

    name = "bone"
    settles = True

    def _edge_stress(self, graph, edge) -> float:
        return (graph.nodes[edge.node_a].stress + graph.nodes[edge.node_b].stress) * 0.5

    def ranked_edges(self, graph) -> list:
        """Edges ordered by average endpoint stress, highest first, newest first on ties."""
        return sorted(graph.edges.values(), key=lambda e: (-self._edge_stress(graph, e), -e.id))

    def select_sources(self, graph, context: GrowthContext) -> List[int]:
        """
        The more stressed endpoint of each edge, in edge-stress order.

        Equally stressed endpoints are ordered by fewer edges, then newer
        ID, so an unloaded skeleton extends from its outer struts.

        With no edges yet every eligible node is a source.
        """
        if graph.edge_count == 0:
            sources = [node_id for node_id in graph.nodes if is_growth_eligible(graph, node_id)]
            return sources[:context.max_sources]

        sources = []
        seen = set()
        for edge in self.ranked_edges(graph):
            a, b = graph.nodes[edge.node_a], graph.nodes[edge.node_b]
            first, second = (a, b) if self._endpoint_rank(graph, a) >= self._endpoint_rank(graph, b) else (b, a)
            for node in (first, second):
                if node.id in seen or not is_growth_eligible(graph, node.id):
                    continue
                seen.add(node.id)
                sources.append(node.id)
                break
            if len(sources) >= context.max_sources:
                break
        return sources

    def _endpoint_rank(self, graph, node) -> tuple:
        return (node.stress, -graph.degree(node.id), node.id)

    def _driving_edge(self, graph, source_id: int):
        best = None
        best_stress = -1.0
        for neighbor_id in graph.neighbors(source_id):
            edge = graph.edge_between(source_id, neighbor_id)
            stress = self._edge_stress(graph, edge)
            if stress > best_stress:
                best, best_stress = edge, stress
        return best

    def propose_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        origin = graph.position_of(source_id)
        edge = self._driving_edge(graph, source_id)
        partner_id: Optional[int] = None
        if edge is not None:
            partner_id = edge.other(source_id)
            direction = perpendicular(graph.position_of(partner_id) - origin, context.rng)
        else:
            direction = random_on_unit_sphere(context.rng)

        distance = lerp_distance(context, 0.5 * context.parameters.complexity)
        position = place_candidate(graph, origin, direction, distance, context, self.spacing(context))
        if position is None:
            return GrowthResult.invalid(self.name)
        node = graph.nodes[source_id]
        return GrowthResult(
            is_valid=True,
            position=position,
            parent_id=source_id,
            direction=direction,
            probability=node.growth_potential,
            distance=distance,
            parent_degree=graph.degree(source_id),
            partner_id=partner_id,
            source=self.name,
        )

    def after_growth(self, graph, result: GrowthResult, new_id: int, context: GrowthContext) -> float:
        # Brace the strut against the far end of its edge when in reach.
        if result.partner_id is not None and result.partner_id in graph.nodes:
            span = graph.position_of(result.partner_id) - graph.position_of(new_id)
            if (span ** 2).sum() <= context.policy.max_node_distance ** 2:
                graph.create_edge(new_id, result.partner_id)
        connect_to_nearby(graph, new_id, context.parameters.connectivity * self.connectivity_factor, context)
        return 0.0

    def reinforce(self, graph, amount: float, context: GrowthContext) -> float:
        return remodel_edges(graph, amount, context.policy.growth_threshold)

    def respond(self, graph, amount: float, context: GrowthContext) -> float:
        """
        Remodel edge strength, then triangulate around stressed nodes.

        Bone adaptation never adds nodes.
        """
        total = remodel_edges(graph, amount, context.policy.growth_threshold)
        total += triangulate_stressed_nodes(graph, amount, context, context.max_sources // 2)
        if context.policy.prune_weak_edges:
            prune_weak_edges(graph)
        return total
