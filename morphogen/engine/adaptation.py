"""
Adaptation engine.

Turns externally supplied per-node forces into smoothed stress and lets
the active archetype respond structurally: reinforcing loaded edges,
growing toward or away from loads, bracing and fusing strands.
"""

from typing import Any, Dict, Optional
import logging

import numpy as np

from morph_policies import AdaptationPolicy, ArchetypePolicy, MorphologyParameters, coerce_vec3

from ..core.bounds import Bounds
from ..core.graph import MorphologyGraph
from ..growth import GrowthAlgorithm, GrowthContext, select_algorithm
from ..spatial.influence_field import InfluenceField

logger = logging.getLogger(__name__)


class AdaptationEngine:
    """
    Force-driven structural adaptation.

    Parameters
    ----------
    graph : MorphologyGraph, optional
        Graph to adapt
    parameters : MorphologyParameters, optional
        Archetype and ``adaptation_rate``
    policy : AdaptationPolicy, optional
        Rate scale, per-step growth cap and stress smoothing
    archetype_policy : ArchetypePolicy, optional
        Thresholds and distances handed to the algorithms
    rng : np.random.Generator, optional
        Shared generator; created from ``seed`` if omitted
    seed : int, optional
        Seed used when ``rng`` is not given
    bounds : Bounds, optional
        Bounds that adaptation growth is clamped into
    influence_field : InfluenceField, optional
        Field updated when adaptation creates nodes
    """

    def __init__(
        self,
        graph: Optional[MorphologyGraph] = None,
        parameters: Optional[MorphologyParameters] = None,
        policy: Optional[AdaptationPolicy] = None,
        archetype_policy: Optional[ArchetypePolicy] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        bounds: Optional[Bounds] = None,
        influence_field: Optional[InfluenceField] = None,
    ):
        self.graph = graph if graph is not None else MorphologyGraph()
        self.parameters = parameters or MorphologyParameters()
        self.policy = policy or AdaptationPolicy()
        self.archetype_policy = archetype_policy or ArchetypePolicy()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.graph.set_connection_distance(self.archetype_policy.max_node_distance)
        self.bounds = bounds
        self.influence_field = influence_field
        self._algorithm = select_algorithm(self.parameters.biomorph_type)
        self._algorithm_pinned = False
        self.total_adaptation = 0.0

    @property
    def algorithm(self) -> GrowthAlgorithm:
        return self._algorithm

    def set_algorithm(self, algorithm: Optional[GrowthAlgorithm]) -> None:
        """Pin an algorithm, or pass None to select by archetype again."""
        if algorithm is None:
            self._algorithm = select_algorithm(self.parameters.biomorph_type)
            self._algorithm_pinned = False
        else:
            self._algorithm = algorithm
            self._algorithm_pinned = True

    def initialize(
        self,
        graph: MorphologyGraph,
        parameters: Optional[MorphologyParameters] = None,
        bounds: Optional[Bounds] = None,
        influence_field: Optional[InfluenceField] = None,
        reset_stress: bool = True,
    ) -> None:
        """
        Attach to a graph and reset accumulated state.

        Parameters
        ----------
        graph : MorphologyGraph
            Graph to adapt
        parameters : MorphologyParameters, optional
            Replace the parameters
        bounds : Bounds, optional
            Replace the clamping bounds
        influence_field : InfluenceField, optional
            Replace the influence field
        reset_stress : bool
            Zero node stress and forces (False keeps imported values)
        """
        self.graph = graph
        graph.set_connection_distance(self.archetype_policy.max_node_distance)
        if parameters is not None:
            self.set_parameters(parameters)
        if bounds is not None:
            self.bounds = bounds
        if influence_field is not None:
            self.influence_field = influence_field
        if reset_stress:
            for node in graph.nodes.values():
                node.stress = 0.0
                node.force = (0.0, 0.0, 0.0)
        self.total_adaptation = 0.0
        self._algorithm.reset()
        logger.debug(f"Adaptation initialized on {graph.node_count} nodes ({self._algorithm.name})")

    def set_parameters(self, parameters: MorphologyParameters) -> None:
        previous = self.parameters.biomorph_type
        self.parameters = parameters
        if parameters.biomorph_type != previous and not self._algorithm_pinned:
            self._algorithm = select_algorithm(parameters.biomorph_type)

    def update_forces(self, force_by_node: Dict[int, Any]) -> int:
        """
        Merge force samples and recompute stress for every node.

        Forces addressed to unknown node IDs are ignored. Stress is
        ``min(1, |f| / (1 + degree * degree_damping))`` smoothed toward the
        previous value by ``stress_smoothing``.

        Parameters
        ----------
        force_by_node : dict
            Node ID -> 3-vector (sequence, array, dict or Point3D)

        Returns
        -------
        int
            Number of force samples applied
        """
        applied = 0
        for node_id, force in (force_by_node or {}).items():
            node = self.graph.nodes.get(node_id)
            if node is None:
                continue
            node.force = coerce_vec3(force)
            applied += 1

        smoothing = self.policy.stress_smoothing
        damping = self.policy.degree_damping
        for node_id, node in self.graph.nodes.items():
            magnitude = float(np.linalg.norm(node.force))
            raw = min(1.0, magnitude / (1.0 + self.graph.degree(node_id) * damping))
            stress = node.stress + (raw - node.stress) * smoothing
            node.stress = min(1.0, max(0.0, stress))
        return applied

    def make_context(self) -> GrowthContext:
        return GrowthContext(
            bounds=self.bounds,
            parameters=self.parameters,
            influence_field=self.influence_field,
            rng=self.rng,
            policy=self.archetype_policy,
            max_sources=self.policy.max_nodes_per_adaptation,
        )

    def adaptation_step(self, dt: float) -> float:
        """
        Decay node attributes, then let the archetype respond to stress.

        Parameters
        ----------
        dt : float
            Timestep in seconds

        Returns
        -------
        float
            Adaptation amount produced this step (nodes grown, strength
            added, braces and fusions, weighted per archetype)
        """
        if self.graph.node_count == 0:
            return 0.0
        self.graph.update_node_attributes(dt)
        amount = self.parameters.adaptation_rate * dt * self.policy.rate_scale
        if amount <= 0:
            return 0.0
        total = self._algorithm.respond(self.graph, amount, self.make_context())
        self.total_adaptation += total
        return total

    def get_average_stress(self) -> float:
        if self.graph.node_count == 0:
            return 0.0
        return float(np.mean([node.stress for node in self.graph.nodes.values()]))

    def get_node_stress(self, node_id: int) -> float:
        node = self.graph.nodes.get(node_id)
        return node.stress if node is not None else 0.0
