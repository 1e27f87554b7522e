"""
Simulation context.

``MorphologySimulation`` owns one graph, one random generator, one
growth orchestrator and one adaptation engine, all sharing the same
influence field. Hosts drive it with ``step(dt, forces)`` and read it
through node/edge records and telemetry.
"""

from typing import Any, Dict, List, Optional
import logging

import numpy as np

from morph_policies import (
    AdaptationPolicy,
    ArchetypePolicy,
    GraphPolicy,
    GrowthPolicy,
    MorphologyParameters,
)

from ..core.bounds import Bounds
from ..core.graph import MorphologyGraph
from ..growth import GrowthAlgorithm, get_algorithm
from ..io.snapshot import (
    EdgeRecord,
    MorphologySnapshot,
    NodeRecord,
    edge_record,
    export_snapshot,
    import_snapshot,
    node_record,
)
from .adaptation import AdaptationEngine
from .orchestrator import GrowthOrchestrator, StepOutcome, default_bounds

logger = logging.getLogger(__name__)


class MorphologySimulation:
    """
    Growth plus adaptation over a single morphology.

    Parameters
    ----------
    parameters : MorphologyParameters, optional
        Archetype and scalar knobs
    bounds : Bounds, optional
        Growth volume
    graph_policy : GraphPolicy, optional
        Capacity and edge defaults
    growth_policy : GrowthPolicy, optional
        Orchestrator step sizes and budgets
    adaptation_policy : AdaptationPolicy, optional
        Stress smoothing and adaptation rate scale
    archetype_policy : ArchetypePolicy, optional
        Thresholds and distances shared by growth and adaptation
    seed : int, optional
        Seed for the shared random generator
    clock : callable, optional
        Time source for the orchestrator's duration budget
    """

    def __init__(
        self,
        parameters: Optional[MorphologyParameters] = None,
        bounds: Optional[Bounds] = None,
        graph_policy: Optional[GraphPolicy] = None,
        growth_policy: Optional[GrowthPolicy] = None,
        adaptation_policy: Optional[AdaptationPolicy] = None,
        archetype_policy: Optional[ArchetypePolicy] = None,
        seed: Optional[int] = None,
        clock=None,
    ):
        self.parameters = parameters or MorphologyParameters()
        self.bounds = bounds or default_bounds()
        self.archetype_policy = archetype_policy or ArchetypePolicy()
        self.rng = np.random.default_rng(seed)
        self.graph = MorphologyGraph(graph_policy)

        orchestrator_kwargs = {} if clock is None else {"clock": clock}
        self.orchestrator = GrowthOrchestrator(
            graph=self.graph,
            parameters=self.parameters,
            bounds=self.bounds,
            policy=growth_policy,
            archetype_policy=self.archetype_policy,
            rng=self.rng,
            **orchestrator_kwargs,
        )
        self.adaptation = AdaptationEngine(
            graph=self.graph,
            parameters=self.parameters,
            policy=adaptation_policy,
            archetype_policy=self.archetype_policy,
            rng=self.rng,
            bounds=self.bounds,
            influence_field=self.orchestrator.field,
        )
        self.last_adaptation = 0.0

    # ------------------------------------------------------------------
    # Setup

    def seed_root(self, position: Any = None, is_anchored: bool = False) -> int:
        """
        Place a root node (bounds center if ``position`` is omitted).

        Returns
        -------
        int
            ID of the new root
        """
        if position is None:
            position = self.bounds.center
        position = self.bounds.project_inside(np.asarray(position, dtype=float))
        node_id = self.graph.create_node(position, is_root=True, is_anchored=is_anchored)
        self.orchestrator.field.add_influence_point(position, 1.0)
        return node_id

    def initialize(self, target_node_count: Optional[int] = None) -> None:
        """Reset growth progress and adaptation state for the current graph."""
        self.orchestrator.initialize(self.graph, self.parameters, target_node_count)
        self.adaptation.initialize(
            self.graph, self.parameters, self.bounds, self.orchestrator.field
        )

    def set_parameters(self, parameters: MorphologyParameters) -> None:
        """Swap parameters between steps; the graph is kept."""
        self.parameters = parameters
        self.orchestrator.update_parameters(parameters)
        self.adaptation.set_parameters(parameters)

    def set_bounds(self, bounds: Bounds) -> None:
        self.bounds = bounds
        self.orchestrator.set_bounds(bounds)
        self.adaptation.bounds = bounds

    def use_algorithm(self, name: Optional[str], **kwargs) -> GrowthAlgorithm:
        """
        Pin a named algorithm for both growth and adaptation.

        ``None`` returns to selection by archetype.
        """
        if name is None:
            self.orchestrator.set_algorithm(None)
            self.adaptation.set_algorithm(None)
            return self.orchestrator.algorithm
        algorithm = get_algorithm(name, **kwargs)
        self.orchestrator.set_algorithm(algorithm)
        self.adaptation.set_algorithm(algorithm)
        logger.info(f"Using growth algorithm {algorithm.name}")
        return algorithm

    def set_environmental_influence(self, vector: Any) -> bool:
        """
        Forward an environmental bias vector to the active algorithm.

        Returns
        -------
        bool
            False if the active algorithm takes no environmental input
        """
        algorithm = self.orchestrator.algorithm
        setter = getattr(algorithm, "set_environmental_influence", None)
        if setter is None:
            logger.debug(f"Algorithm {algorithm.name} ignores environmental influence")
            return False
        setter(vector)
        return True

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> None:
        self.orchestrator.start()

    def pause(self) -> None:
        self.orchestrator.pause()

    def stop(self) -> None:
        self.orchestrator.stop()

    def reset(self) -> None:
        """Clear the graph and all growth and adaptation state."""
        self.orchestrator.reset()
        self.adaptation.initialize(self.graph)
        self.last_adaptation = 0.0

    def step(self, dt: float, forces: Optional[Dict[int, Any]] = None) -> StepOutcome:
        """
        Advance one frame: growth tick, force update, adaptation step.

        Parameters
        ----------
        dt : float
            Timestep in seconds
        forces : dict, optional
            Node ID -> force vector for this frame

        Returns
        -------
        StepOutcome
            Outcome of the growth tick
        """
        outcome = self.orchestrator.tick()
        if forces:
            self.adaptation.update_forces(forces)
        self.last_adaptation = self.adaptation.adaptation_step(dt)
        return outcome

    # ------------------------------------------------------------------
    # Readouts

    @property
    def is_growing(self) -> bool:
        return self.orchestrator.is_growing

    def node_records(self) -> List[NodeRecord]:
        return [node_record(self.graph, node_id) for node_id in sorted(self.graph.nodes)]

    def edge_records(self) -> List[EdgeRecord]:
        return [edge_record(self.graph, edge_id) for edge_id in sorted(self.graph.edges)]

    def telemetry(self) -> Dict[str, float]:
        return {
            "growth_progress": self.orchestrator.progress,
            "average_stress": self.adaptation.get_average_stress(),
            "node_count": float(self.graph.node_count),
            "connection_count": float(self.graph.edge_count),
        }

    def export_snapshot(self) -> MorphologySnapshot:
        return export_snapshot(self.graph)

    def import_snapshot(self, snapshot: MorphologySnapshot) -> None:
        """
        Replace the graph with a snapshot's contents.

        Growth stops; imported stress values are kept.

        Raises
        ------
        GraphInvariantError
            If the snapshot is inconsistent
        """
        graph = import_snapshot(snapshot, self.graph.policy)
        self.graph = graph
        self.orchestrator.initialize(graph, self.parameters)
        self.adaptation.initialize(
            graph, self.parameters, self.bounds, self.orchestrator.field, reset_stress=False
        )
        logger.info(f"Imported snapshot: {graph.node_count} nodes, {graph.edge_count} edges")
