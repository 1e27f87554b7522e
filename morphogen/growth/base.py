"""
Abstract base class for growth algorithms.

A growth algorithm proposes where the morphology should grow next
(``calculate_growth``) and how the structure responds to load
(``reinforce`` at growth time, ``respond`` during adaptation). Concrete
algorithms are registered by name in ``morphogen.growth``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, TYPE_CHECKING
import logging

import numpy as np

from morph_policies import ArchetypePolicy, MorphologyParameters

from ..core.bounds import Bounds
from ..spatial.influence_field import InfluenceField

if TYPE_CHECKING:
    from ..core.graph import MorphologyGraph

logger = logging.getLogger(__name__)


@dataclass
class GrowthResult:
    """
    Outcome of one growth proposal.

    ``is_valid = False`` means "no growth this call" and is not an error.
    ``probability`` is the spawn probability the proposing algorithm
    assigned to the source; the orchestrator does not re-gate on it.
    """
    is_valid: bool = False
    position: Optional[np.ndarray] = None
    parent_id: Optional[int] = None
    direction: np.ndarray = field(default_factory=lambda: np.zeros(3))
    probability: float = 0.0
    distance: float = 0.0
    parent_degree: int = 0
    partner_id: Optional[int] = None  # second endpoint for strut growth
    source: str = ""

    @classmethod
    def invalid(cls, source: str = "") -> "GrowthResult":
        return cls(is_valid=False, source=source)


@dataclass
class GrowthContext:
    """
    Everything an algorithm needs besides the graph itself.

    Parameters
    ----------
    bounds : Bounds, optional
        Candidates are clamped into these bounds when given
    parameters : MorphologyParameters
        Current archetype knobs
    influence_field : InfluenceField, optional
        Receives an influence point for every created node
    rng : np.random.Generator
        The single generator threaded through every stochastic call
    policy : ArchetypePolicy
        Thresholds and distances
    max_sources : int
        Per-call cap on growth sources
    node_limit : int, optional
        Target size for the current run, in addition to ``graph.max_nodes``
    """
    bounds: Optional[Bounds]
    parameters: MorphologyParameters
    influence_field: Optional[InfluenceField]
    rng: np.random.Generator
    policy: ArchetypePolicy = field(default_factory=ArchetypePolicy)
    max_sources: int = 10
    node_limit: Optional[int] = None

    def remaining(self, graph: "MorphologyGraph") -> int:
        """Nodes that may still be created under both limits."""
        room = graph.max_nodes - graph.node_count
        if self.node_limit is not None:
            room = min(room, self.node_limit - graph.node_count)
        return max(0, room)

    def has_room(self, graph: "MorphologyGraph", n: int = 1) -> bool:
        return self.remaining(graph) >= n


def is_growth_eligible(graph: "MorphologyGraph", node_id: int) -> bool:
    """
    Whether a node may originate growth.

    Requires remaining energy. Isolated nodes only qualify while they are
    roots or while the graph has no edges at all (seed generation).
    """
    node = graph.nodes[node_id]
    if node.energy <= 0:
        return False
    if graph.degree(node_id) == 0:
        return node.is_root or graph.edge_count == 0
    return True


def force_vector(graph: "MorphologyGraph", node_id: int) -> np.ndarray:
    return np.asarray(graph.nodes[node_id].force, dtype=float)


def frontier_sources(graph: "MorphologyGraph", context: "GrowthContext", limit: int) -> List[int]:
    """
    The ``limit`` eligible nodes with the fewest edges, newest first on
    ties, returned in an order drawn from ``context.rng``.
    """
    candidates = [node_id for node_id in graph.nodes if is_growth_eligible(graph, node_id)]
    candidates.sort(key=lambda node_id: (graph.degree(node_id), -node_id))
    candidates = candidates[:limit]
    return [candidates[i] for i in context.rng.permutation(len(candidates))]


class GrowthAlgorithm(ABC):
    """
    Abstract base class for archetype growth strategies.

    Subclasses implement ``select_sources`` and ``propose_from``; the
    default ``calculate_growth`` tries sources in order and returns the
    first valid proposal, then falls back to ``fallback_sources`` so an
    unloaded structure whose preferred sources are used up keeps growing.
    """

    name: str = "base"
    connectivity_factor: float = 1.0
    settles: bool = False

    def spacing(self, context: GrowthContext) -> float:
        """Minimum distance a new node must keep from every existing node."""
        return context.policy.min_node_distance

    def energy_cost(self, context: GrowthContext) -> float:
        """Energy drawn from the parent for each child grown."""
        return context.policy.growth_energy_cost

    @abstractmethod
    def select_sources(self, graph: "MorphologyGraph", context: GrowthContext) -> List[int]:
        """Ordered candidate parent node IDs."""
        pass

    @abstractmethod
    def propose_from(
        self, graph: "MorphologyGraph", source_id: int, context: GrowthContext
    ) -> GrowthResult:
        """Propose one new node grown from ``source_id``."""
        pass

    def spawn_probability(
        self, graph: "MorphologyGraph", source_id: int, amount: float, context: GrowthContext
    ) -> float:
        """Probability that ``source_id`` grows during an adaptation response."""
        return amount

    def fallback_sources(self, graph: "MorphologyGraph", context: GrowthContext) -> List[int]:
        """Sources tried when no preferred source yields a proposal."""
        return frontier_sources(graph, context, context.max_sources * 2)

    def propose_fallback(
        self, graph: "MorphologyGraph", source_id: int, context: GrowthContext
    ) -> GrowthResult:
        return self.propose_from(graph, source_id, context)

    def calculate_growth(self, graph: "MorphologyGraph", context: GrowthContext) -> GrowthResult:
        """
        Propose the next node to grow.

        Preferred sources from ``select_sources`` are tried first, then
        the capped ``fallback_sources``.

        Returns
        -------
        GrowthResult
            First valid proposal, or an invalid result if no source
            produced one
        """
        if not context.has_room(graph):
            return GrowthResult.invalid(self.name)
        for source_id in self.select_sources(graph, context):
            result = self.propose_from(graph, source_id, context)
            if result.is_valid:
                return result
        for source_id in self.fallback_sources(graph, context):
            result = self.propose_fallback(graph, source_id, context)
            if result.is_valid:
                return result
        logger.debug(f"{self.name} found no valid growth candidate")
        return GrowthResult.invalid(self.name)

    def after_growth(
        self, graph: "MorphologyGraph", result: GrowthResult, new_id: int, context: GrowthContext
    ) -> float:
        """
        Structural follow-up once ``new_id`` exists and is joined to its parent.

        The default links the new node to nearby nodes with probability
        ``connectivity * connectivity_factor``.

        Returns
        -------
        float
            Extra adaptation amount contributed (0 for plain linking)
        """
        from ..ops.structure import connect_to_nearby

        probability = context.parameters.connectivity * self.connectivity_factor
        connect_to_nearby(graph, new_id, probability, context)
        return 0.0

    def reinforce(self, graph: "MorphologyGraph", amount: float, context: GrowthContext) -> float:
        """Edge-level response applied once per growth tick and after each response."""
        return 0.0

    def respond(self, graph: "MorphologyGraph", amount: float, context: GrowthContext) -> float:
        """
        Adaptation-time response scaled by ``amount``.

        Each source is gated by ``spawn_probability``; accepted proposals
        are realized like growth-time proposals. Finishes with
        ``reinforce``.

        Returns
        -------
        float
            Total adaptation: 1 per grown node plus follow-up contributions
        """
        from ..ops.structure import realize_growth

        total = 0.0
        grown = 0
        for source_id in self.select_sources(graph, context):
            if grown >= context.max_sources or not context.has_room(graph):
                break
            if source_id not in graph.nodes:
                continue
            if context.rng.random() >= self.spawn_probability(graph, source_id, amount, context):
                continue
            result = self.propose_from(graph, source_id, context)
            if not result.is_valid:
                continue
            new_id = realize_growth(graph, result, context, self.energy_cost(context))
            if new_id is None:
                break
            total += 1.0 + self.after_growth(graph, result, new_id, context)
            grown += 1
        total += self.reinforce(graph, amount, context)
        return total

    def plan(self, steps: int, context: GrowthContext) -> List[Tuple["GrowthAlgorithm", int]]:
        """How a tick's ``steps`` growth attempts are split across algorithms."""
        return [(self, steps)]

    def reset(self) -> None:
        """Drop any per-run state."""
        pass
