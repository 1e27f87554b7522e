"""
Growth orchestrator.

Drives repeated growth steps until the morphology reaches its target
size, the caller stops it, or the iteration/time budget runs out. The
host owns the loop and calls ``tick()`` once per frame or timestep; each
tick does a bounded amount of work and returns a ``StepOutcome``.
"""

from enum import Enum
from typing import Callable, Dict, Optional
import logging
import time

import numpy as np
from tqdm import tqdm

from morph_policies import ArchetypePolicy, GrowthPolicy, MorphologyParameters

from ..core.bounds import Bounds
from ..core.graph import MorphologyGraph
from ..growth import GrowthAlgorithm, GrowthContext, select_algorithm
from ..ops.structure import realize_growth, settle_nodes
from ..spatial.influence_field import InfluenceField

logger = logging.getLogger(__name__)


class GrowthState(str, Enum):
    IDLE = "idle"
    GROWING = "growing"
    PAUSED = "paused"


class StepOutcome(str, Enum):
    """Result of one ``tick``."""

    CONTINUE = "continue"
    DONE = "done"
    BUDGET_EXCEEDED = "budget_exceeded"
    IDLE = "idle"


def default_bounds() -> Bounds:
    return Bounds.from_center_size((0.0, 0.0, 0.0), (50.0, 50.0, 50.0))


class GrowthOrchestrator:
    """
    Stateful growth driver: ``IDLE -> GROWING -> (PAUSED | IDLE)``.

    Parameters
    ----------
    graph : MorphologyGraph, optional
        Graph to grow; a new empty graph if omitted
    parameters : MorphologyParameters, optional
        Archetype and scalar knobs
    bounds : Bounds, optional
        Growth volume (a 50-unit cube around the origin if omitted)
    policy : GrowthPolicy, optional
        Step sizes, target range and budgets
    archetype_policy : ArchetypePolicy, optional
        Thresholds and distances handed to the algorithms
    rng : np.random.Generator, optional
        Shared generator; created from ``seed`` if omitted
    seed : int, optional
        Seed used when ``rng`` is not given
    algorithm : GrowthAlgorithm, optional
        Pin a specific algorithm instead of selecting by archetype
    clock : callable, optional
        Monotonic time source in seconds
    """

    def __init__(
        self,
        graph: Optional[MorphologyGraph] = None,
        parameters: Optional[MorphologyParameters] = None,
        bounds: Optional[Bounds] = None,
        policy: Optional[GrowthPolicy] = None,
        archetype_policy: Optional[ArchetypePolicy] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        algorithm: Optional[GrowthAlgorithm] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.graph = graph if graph is not None else MorphologyGraph()
        self.parameters = parameters or MorphologyParameters()
        self.bounds = bounds or default_bounds()
        self.policy = policy or GrowthPolicy()
        self.archetype_policy = archetype_policy or ArchetypePolicy()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.clock = clock
        self.graph.set_connection_distance(self.archetype_policy.max_node_distance)

        self.field = InfluenceField(self.bounds, self.policy.influence_cell_size)
        self._algorithm = algorithm or select_algorithm(self.parameters.biomorph_type)
        self._algorithm_pinned = algorithm is not None

        self.state = GrowthState.IDLE
        self._explicit_target: Optional[int] = None
        self.target_node_count = self.compute_target_node_count()
        self._reset_progress()

    # ------------------------------------------------------------------
    # Configuration

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

    def compute_target_node_count(self) -> int:
        """``clamp(round(density_scale * density), min, max)``, capped by ``max_nodes``."""
        policy = self.policy
        target = int(round(policy.density_scale * self.parameters.density))
        target = min(policy.max_target_nodes, max(policy.min_target_nodes, target))
        return min(target, self.graph.max_nodes)

    def update_parameters(self, parameters: MorphologyParameters) -> None:
        """
        Swap parameters between ticks without touching the graph.

        The algorithm is re-selected when the archetype changes and the
        target is recomputed unless one was given explicitly.
        """
        previous = self.parameters.biomorph_type
        self.parameters = parameters
        if parameters.biomorph_type != previous and not self._algorithm_pinned:
            self._algorithm = select_algorithm(parameters.biomorph_type)
            logger.debug(f"Growth algorithm switched to {self._algorithm.name}")
        if self._explicit_target is None:
            self.target_node_count = self.compute_target_node_count()

    def set_bounds(self, bounds: Bounds) -> None:
        """Change the growth volume and rebuild the influence field."""
        self.bounds = bounds
        self._rebuild_field()

    def _rebuild_field(self) -> None:
        positions = (self.graph.position_of(node_id) for node_id in self.graph.nodes)
        self.field.rebuild(self.bounds, positions)

    # ------------------------------------------------------------------
    # Lifecycle

    def _reset_progress(self) -> None:
        self.iterations = 0
        self.nodes_grown = 0
        self._elapsed_before = 0.0
        self._resumed_at: Optional[float] = None
        self.last_outcome = StepOutcome.IDLE

    def initialize(
        self,
        graph: Optional[MorphologyGraph] = None,
        parameters: Optional[MorphologyParameters] = None,
        target_node_count: Optional[int] = None,
    ) -> None:
        """
        Reset progress tracking and reseed the influence field from the
        current nodes.

        Parameters
        ----------
        graph : MorphologyGraph, optional
            Replace the graph being grown
        parameters : MorphologyParameters, optional
            Replace the parameters
        target_node_count : int, optional
            Explicit target; derived from density when omitted
        """
        if graph is not None:
            self.graph = graph
            graph.set_connection_distance(self.archetype_policy.max_node_distance)
        if parameters is not None:
            self.parameters = parameters
            if not self._algorithm_pinned:
                self._algorithm = select_algorithm(parameters.biomorph_type)

        self._explicit_target = target_node_count
        if target_node_count is not None:
            self.target_node_count = min(max(0, int(target_node_count)), self.graph.max_nodes)
        else:
            self.target_node_count = self.compute_target_node_count()

        self.state = GrowthState.IDLE
        self._reset_progress()
        self._algorithm.reset()
        self._rebuild_field()
        logger.info(
            f"Growth initialized: {self.graph.node_count} nodes, "
            f"target {self.target_node_count}, algorithm {self._algorithm.name}"
        )

    def start(self) -> None:
        """
        Begin or resume growth.

        An empty graph is seeded with a root node at the center of the
        bounds.
        """
        if self.state == GrowthState.GROWING:
            logger.warning("Growth already in progress")
            return
        if self.graph.node_count == 0:
            root_id = self.graph.create_node(self.bounds.center, is_root=True)
            self.field.add_influence_point(self.bounds.center, 1.0)
            logger.info(f"Seeded root node {root_id} at bounds center")
        self.state = GrowthState.GROWING
        self._resumed_at = self.clock()

    def pause(self) -> None:
        if self.state != GrowthState.GROWING:
            return
        self._elapsed_before = self.elapsed
        self._resumed_at = None
        self.state = GrowthState.PAUSED

    def stop(self) -> None:
        """Halt growth; the next tick returns ``IDLE``."""
        if self.state == GrowthState.GROWING:
            self._elapsed_before = self.elapsed
        self._resumed_at = None
        self.state = GrowthState.IDLE

    def reset(self) -> None:
        """Clear the graph and all progress."""
        self.graph.clear()
        self.field.reset()
        self._algorithm.reset()
        self.state = GrowthState.IDLE
        self._reset_progress()

    # ------------------------------------------------------------------
    # Progress

    @property
    def is_growing(self) -> bool:
        return self.state == GrowthState.GROWING

    @property
    def elapsed(self) -> float:
        """Seconds spent in the growing state."""
        if self._resumed_at is None:
            return self._elapsed_before
        return self._elapsed_before + (self.clock() - self._resumed_at)

    @property
    def effective_target(self) -> int:
        return min(self.target_node_count, self.graph.max_nodes)

    @property
    def progress(self) -> float:
        """``node_count / target``, clamped to [0, 1]."""
        target = self.effective_target
        if target <= 0:
            return 1.0
        return min(1.0, max(0.0, self.graph.node_count / target))

    def steps_per_tick(self) -> int:
        return max(1, int(round(self.parameters.growth_rate * self.policy.steps_per_tick_scale)))

    def _budget_exhausted(self) -> bool:
        return (
            self.iterations >= self.policy.max_iterations
            or self.elapsed >= self.policy.max_duration
        )

    def make_context(self) -> GrowthContext:
        return GrowthContext(
            bounds=self.bounds,
            parameters=self.parameters,
            influence_field=self.field,
            rng=self.rng,
            policy=self.archetype_policy,
            max_sources=self.policy.max_nodes_per_growth_cycle,
            node_limit=self.effective_target,
        )

    # ------------------------------------------------------------------
    # Stepping

    def tick(self) -> StepOutcome:
        """
        Run one bounded growth tick.

        Returns
        -------
        StepOutcome
            ``CONTINUE`` while growing, ``DONE`` once the target is reached,
            ``BUDGET_EXCEEDED`` when iterations or time ran out first, and
            ``IDLE`` when not growing
        """
        if self.state != GrowthState.GROWING:
            self.last_outcome = StepOutcome.IDLE
            return self.last_outcome

        if self.graph.node_count >= self.effective_target:
            return self._finish(StepOutcome.DONE)

        if self._budget_exhausted():
            return self._finish(StepOutcome.BUDGET_EXCEEDED)

        self.iterations += 1
        created = self.grow_step()
        logger.debug(
            f"Tick {self.iterations}: +{created} nodes "
            f"({self.graph.node_count}/{self.effective_target})"
        )

        if self.graph.node_count >= self.effective_target:
            return self._finish(StepOutcome.DONE)
        self.last_outcome = StepOutcome.CONTINUE
        return self.last_outcome

    def _finish(self, outcome: StepOutcome) -> StepOutcome:
        self.stop()
        self.last_outcome = outcome
        if outcome == StepOutcome.DONE:
            logger.info(
                f"Growth completed: {self.graph.node_count} nodes in "
                f"{self.iterations} ticks ({self.elapsed:.2f}s)"
            )
        else:
            logger.info(
                f"Growth budget exhausted after {self.iterations} ticks "
                f"({self.elapsed:.2f}s) at progress {self.progress:.1%}"
            )
        return outcome

    def grow_step(self) -> int:
        """
        Perform the growth sub-steps of one tick.

        Each valid proposal becomes a node joined to its parent, the
        algorithm's follow-up links it into the neighborhood, then the
        algorithm's edge-level reinforcement runs once. Bone and coral
        structures also settle slightly under gravity.

        Returns
        -------
        int
            Number of nodes added this tick
        """
        context = self.make_context()
        start_count = self.graph.node_count
        budget = min(
            self.steps_per_tick(),
            self.policy.max_nodes_per_growth_cycle,
            context.remaining(self.graph),
        )

        for algorithm, attempts in self._algorithm.plan(budget, context):
            for _ in range(attempts):
                if not context.has_room(self.graph):
                    break
                result = algorithm.calculate_growth(self.graph, context)
                if not result.is_valid:
                    continue
                new_id = realize_growth(self.graph, result, context, algorithm.energy_cost(context))
                if new_id is None:
                    break
                algorithm.after_growth(self.graph, result, new_id, context)

        amount = self.parameters.growth_rate * self.policy.reinforcement_dt
        self._algorithm.reinforce(self.graph, amount, context)

        if self._algorithm.settles:
            settle_nodes(
                self.graph,
                self.bounds,
                self.rng,
                self.policy.settle_probability,
                self.policy.settle_distance,
                self.archetype_policy.up_axis,
            )

        created = self.graph.node_count - start_count
        self.nodes_grown += created
        return created

    def run(self, max_ticks: Optional[int] = None, progress: bool = False) -> StepOutcome:
        """
        Tick until growth finishes, the budget runs out or ``max_ticks``
        ticks have run.

        Parameters
        ----------
        max_ticks : int, optional
            Stop after this many ticks even if still growing
        progress : bool
            Show a tqdm progress bar

        Returns
        -------
        StepOutcome
            Outcome of the last tick
        """
        if self.state != GrowthState.GROWING:
            self.start()

        pbar = tqdm(
            total=self.effective_target,
            initial=self.graph.node_count,
            desc=f"Growing ({self._algorithm.name})",
            unit="node",
            disable=not progress,
        )
        outcome = StepOutcome.CONTINUE
        ticks = 0
        try:
            while outcome == StepOutcome.CONTINUE:
                if max_ticks is not None and ticks >= max_ticks:
                    break
                before = self.graph.node_count
                outcome = self.tick()
                pbar.update(self.graph.node_count - before)
                ticks += 1
        finally:
            pbar.close()
        return outcome

    def statistics(self) -> Dict[str, float]:
        """Growth telemetry snapshot."""
        elapsed = self.elapsed
        return {
            "node_count": float(self.graph.node_count),
            "connection_count": float(self.graph.edge_count),
            "target_node_count": float(self.effective_target),
            "growth_progress": self.progress,
            "iterations": float(self.iterations),
            "growth_time": elapsed,
            "growth_rate": self.nodes_grown / max(0.1, elapsed),
            "connection_density": self.graph.edge_count / max(1, self.graph.node_count),
        }
