"""
Unit tests for GrowthOrchestrator.

Tests target derivation, the state machine, convergence, idempotence
after completion and budget exhaustion with an injected clock.
"""

import pytest

from morph_policies import ArchetypePolicy, GraphPolicy, GrowthPolicy, MorphologyParameters
from morphogen.core import Bounds, MorphologyGraph
from morphogen.engine import GrowthOrchestrator, GrowthState, StepOutcome


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_orchestrator(**kwargs):
    kwargs.setdefault("bounds", Bounds.from_center_size((0, 0, 0), (40, 40, 40)))
    kwargs.setdefault("seed", 3)
    return GrowthOrchestrator(**kwargs)


class TestTarget:
    """Tests for target node count derivation."""

    @pytest.mark.parametrize("density, expected", [
        (0.0, 50),
        (0.01, 50),
        (0.3, 300),
        (1.0, 1000),
    ])
    def test_target_from_density(self, density, expected):
        """Target is round(1000 * density) clamped into [50, 2000]."""
        orch = make_orchestrator(parameters=MorphologyParameters(density=density))
        assert orch.compute_target_node_count() == expected

    def test_target_capped_by_max_nodes(self):
        """The graph's max_nodes caps the target."""
        graph = MorphologyGraph(GraphPolicy(max_nodes=120))
        orch = make_orchestrator(graph=graph, parameters=MorphologyParameters(density=1.0))
        assert orch.compute_target_node_count() == 120

    def test_steps_per_tick(self):
        """Steps per tick are max(1, round(growth_rate * 10))."""
        assert make_orchestrator(parameters=MorphologyParameters(growth_rate=0.0)).steps_per_tick() == 1
        assert make_orchestrator(parameters=MorphologyParameters(growth_rate=0.34)).steps_per_tick() == 3
        assert make_orchestrator(parameters=MorphologyParameters(growth_rate=1.0)).steps_per_tick() == 10

    def test_graph_index_follows_max_node_distance(self):
        """The graph grid cell size tracks the archetype connection distance."""
        graph = MorphologyGraph()
        orch = make_orchestrator(graph=graph, archetype_policy=ArchetypePolicy(max_node_distance=8.0))
        assert graph.index_cell_size == pytest.approx(8.0)

        other = MorphologyGraph()
        orch.initialize(graph=other)
        assert other.index_cell_size == pytest.approx(8.0)


class TestLifecycle:
    """Tests for start, pause, stop and reset."""

    def test_tick_while_idle(self):
        """Ticks before start do nothing."""
        orch = make_orchestrator()
        assert orch.tick() == StepOutcome.IDLE
        assert orch.graph.node_count == 0

    def test_start_seeds_root_at_center(self):
        """Starting on an empty graph seeds one root at the bounds center."""
        bounds = Bounds.from_center_size((5, 5, 5), (10, 10, 10))
        orch = make_orchestrator(bounds=bounds)
        orch.start()

        assert orch.state == GrowthState.GROWING
        assert orch.graph.node_count == 1
        root = orch.graph.nodes[0]
        assert root.is_root
        assert root.position.to_tuple() == (5.0, 5.0, 5.0)

    def test_pause_and_resume(self):
        """Paused orchestrators return IDLE and keep their graph."""
        orch = make_orchestrator()
        orch.initialize(target_node_count=100)
        orch.start()
        orch.tick()
        count = orch.graph.node_count

        orch.pause()
        assert orch.state == GrowthState.PAUSED
        assert orch.tick() == StepOutcome.IDLE
        assert orch.graph.node_count == count

        orch.start()
        assert orch.tick() == StepOutcome.CONTINUE
        assert orch.graph.node_count > count

    def test_reset_clears_graph(self):
        """reset drops all nodes and progress."""
        orch = make_orchestrator()
        orch.start()
        orch.tick()
        orch.reset()

        assert orch.graph.node_count == 0
        assert orch.iterations == 0
        assert orch.state == GrowthState.IDLE


class TestConvergence:
    """Tests for growth toward the target."""

    def test_progress_monotone_until_done(self):
        """Node count never decreases and the run ends DONE at the target."""
        orch = make_orchestrator(parameters=MorphologyParameters(growth_rate=0.5))
        orch.initialize(target_node_count=60)
        orch.start()

        last_progress = orch.progress
        outcome = StepOutcome.CONTINUE
        while outcome == StepOutcome.CONTINUE:
            outcome = orch.tick()
            assert orch.progress >= last_progress
            last_progress = orch.progress

        assert outcome == StepOutcome.DONE
        assert orch.graph.node_count == 60
        assert orch.progress == 1.0
        orch.graph.validate()

    def test_ticks_after_done_are_idle(self):
        """Completed growth stays put."""
        orch = make_orchestrator()
        orch.initialize(target_node_count=5)
        assert orch.run() == StepOutcome.DONE
        count = orch.graph.node_count

        for _ in range(3):
            assert orch.tick() == StepOutcome.IDLE
        assert orch.graph.node_count == count

    def test_node_additions_per_tick_bounded(self):
        """A tick adds at most the per-cycle cap, counting follow-up nodes."""
        params = MorphologyParameters(growth_rate=1.0)
        orch = make_orchestrator(parameters=params, policy=GrowthPolicy(max_nodes_per_growth_cycle=4))
        orch.initialize(target_node_count=200)
        orch.start()

        before = orch.graph.node_count
        orch.tick()
        # Mold adds no follow-up nodes
        assert orch.graph.node_count - before <= 4

    def test_statistics(self):
        """Statistics report counts, progress and density."""
        orch = make_orchestrator()
        orch.initialize(target_node_count=20)
        orch.run()
        stats = orch.statistics()

        assert stats["node_count"] == 20
        assert stats["growth_progress"] == 1.0
        assert stats["connection_count"] == orch.graph.edge_count
        assert stats["connection_density"] == pytest.approx(orch.graph.edge_count / 20)


class TestBudget:
    """Tests for iteration and time budgets."""

    def test_iteration_budget(self):
        """Running out of iterations reports BUDGET_EXCEEDED with progress < 1."""
        orch = make_orchestrator(policy=GrowthPolicy(max_iterations=3))
        orch.initialize(target_node_count=500)

        outcome = orch.run()

        assert outcome == StepOutcome.BUDGET_EXCEEDED
        assert orch.iterations == 3
        assert orch.progress < 1.0
        assert orch.state == GrowthState.IDLE

    def test_time_budget_with_injected_clock(self):
        """Elapsed growing time past max_duration stops growth."""
        clock = FakeClock()
        orch = make_orchestrator(policy=GrowthPolicy(max_duration=10.0), clock=clock)
        orch.initialize(target_node_count=500)
        orch.start()

        clock.now = 5.0
        assert orch.tick() == StepOutcome.CONTINUE
        clock.now = 11.0
        assert orch.tick() == StepOutcome.BUDGET_EXCEEDED
        assert orch.progress < 1.0

    def test_paused_time_not_counted(self):
        """Time spent paused does not consume the duration budget."""
        clock = FakeClock()
        orch = make_orchestrator(policy=GrowthPolicy(max_duration=10.0), clock=clock)
        orch.initialize(target_node_count=500)
        orch.start()

        clock.now = 4.0
        orch.pause()
        clock.now = 100.0
        orch.start()
        clock.now = 104.0

        assert orch.elapsed == pytest.approx(8.0)
        assert orch.tick() == StepOutcome.CONTINUE

    def test_max_ticks_leaves_growth_running(self):
        """run(max_ticks) stops early without finishing."""
        orch = make_orchestrator()
        orch.initialize(target_node_count=500)

        outcome = orch.run(max_ticks=2)

        assert outcome == StepOutcome.CONTINUE
        assert orch.is_growing
        assert orch.iterations == 2
