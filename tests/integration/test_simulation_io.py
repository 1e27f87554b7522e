"""
Integration tests for the simulation context, snapshots, metrics and
one-call generation.
"""

import json

import pytest
import numpy as np

from morph_policies import GraphPolicy, GrowthPolicy, MorphologyParameters
from morphogen import (
    Bounds,
    GraphInvariantError,
    MorphologyGraph,
    MorphologySimulation,
    MorphologySnapshot,
    StepOutcome,
    compute_morphology_metrics,
    export_snapshot,
    generate_morphology,
    import_snapshot,
)
from morphogen.io import NodeRecord


@pytest.fixture
def grown_sim():
    sim = MorphologySimulation(
        parameters=MorphologyParameters(biomorph_type="mycelium", connectivity=0.7),
        bounds=Bounds.from_center_size((0, 0, 0), (30, 30, 30)),
        seed=8,
    )
    sim.seed_root()
    sim.initialize(target_node_count=30)
    sim.orchestrator.run()
    return sim


class TestSnapshot:
    """Tests for snapshot export and import."""

    def test_roundtrip_preserves_structure(self, grown_sim):
        """Positions, edge pairs, strengths and scalars survive a JSON round trip."""
        graph = grown_sim.graph
        for node in graph.nodes.values():
            node.stress = 0.25
        snapshot = export_snapshot(graph)

        restored_snapshot = MorphologySnapshot.from_dict(json.loads(json.dumps(snapshot.to_dict())))
        restored = import_snapshot(restored_snapshot)

        assert restored.node_count == graph.node_count
        assert restored.edge_count == graph.edge_count
        for node_id, node in graph.nodes.items():
            other = restored.nodes[node_id]
            assert np.allclose(restored.position_of(node_id), graph.position_of(node_id))
            assert other.stress == pytest.approx(node.stress)
            assert other.energy == pytest.approx(node.energy)
            assert other.is_root == node.is_root
        for edge in graph.edges.values():
            match = restored.edge_between(edge.node_a, edge.node_b)
            assert match is not None
            assert match.strength == pytest.approx(edge.strength)
        restored.validate()

    def test_nodes_exported_in_id_order(self, grown_sim):
        """Node records are sorted by ID and carry connection counts."""
        snapshot = grown_sim.export_snapshot()
        ids = [record.id for record in snapshot.nodes]

        assert ids == sorted(ids)
        for record in snapshot.nodes:
            assert record.connection_count == grown_sim.graph.degree(record.id)

    def test_bad_edge_index_raises(self):
        """Edge indices outside the node list fail fast."""
        snapshot = MorphologySnapshot(
            nodes=[NodeRecord(id=0, position=(0, 0, 0), stress=0, energy=1, connection_count=0)],
            edges=[(0, 3, 0.5)],
        )
        with pytest.raises(GraphInvariantError):
            import_snapshot(snapshot)

    def test_duplicate_node_id_raises(self):
        """Duplicate node IDs fail fast."""
        record = NodeRecord(id=4, position=(0, 0, 0), stress=0, energy=1, connection_count=0)
        with pytest.raises(GraphInvariantError):
            import_snapshot(MorphologySnapshot(nodes=[record, record]))

    def test_duplicate_edge_raises(self):
        """Repeated index pairs fail fast."""
        nodes = [
            NodeRecord(id=0, position=(0, 0, 0), stress=0, energy=1, connection_count=1),
            NodeRecord(id=1, position=(2, 0, 0), stress=0, energy=1, connection_count=1),
        ]
        snapshot = MorphologySnapshot(nodes=nodes, edges=[(0, 1, 0.5), (1, 0, 0.7)])
        with pytest.raises(GraphInvariantError):
            import_snapshot(snapshot)

    def test_simulation_import_keeps_stress(self, grown_sim):
        """Importing into a simulation keeps the imported stress values."""
        snapshot = grown_sim.export_snapshot()
        snapshot.nodes[0].stress = 0.75

        sim = MorphologySimulation(seed=1)
        sim.import_snapshot(snapshot)

        assert sim.graph.node_count == grown_sim.graph.node_count
        assert sim.adaptation.get_node_stress(snapshot.nodes[0].id) == pytest.approx(0.75)
        assert sim.orchestrator.graph is sim.graph
        assert sim.adaptation.graph is sim.graph


class TestSimulation:
    """Tests for MorphologySimulation stepping and readouts."""

    def test_step_grows_and_reports_telemetry(self):
        """Stepping grows the graph and telemetry tracks it."""
        sim = MorphologySimulation(
            parameters=MorphologyParameters(biomorph_type="coral", density=0.05),
            bounds=Bounds.from_center_size((0, 0, 0), (30, 30, 30)),
            seed=4,
        )
        sim.initialize()
        sim.start()

        outcome = StepOutcome.CONTINUE
        for _ in range(500):
            outcome = sim.step(0.05, {0: (0.0, -1.0, 0.0)})
            if outcome != StepOutcome.CONTINUE:
                break

        telemetry = sim.telemetry()
        assert outcome == StepOutcome.DONE
        assert telemetry["growth_progress"] == 1.0
        assert telemetry["node_count"] == sim.graph.node_count
        assert telemetry["connection_count"] == sim.graph.edge_count
        assert 0.0 <= telemetry["average_stress"] <= 1.0

    def test_records_match_graph(self):
        """Node and edge records mirror the graph."""
        sim = MorphologySimulation(seed=2)
        sim.seed_root((1.0, 2.0, 3.0))
        sim.initialize(target_node_count=8)
        sim.orchestrator.run()

        nodes = sim.node_records()
        edges = sim.edge_records()
        assert len(nodes) == 8
        assert nodes[0].position == (1.0, 2.0, 3.0)
        assert nodes[0].is_root
        assert len(edges) == sim.graph.edge_count
        assert all(sim.graph.is_connected(e.node_a, e.node_b) for e in edges)

    def test_stop_and_reset(self):
        """stop makes steps idle; reset empties the graph."""
        sim = MorphologySimulation(seed=3)
        sim.start()
        sim.step(0.1)
        sim.stop()

        assert sim.step(0.1) == StepOutcome.IDLE
        sim.reset()
        assert sim.graph.node_count == 0
        assert sim.telemetry()["node_count"] == 0

    def test_parameter_swap_keeps_graph(self):
        """Changing archetype between steps keeps existing nodes."""
        sim = MorphologySimulation(seed=6)
        sim.initialize(target_node_count=50)
        sim.start()
        for _ in range(3):
            sim.step(0.1)
        count = sim.graph.node_count

        sim.set_parameters(MorphologyParameters(biomorph_type="bone"))
        assert sim.orchestrator.algorithm.name == "bone"
        assert sim.adaptation.algorithm.name == "bone"
        assert sim.graph.node_count == count

    def test_environmental_influence_forwarding(self):
        """Only space colonization accepts an environmental vector."""
        sim = MorphologySimulation(seed=7)
        assert sim.set_environmental_influence((1, 0, 0)) is False

        sim.use_algorithm("space_colonization")
        assert sim.set_environmental_influence((1, 0, 0)) is True
        assert sim.orchestrator.algorithm is sim.adaptation.algorithm

    def test_space_colonization_growth(self):
        """Space colonization grows a connected structure within bounds."""
        bounds = Bounds.from_center_size((0, 0, 0), (20, 20, 20))
        sim = MorphologySimulation(bounds=bounds, seed=12)
        sim.use_algorithm("space_colonization")
        sim.seed_root()
        sim.initialize(target_node_count=25)

        assert sim.orchestrator.run() == StepOutcome.DONE
        assert all(bounds.contains(sim.graph.position_of(n)) for n in sim.graph.nodes)
        metrics = compute_morphology_metrics(sim.graph, bounds)
        assert metrics.connected_components == 1


class TestMetrics:
    """Tests for compute_morphology_metrics."""

    def test_empty_graph(self):
        """An empty graph gives all-zero metrics."""
        metrics = compute_morphology_metrics(MorphologyGraph())
        assert metrics.node_count == 0
        assert metrics.connected_components == 0

    def test_chain_metrics(self):
        """Lengths, degree and components of a simple chain."""
        graph = MorphologyGraph()
        ids = [graph.create_node((2.0 * i, 0, 0)) for i in range(3)]
        graph.create_edge(ids[0], ids[1])
        graph.create_edge(ids[1], ids[2])
        graph.create_node((10.0, 0, 0))
        bounds = Bounds.from_center_size((0, 0, 0), (10, 10, 10))

        metrics = compute_morphology_metrics(graph, bounds)

        assert metrics.node_count == 4
        assert metrics.connection_count == 2
        assert metrics.total_edge_length == pytest.approx(4.0)
        assert metrics.average_edge_length == pytest.approx(2.0)
        assert metrics.mean_degree == pytest.approx(1.0)
        assert metrics.connected_components == 2
        assert metrics.largest_component_fraction == pytest.approx(0.75)
        assert metrics.density == pytest.approx(4 / 1000.0)


class TestGenerateMorphology:
    """Tests for one-call generation."""

    def test_generates_to_density_target(self):
        """Seeds, target and report follow the density-derived settings."""
        bounds = Bounds.from_center_size((0, 0, 0), (30, 30, 30))
        sim, report = generate_morphology(
            bounds,
            MorphologyParameters(biomorph_type="mold", density=0.2, connectivity=0.5),
            growth_policy=GrowthPolicy(initial_seed_count=4),
            graph_policy=GraphPolicy(max_nodes=200),
            seed=10,
        )

        assert report.success
        assert report.effective_policy["target_node_count"] == 40
        assert report.effective_policy["seed_count"] == 4
        assert sim.graph.node_count == 40
        assert sum(1 for n in sim.graph.nodes.values() if n.is_root) == 4
        assert report.metrics["node_count"] == 40
        assert report.metrics["outcome"] == "done"
        assert len(report.metrics["snapshot"]["nodes"]) == 40
        sim.graph.validate()

    def test_target_never_below_seed_count(self):
        """Tiny densities still keep every seed."""
        sim, report = generate_morphology(
            Bounds.from_center_size((0, 0, 0), (30, 30, 30)),
            MorphologyParameters(density=0.0),
            growth_policy=GrowthPolicy(initial_seed_count=6),
            graph_policy=GraphPolicy(max_nodes=100),
            seed=1,
        )
        assert report.effective_policy["target_node_count"] == 6
        assert sim.graph.node_count == 6

    def test_tick_cap_reported_as_warning(self):
        """Stopping early on max_ticks records a warning."""
        _, report = generate_morphology(
            Bounds.from_center_size((0, 0, 0), (30, 30, 30)),
            MorphologyParameters(density=1.0),
            graph_policy=GraphPolicy(max_nodes=300),
            seed=2,
            max_ticks=1,
        )
        assert report.success
        assert report.warnings
        assert report.metrics["outcome"] == "continue"

    def test_invalid_policy_rejected(self):
        """Invalid settings raise before any growth."""
        with pytest.raises(ValueError):
            generate_morphology(
                Bounds.from_center_size((0, 0, 0), (10, 10, 10)),
                growth_policy=GrowthPolicy(max_iterations=0),
            )
