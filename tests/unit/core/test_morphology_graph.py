"""
Unit tests for MorphologyGraph.

Covers edge deduplication, rejected edges, the max_nodes limit, the
switch from brute-force proximity to the grid index and invariant
checking.
"""

import pytest
import numpy as np

from morph_policies import GraphPolicy
from morphogen.core import MorphEdge, MorphNode, MorphologyGraph, GraphInvariantError, Point3D


class TestEdgeCreation:
    """Tests for create_edge rejection rules."""

    def test_duplicate_pair_rejected(self):
        """A second edge between the same pair, in either order, is a no-op."""
        graph = MorphologyGraph()
        a = graph.create_node((0, 0, 0))
        b = graph.create_node((2, 0, 0))

        first = graph.create_edge(a, b)
        assert first is not None
        assert graph.create_edge(a, b) is None
        assert graph.create_edge(b, a) is None
        assert graph.edge_count == 1
        assert graph.degree(a) == 1
        assert graph.degree(b) == 1

    def test_self_edge_rejected(self):
        """Self-edges return None and leave the graph untouched."""
        graph = MorphologyGraph()
        a = graph.create_node((0, 0, 0))

        assert graph.create_edge(a, a) is None
        assert graph.edge_count == 0

    def test_unknown_endpoint_rejected(self):
        """Edges to unknown nodes return None."""
        graph = MorphologyGraph()
        a = graph.create_node((0, 0, 0))

        assert graph.create_edge(a, 99) is None
        assert graph.edge_count == 0

    def test_strength_clamped_and_rest_length_recorded(self):
        """Strength is clamped into [min_strength, 1]; rest length is the creation distance."""
        graph = MorphologyGraph(GraphPolicy(min_strength=0.1))
        a = graph.create_node((0, 0, 0))
        b = graph.create_node((3, 4, 0))
        c = graph.create_node((0, 1, 0))

        high = graph.edges[graph.create_edge(a, b, strength=5.0)]
        low = graph.edges[graph.create_edge(a, c, strength=-1.0)]

        assert high.strength == 1.0
        assert low.strength == pytest.approx(0.1)
        assert high.rest_length == pytest.approx(5.0)

    def test_growth_potential_tracks_degree(self):
        """Growth potential falls by the falloff per incident edge."""
        graph = MorphologyGraph()
        hub = graph.create_node((0, 0, 0))
        for i in range(3):
            other = graph.create_node((2 + i, 0, 0))
            graph.create_edge(hub, other)

        assert graph.nodes[hub].growth_potential == pytest.approx(0.7)

        edge_id = graph.nodes[hub].edge_ids[0]
        graph.remove_edge(edge_id)
        assert graph.nodes[hub].growth_potential == pytest.approx(0.8)


class TestCapacity:
    """Tests for the max_nodes limit."""

    def test_create_node_fails_fast_at_capacity(self):
        """Creating a node beyond max_nodes raises GraphInvariantError."""
        graph = MorphologyGraph(GraphPolicy(max_nodes=2))
        graph.create_node((0, 0, 0))
        graph.create_node((1, 0, 0))

        assert not graph.has_capacity()
        with pytest.raises(GraphInvariantError):
            graph.create_node((2, 0, 0))
        assert graph.node_count == 2

    def test_add_node_duplicate_id_raises(self):
        """Importing a node with an existing ID raises."""
        graph = MorphologyGraph()
        graph.add_node(MorphNode(id=5, position=Point3D(0, 0, 0)))

        with pytest.raises(GraphInvariantError):
            graph.add_node(MorphNode(id=5, position=Point3D(1, 0, 0)))

    def test_add_node_advances_id_allocation(self):
        """Imported IDs are never reissued by create_node."""
        graph = MorphologyGraph()
        graph.add_node(MorphNode(id=7, position=Point3D(0, 0, 0)))

        new_id = graph.create_node((3, 0, 0))
        assert new_id > 7

    def test_add_edge_dangling_endpoint_raises(self):
        """Importing an edge to a missing node raises."""
        graph = MorphologyGraph()
        graph.create_node((0, 0, 0))

        with pytest.raises(GraphInvariantError):
            graph.add_edge(MorphEdge(id=0, node_a=0, node_b=42))


class TestProximity:
    """Tests for proximity queries on both index paths."""

    def _line_graph(self, n, threshold):
        graph = MorphologyGraph(GraphPolicy(spatial_index_threshold=threshold, index_cell_size=5.0))
        for i in range(n):
            graph.create_node((float(i), 0.0, 0.0))
        return graph

    def test_grid_index_enabled_above_threshold(self):
        """The grid index switches on once node_count exceeds the threshold."""
        graph = self._line_graph(5, threshold=5)
        assert not graph.uses_spatial_index

        graph.create_node((10.0, 0.0, 0.0))
        assert graph.uses_spatial_index

    def test_grid_and_brute_force_agree(self):
        """nodes_within returns the same IDs with and without the grid."""
        brute = self._line_graph(20, threshold=1000)
        grid = self._line_graph(20, threshold=5)
        assert grid.uses_spatial_index
        assert not brute.uses_spatial_index

        for center, radius in [((3.0, 0, 0), 2.0), ((10.2, 0.5, 0), 4.0), ((50, 0, 0), 1.0)]:
            assert grid.nodes_within(center, radius) == brute.nodes_within(center, radius)

    def test_cell_size_follows_connection_distance(self):
        """Without an override, grid cells match the max connection distance."""
        graph = MorphologyGraph(GraphPolicy(spatial_index_threshold=2), connection_distance=3.0)
        for i in range(4):
            graph.create_node((float(i), 0.0, 0.0))
        assert graph.index_cell_size == pytest.approx(3.0)

        graph.set_connection_distance(8.0)

        assert graph.index_cell_size == pytest.approx(8.0)
        assert graph._grid.cell_size == pytest.approx(8.0)
        assert graph.nodes_within((0.0, 0.0, 0.0), 2.5) == [0, 1, 2]

    def test_cell_size_override(self):
        """An explicit index_cell_size wins over the connection distance."""
        graph = MorphologyGraph(GraphPolicy(index_cell_size=2.0), connection_distance=7.0)
        assert graph.index_cell_size == pytest.approx(2.0)

    def test_has_node_within_is_strict(self):
        """A node exactly at the spacing distance does not block placement."""
        graph = MorphologyGraph()
        graph.create_node((0, 0, 0))

        assert not graph.has_node_within((1.0, 0, 0), 1.0)
        assert graph.has_node_within((0.99, 0, 0), 1.0)

    def test_move_node_respects_fixed_nodes(self):
        """Root and anchored nodes never move; free nodes update their index cell."""
        graph = self._line_graph(8, threshold=5)
        root = graph.create_node((0, 5, 0), is_root=True)

        assert graph.move_node(root, (0, 9, 0)) is False
        assert np.allclose(graph.position_of(root), (0, 5, 0))

        assert graph.move_node(0, (30.0, 0.0, 0.0)) is True
        assert 0 in graph.nodes_within((30.0, 0.0, 0.0), 0.5)
        assert 0 not in graph.nodes_within((0.0, 0.0, 0.0), 0.5)


class TestInvariants:
    """Tests for validate and serialization."""

    def test_valid_graph_has_no_violations(self):
        """A graph built through the public API passes validation."""
        graph = MorphologyGraph()
        ids = [graph.create_node((i * 2.0, 0, 0)) for i in range(4)]
        for a, b in zip(ids, ids[1:]):
            graph.create_edge(a, b)

        assert graph.check_invariants() == []
        graph.validate()

    def test_validate_reports_out_of_range_stress(self):
        """Direct corruption of a scalar is caught by validate."""
        graph = MorphologyGraph()
        node_id = graph.create_node((0, 0, 0))
        graph.nodes[node_id].stress = 1.5

        with pytest.raises(GraphInvariantError):
            graph.validate()

    def test_dict_roundtrip(self):
        """to_dict / from_dict preserves nodes, edges and strengths."""
        graph = MorphologyGraph()
        a = graph.create_node((0, 0, 0), is_root=True)
        b = graph.create_node((2, 0, 0))
        graph.create_edge(a, b, strength=0.8)

        restored = MorphologyGraph.from_dict(graph.to_dict())

        assert restored.node_count == 2
        assert restored.is_connected(a, b)
        assert restored.edge_between(a, b).strength == pytest.approx(0.8)
        assert restored.nodes[a].is_root

    def test_energy_decay_scales_with_degree(self):
        """update_node_attributes decays energy by dt * decay * degree, floored at 0."""
        graph = MorphologyGraph(GraphPolicy(energy_decay=0.5))
        a = graph.create_node((0, 0, 0), energy=1.0)
        b = graph.create_node((2, 0, 0), energy=0.1)
        lone = graph.create_node((9, 0, 0), energy=1.0)
        graph.create_edge(a, b)

        graph.update_node_attributes(1.0)

        assert graph.nodes[a].energy == pytest.approx(0.5)
        assert graph.nodes[b].energy == 0.0
        assert graph.nodes[lone].energy == pytest.approx(1.0)
