"""
Unit tests for the spatial structures.

Tests the influence field gradient, the attraction-point kill and
influence rules and the node grid index.
"""

import pytest
import numpy as np

from morph_policies import SpaceColonizationPolicy
from morphogen.core import Bounds
from morphogen.spatial import AttractionField, InfluenceField, NodeGridIndex


@pytest.fixture
def bounds():
    return Bounds.from_center_size((0, 0, 0), (20, 20, 20))


class TestInfluenceField:
    """Tests for InfluenceField accumulation and gradient."""

    def test_gradient_points_toward_denser_neighbor(self, bounds):
        """Influence in the +x neighbor cell gives a +x unit gradient."""
        field = InfluenceField(bounds, cell_size=1.0)
        for _ in range(3):
            field.add_influence_point((1.5, 0.5, 0.5))

        gradient = field.gradient_at((0.5, 0.5, 0.5))
        assert np.allclose(gradient, [1.0, 0.0, 0.0])

    def test_isolated_peak_has_zero_gradient(self, bounds):
        """Symmetric surroundings cancel out to the zero vector."""
        field = InfluenceField(bounds, cell_size=1.0)
        field.add_influence_point((0.5, 0.5, 0.5), 4.0)

        assert not field.gradient_at((0.5, 0.5, 0.5)).any()

    def test_empty_field_has_zero_gradient(self, bounds):
        """No influence anywhere gives the zero vector."""
        field = InfluenceField(bounds)
        assert not field.gradient_at((3.0, 3.0, 3.0)).any()

    def test_influence_accumulates_per_cell(self, bounds):
        """Points in the same cell add up."""
        field = InfluenceField(bounds, cell_size=2.0)
        field.add_influence_point((0.1, 0.1, 0.1))
        field.add_influence_point((0.9, 1.9, 0.3), 2.5)

        assert field.influence_at((1.0, 1.0, 1.0)) == pytest.approx(3.5)
        assert len(field) == 1

    def test_rebuild_replaces_contents(self, bounds):
        """rebuild resets the field and re-deposits the given positions."""
        field = InfluenceField(bounds)
        field.add_influence_point((5.5, 5.5, 5.5), 10.0)

        field.rebuild(bounds, [np.array([0.5, 0.5, 0.5]), np.array([0.5, 0.5, 0.5])])

        assert field.influence_at((5.5, 5.5, 5.5)) == 0.0
        assert field.influence_at((0.5, 0.5, 0.5)) == pytest.approx(2.0)

    def test_invalid_cell_size(self, bounds):
        """Non-positive cell sizes are rejected."""
        with pytest.raises(ValueError):
            InfluenceField(bounds, cell_size=0.0)


class TestAttractionField:
    """Tests for attraction point kill and influence rules."""

    def _field(self, bounds, points):
        field = AttractionField(bounds, SpaceColonizationPolicy(attraction_radius=10.0, kill_radius=2.0))
        field.points = np.array(points, dtype=float)
        return field

    def test_points_inside_kill_radius_die(self, bounds):
        """A point closer than the kill radius to a node is removed."""
        field = self._field(bounds, [[0, 0, 0.5], [0, 0, 5.0], [0, 0, 50.0]])

        killed = field.update(np.array([0]), np.array([[0.0, 0.0, 0.0]]))

        assert killed == 1
        assert len(field) == 2

    def test_live_points_influence_nodes_in_range(self, bounds):
        """Only points within the attraction radius pull on a node."""
        field = self._field(bounds, [[0, 0, 5.0], [0, 0, 50.0]])

        field.update(np.array([7]), np.array([[0.0, 0.0, 0.0]]))

        assert field.influence_count(7) == 1
        direction, count = field.growth_direction(7, np.zeros(3))
        assert count == 1
        assert np.allclose(direction, [0.0, 0.0, 1.0])

    def test_masked_nodes_do_not_kill(self, bounds):
        """Nodes excluded by can_kill leave nearby points alive."""
        field = self._field(bounds, [[0, 0, 0.5]])

        killed = field.update(
            np.array([0]), np.array([[0.0, 0.0, 0.0]]), can_kill=np.array([False])
        )

        assert killed == 0
        assert len(field) == 1

    def test_inject_respects_limits(self, bounds):
        """Injection adds attractors_per_step points up to max_attractors."""
        policy = SpaceColonizationPolicy(max_attractors=15, attractors_per_step=10)
        field = AttractionField(bounds, policy)
        rng = np.random.default_rng(0)

        assert field.inject(rng) == 10
        assert field.inject(rng) == 5
        assert field.inject(rng) == 0
        assert len(field) == 15
        assert all(bounds.contains(p) for p in field.points)

    def test_no_nodes_means_no_influence(self, bounds):
        """Updating with an empty node set kills nothing."""
        field = self._field(bounds, [[1, 1, 1]])
        assert field.update(np.array([], dtype=int), np.empty((0, 3))) == 0
        assert field.influence_count(0) == 0


class TestNodeGridIndex:
    """Tests for NodeGridIndex bookkeeping."""

    def test_query_returns_superset_of_neighbors(self):
        """Candidates include every node within the radius."""
        index = NodeGridIndex(cell_size=2.0)
        index.insert(1, np.array([0.0, 0.0, 0.0]))
        index.insert(2, np.array([1.5, 0.0, 0.0]))
        index.insert(3, np.array([9.0, 0.0, 0.0]))

        candidates = index.query_radius(np.array([0.5, 0.0, 0.0]), 1.5)
        assert {1, 2} <= candidates
        assert 3 not in candidates

    def test_move_and_remove(self):
        """Moved nodes are found at their new cell; removed nodes vanish."""
        index = NodeGridIndex(cell_size=1.0)
        index.insert(1, np.array([0.5, 0.5, 0.5]))
        index.move(1, np.array([10.5, 0.5, 0.5]))

        assert 1 in index.query_radius(np.array([10.5, 0.5, 0.5]), 0.2)
        assert 1 not in index.query_radius(np.array([0.5, 0.5, 0.5]), 0.2)

        index.remove(1)
        assert 1 not in index
        assert len(index) == 0
