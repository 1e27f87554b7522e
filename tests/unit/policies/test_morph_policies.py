"""
Unit tests for morph_policies.

Tests parameter clipping, archetype coercion, alias handling and policy
validation.
"""

import json

import pytest

from morph_policies import (
    AdaptationPolicy,
    ArchetypePolicy,
    BiomorphType,
    GraphPolicy,
    GrowthPolicy,
    MorphologyParameters,
    OperationReport,
    SpaceColonizationPolicy,
    coerce_float,
    coerce_vec3,
)


class TestMorphologyParameters:
    """Tests for MorphologyParameters construction."""

    def test_scalars_clipped_into_unit_interval(self):
        """Out-of-range sliders are clipped, not rejected."""
        params = MorphologyParameters(density=2.0, complexity=-0.5, growth_rate=1.0)

        assert params.density == 1.0
        assert params.complexity == 0.0
        assert params.growth_rate == 1.0

    def test_non_numeric_scalar_uses_default(self):
        """Values that cannot be read as numbers fall back to 0.5."""
        params = MorphologyParameters(connectivity="lots")
        assert params.connectivity == 0.5

    def test_unknown_type_falls_back_to_mold(self):
        """Unknown archetype names resolve to MOLD."""
        assert MorphologyParameters(biomorph_type="kelp").biomorph_type == BiomorphType.MOLD
        assert BiomorphType.coerce(None) == BiomorphType.MOLD

    def test_type_name_case_insensitive(self):
        """Archetype names are matched case-insensitively."""
        assert BiomorphType.coerce(" Coral ") == BiomorphType.CORAL

    def test_from_dict_accepts_aliases(self):
        """camelCase and short aliases map onto field names."""
        params = MorphologyParameters.from_dict({
            "type": "bone",
            "growthRate": 0.9,
            "adaptationRate": 0.1,
            "unknown_key": 123,
        })

        assert params.biomorph_type == BiomorphType.BONE
        assert params.growth_rate == pytest.approx(0.9)
        assert params.adaptation_rate == pytest.approx(0.1)

    def test_to_dict_is_json_serializable(self):
        """to_dict stores the archetype as its string value."""
        params = MorphologyParameters(biomorph_type=BiomorphType.MYCELIUM)
        d = params.to_dict()

        assert d["biomorph_type"] == "mycelium"
        assert MorphologyParameters.from_dict(json.loads(json.dumps(d))) == params

    def test_with_changes_returns_new_instance(self):
        """Parameters are frozen; with_changes builds a modified copy."""
        params = MorphologyParameters()
        changed = params.with_changes(density=0.2, biomorph_type="coral")

        assert params.density == 0.5
        assert changed.density == pytest.approx(0.2)
        assert changed.biomorph_type == BiomorphType.CORAL
        with pytest.raises(Exception):
            params.density = 0.1


class TestPolicyValidation:
    """Tests for validate() on each policy."""

    def test_defaults_are_valid(self):
        """Every policy validates cleanly with default values."""
        for policy in (
            GraphPolicy(),
            ArchetypePolicy(),
            GrowthPolicy(),
            AdaptationPolicy(),
            SpaceColonizationPolicy(),
            MorphologyParameters(),
        ):
            assert policy.validate() == [], type(policy).__name__

    def test_archetype_distance_order(self):
        """max_node_distance below min_node_distance is reported."""
        errors = ArchetypePolicy(min_node_distance=3.0, max_node_distance=1.0).validate()
        assert any("max_node_distance" in e for e in errors)

    def test_graph_policy_rejects_zero_capacity(self):
        """max_nodes must be positive."""
        errors = GraphPolicy(max_nodes=0).validate()
        assert any("max_nodes" in e for e in errors)

    def test_kill_radius_must_be_below_attraction_radius(self):
        """Space colonization radii must be ordered."""
        errors = SpaceColonizationPolicy(attraction_radius=1.0, kill_radius=2.0).validate()
        assert errors

    def test_from_dict_ignores_unknown_keys(self):
        """from_dict drops keys the policy does not define."""
        policy = GrowthPolicy.from_dict({"max_iterations": 5, "colour": "green"})
        assert policy.max_iterations == 5

    def test_policy_dict_roundtrip(self):
        """to_dict / from_dict round trip preserves values."""
        policy = ArchetypePolicy(stress_threshold=0.6, custom_weights={"mold": 1.0})
        assert ArchetypePolicy.from_dict(policy.to_dict()) == policy


class TestCoercion:
    """Tests for the coercion helpers."""

    def test_coerce_float_rejects_nan(self):
        """NaN is treated as a failed coercion."""
        assert coerce_float(float("nan"), 2.0) == 2.0
        assert coerce_float("1.5") == 1.5

    def test_coerce_vec3_accepts_several_shapes(self):
        """Sequences, dicts and point-like objects all coerce."""
        class P:
            x, y, z = 1, 2, 3

        assert coerce_vec3([1, 2, 3]) == (1.0, 2.0, 3.0)
        assert coerce_vec3({"x": 1, "y": 2, "z": 3}) == (1.0, 2.0, 3.0)
        assert coerce_vec3(P()) == (1.0, 2.0, 3.0)
        assert coerce_vec3("ab") == (0.0, 0.0, 0.0)
        assert coerce_vec3(None, default=(1.0, 0.0, 0.0)) == (1.0, 0.0, 0.0)


class TestOperationReport:
    """Tests for OperationReport bookkeeping."""

    def test_error_marks_failure(self):
        """add_error flips success; warnings do not."""
        report = OperationReport(operation="test")
        report.add_warning("careful")
        assert report.success

        report.add_error("broken")
        assert not report.success
        assert json.loads(report.to_json())["errors"] == ["broken"]

    def test_merge_propagates_failure(self):
        """Merging a failed report fails the target report."""
        report = OperationReport(operation="outer")
        inner = OperationReport(operation="inner")
        inner.add_error("bad")

        report.merge(inner)
        assert not report.success
        assert report.errors == ["bad"]
