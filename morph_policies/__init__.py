"""
Morph Policies - configuration dataclasses for biomorphic growth.

All policies are JSON-serializable (``to_dict`` / ``from_dict``) and expose
``validate()`` returning a list of error messages.

Usage:
    from morph_policies import MorphologyParameters, BiomorphType
    from morph_policies import GrowthPolicy, ArchetypePolicy
"""

from .base import (
    OperationReport,
    validate_policy,
    coerce_float,
    coerce_unit,
    coerce_vec3,
    alias_fields,
)

from .morphology import (
    BiomorphType,
    MorphologyParameters,
)

from .generation import (
    GraphPolicy,
    ArchetypePolicy,
    GrowthPolicy,
    AdaptationPolicy,
)

from .space_colonization import SpaceColonizationPolicy

__all__ = [
    "OperationReport",
    "validate_policy",
    "coerce_float",
    "coerce_unit",
    "coerce_vec3",
    "alias_fields",
    "BiomorphType",
    "MorphologyParameters",
    "GraphPolicy",
    "ArchetypePolicy",
    "GrowthPolicy",
    "AdaptationPolicy",
    "SpaceColonizationPolicy",
]
