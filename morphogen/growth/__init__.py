"""
Growth algorithms for biomorphic morphologies.

Archetype registry:
- mold, bone, coral, mycelium: single-archetype strategies
- custom: weighted composition of the four archetypes
- space_colonization: auxiliary attraction-point strategy, selectable by
  name only

Selection by ``BiomorphType`` is a pure function; anything unknown or
unset resolves to Mold.
"""

from typing import Any, Dict, List, Type

from morph_policies import BiomorphType

from .base import GrowthAlgorithm, GrowthContext, GrowthResult, frontier_sources, is_growth_eligible
from .mold import MoldGrowth
from .bone import BoneGrowth
from .coral import CoralGrowth
from .mycelium import MyceliumGrowth
from .custom import CustomGrowth
from .space_colonization import SpaceColonizationGrowth


_ALGORITHM_REGISTRY: Dict[BiomorphType, Type[GrowthAlgorithm]] = {
    BiomorphType.MOLD: MoldGrowth,
    BiomorphType.BONE: BoneGrowth,
    BiomorphType.CORAL: CoralGrowth,
    BiomorphType.MYCELIUM: MyceliumGrowth,
    BiomorphType.CUSTOM: CustomGrowth,
}

_AUXILIARY_REGISTRY: Dict[str, Type[GrowthAlgorithm]] = {
    "space_colonization": SpaceColonizationGrowth,
}


def get_available_algorithms() -> List[str]:
    """Names accepted by ``get_algorithm``."""
    return [t.value for t in _ALGORITHM_REGISTRY] + list(_AUXILIARY_REGISTRY)


def select_algorithm(biomorph_type: Any = None) -> GrowthAlgorithm:
    """
    Create the growth algorithm for an archetype.

    Parameters
    ----------
    biomorph_type : BiomorphType or str, optional
        Archetype; unknown or missing values give Mold

    Returns
    -------
    GrowthAlgorithm
        Fresh algorithm instance
    """
    key = BiomorphType.coerce(biomorph_type)
    return _ALGORITHM_REGISTRY[key]()


def get_algorithm(name: str, **kwargs) -> GrowthAlgorithm:
    """
    Create an algorithm by registry name, including auxiliary strategies.

    Unknown names fall back to Mold like ``select_algorithm``.
    """
    if isinstance(name, str) and name.strip().lower() in _AUXILIARY_REGISTRY:
        return _AUXILIARY_REGISTRY[name.strip().lower()](**kwargs)
    return select_algorithm(name)


__all__ = [
    "GrowthAlgorithm",
    "GrowthContext",
    "GrowthResult",
    "is_growth_eligible",
    "frontier_sources",
    "MoldGrowth",
    "BoneGrowth",
    "CoralGrowth",
    "MyceliumGrowth",
    "CustomGrowth",
    "SpaceColonizationGrowth",
    "select_algorithm",
    "get_algorithm",
    "get_available_algorithms",
]
