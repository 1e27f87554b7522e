"""
Morphology parameters.

``MorphologyParameters`` is the user-facing knob set that selects a growth
archetype and scales its behaviour. Every scalar lives in [0, 1]; values
outside that range are clipped on construction rather than rejected, so a
host can pass slider values straight through.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Union
import logging

from .base import alias_fields, coerce_unit

logger = logging.getLogger(__name__)


class BiomorphType(str, Enum):
    """Biological archetype that drives growth and adaptation."""

    MOLD = "mold"
    BONE = "bone"
    CORAL = "coral"
    MYCELIUM = "mycelium"
    CUSTOM = "custom"

    @classmethod
    def coerce(cls, value: Union["BiomorphType", str, None]) -> "BiomorphType":
        """
        Resolve a type from an enum member or a case-insensitive name.

        Unknown or missing values resolve to MOLD.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        logger.debug(f"Unknown biomorph type {value!r}, falling back to mold")
        return cls.MOLD


_UNIT_FIELDS = ("density", "complexity", "connectivity", "growth_rate", "adaptation_rate")

_ALIASES = {
    "biotype": "biomorph_type",
    "type": "biomorph_type",
    "growthRate": "growth_rate",
    "adaptationRate": "adaptation_rate",
}


@dataclass(frozen=True)
class MorphologyParameters:
    """
    Archetype selection plus five unit-interval scalars.

    JSON Schema:
    {
        "biomorph_type": "mold" | "bone" | "coral" | "mycelium" | "custom",
        "density": float in [0, 1],
        "complexity": float in [0, 1],
        "connectivity": float in [0, 1],
        "growth_rate": float in [0, 1],
        "adaptation_rate": float in [0, 1]
    }
    """
    biomorph_type: BiomorphType = BiomorphType.MOLD
    density: float = 0.5
    complexity: float = 0.5
    connectivity: float = 0.5
    growth_rate: float = 0.5
    adaptation_rate: float = 0.5

    def __post_init__(self):
        object.__setattr__(self, "biomorph_type", BiomorphType.coerce(self.biomorph_type))
        for name in _UNIT_FIELDS:
            object.__setattr__(self, name, coerce_unit(getattr(self, name), 0.5))

    def with_changes(self, **changes: Any) -> "MorphologyParameters":
        """Return a copy with the given fields replaced."""
        values = self.to_dict()
        values.update(changes)
        return MorphologyParameters.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["biomorph_type"] = self.biomorph_type.value
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MorphologyParameters":
        """Create from dictionary, accepting camelCase aliases."""
        d = alias_fields(d, _ALIASES)
        return MorphologyParameters(**{
            k: v for k, v in d.items()
            if k in MorphologyParameters.__dataclass_fields__
        })

    def validate(self) -> List[str]:
        # Construction already clips, so only the type can be off.
        errors = []
        if not isinstance(self.biomorph_type, BiomorphType):
            errors.append(f"biomorph_type must be a BiomorphType, got {self.biomorph_type!r}")
        return errors


__all__ = ["BiomorphType", "MorphologyParameters"]
