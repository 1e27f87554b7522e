"""
Space Colonization Policy.

Controls the attraction-point driven growth strategy: how attraction
points are injected into the bounds, which nodes they pull on and when
they are consumed.

Behavior is reproducible when the simulation seed is fixed.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List


@dataclass
class SpaceColonizationPolicy:
    """
    Policy for attraction-point (space colonization) growth.

    A live attraction point influences every node within
    ``attraction_radius`` and is killed as soon as any node comes within
    ``kill_radius``. Each growth call first tops the field up with
    ``attractors_per_step`` new points until ``max_attractors`` is reached.

    JSON Schema:
    {
        "attraction_radius": float,
        "kill_radius": float (< attraction_radius),
        "branch_length": float,
        "branch_length_variation": float in [0, 1),
        "max_attractors": int,
        "attractors_per_step": int,
        "environmental_strength": float >= 0,
        "max_degree": int,
        "energy_cost": float >= 0,
        "min_node_spacing": float >= 0,
        "exhausted_nodes_kill": bool
    }
    """
    attraction_radius: float = 10.0
    kill_radius: float = 2.0
    branch_length: float = 1.5
    branch_length_variation: float = 0.5
    max_attractors: int = 500
    attractors_per_step: int = 10
    environmental_strength: float = 1.0

    max_degree: int = 5  # nodes at this degree stop branching
    energy_cost: float = 0.2
    min_node_spacing: float = 0.5

    # Nodes with no energy left still consume nearby attraction points.
    exhausted_nodes_kill: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SpaceColonizationPolicy":
        """Create from dictionary."""
        return SpaceColonizationPolicy(**{
            k: v for k, v in d.items()
            if k in SpaceColonizationPolicy.__dataclass_fields__
        })

    def validate(self) -> List[str]:
        """
        Validate policy parameters.

        Returns
        -------
        List[str]
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.attraction_radius <= 0:
            errors.append(f"attraction_radius must be > 0, got {self.attraction_radius}")

        if not 0 < self.kill_radius < self.attraction_radius:
            errors.append(
                f"kill_radius ({self.kill_radius}) must be in (0, attraction_radius "
                f"({self.attraction_radius}))"
            )

        if self.branch_length <= 0:
            errors.append(f"branch_length must be > 0, got {self.branch_length}")

        if not 0.0 <= self.branch_length_variation < 1.0:
            errors.append(
                f"branch_length_variation must be in [0, 1), got {self.branch_length_variation}"
            )

        if self.max_attractors < 0 or self.attractors_per_step < 0:
            errors.append("max_attractors and attractors_per_step must be >= 0")

        if self.environmental_strength < 0:
            errors.append(
                f"environmental_strength must be >= 0, got {self.environmental_strength}"
            )

        if self.max_degree < 1:
            errors.append(f"max_degree must be >= 1, got {self.max_degree}")

        if self.energy_cost < 0:
            errors.append(f"energy_cost must be >= 0, got {self.energy_cost}")

        return errors


__all__ = ["SpaceColonizationPolicy"]
