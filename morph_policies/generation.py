"""
Generation policies for morphology growth and adaptation.

All numeric constants used by the graph, the archetype behaviours, the
growth orchestrator and the adaptation engine live here. Nothing in
``morphogen`` hard-codes a tuning value that is not reachable from one of
these policies.

UNIT CONVENTIONS
----------------
Distances are in world units of the host's bounding volume. The defaults
assume a volume on the order of tens of units per side.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class GraphPolicy:
    """
    Policy for the morphology graph data model.

    JSON Schema:
    {
        "max_nodes": int,
        "min_strength": float in [0, 1],
        "initial_strength": float in [min_strength, 1],
        "default_energy": float >= 0,
        "root_energy": float >= 0,
        "energy_decay": float >= 0,
        "growth_potential_falloff": float >= 0,
        "spatial_index_threshold": int,
        "index_cell_size": float > 0 | null
    }
    """
    max_nodes: int = 2000
    min_strength: float = 0.1
    initial_strength: float = 0.5
    default_energy: float = 1.0
    root_energy: float = 5.0
    energy_decay: float = 0.01  # per unit time per incident edge
    growth_potential_falloff: float = 0.1  # per incident edge
    spatial_index_threshold: int = 300
    index_cell_size: Optional[float] = None  # None follows the max connection distance

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GraphPolicy":
        """Create from dictionary."""
        return GraphPolicy(**{k: v for k, v in d.items() if k in GraphPolicy.__dataclass_fields__})

    def validate(self) -> List[str]:
        errors = []
        if self.max_nodes < 1:
            errors.append(f"max_nodes must be >= 1, got {self.max_nodes}")
        if not 0.0 <= self.min_strength <= 1.0:
            errors.append(f"min_strength must be in [0, 1], got {self.min_strength}")
        if not self.min_strength <= self.initial_strength <= 1.0:
            errors.append(
                f"initial_strength must be in [min_strength, 1], got {self.initial_strength}"
            )
        if self.default_energy < 0 or self.root_energy < 0:
            errors.append("default_energy and root_energy must be >= 0")
        if self.energy_decay < 0:
            errors.append(f"energy_decay must be >= 0, got {self.energy_decay}")
        if self.spatial_index_threshold < 0:
            errors.append(
                f"spatial_index_threshold must be >= 0, got {self.spatial_index_threshold}"
            )
        if self.index_cell_size is not None and self.index_cell_size <= 0:
            errors.append(f"index_cell_size must be > 0, got {self.index_cell_size}")
        return errors


def _default_custom_weights() -> Dict[str, float]:
    return {"mold": 0.4, "bone": 0.3, "coral": 0.2, "mycelium": 0.1}


@dataclass
class ArchetypePolicy:
    """
    Policy shared by the archetype growth algorithms.

    Thresholds compare against node stress in [0, 1]. Distances bound the
    length of newly grown edges and the minimum spacing between nodes.

    JSON Schema:
    {
        "stress_threshold": float in [0, 1],
        "growth_threshold": float in [0, 1],
        "min_node_distance": float > 0,
        "max_node_distance": float >= min_node_distance,
        "direction_jitter": float >= 0,
        "force_deflection_threshold": float >= 0,
        "up_axis": 0 | 1 | 2,
        "plate_probability": float in [0, 1],
        "mycelium_spacing_factor": float > 0,
        "side_branch_factor": float in [0, 1],
        "anastomosis_min_nodes": int,
        "max_anastomoses": int,
        "anastomosis_attempts": int,
        "growth_energy_cost": float >= 0,
        "prune_weak_edges": bool,
        "custom_weights": {"mold": float, "bone": float, "coral": float, "mycelium": float}
    }
    """
    stress_threshold: float = 0.7
    growth_threshold: float = 0.3
    min_node_distance: float = 1.0
    max_node_distance: float = 5.0

    direction_jitter: float = 0.3
    force_deflection_threshold: float = 0.1
    up_axis: int = 1

    # Coral
    plate_probability: float = 0.3
    plate_min_nodes: int = 2
    plate_max_nodes: int = 4
    plate_radius_factor: float = 0.7  # of max_node_distance

    # Mycelium
    mycelium_spacing_factor: float = 0.8
    side_branch_factor: float = 0.4  # times complexity
    anastomosis_min_nodes: int = 10
    max_anastomoses: int = 3
    anastomosis_attempts: int = 10
    anastomosis_distance_factor: float = 3.0

    growth_energy_cost: float = 0.05
    prune_weak_edges: bool = False

    custom_weights: Dict[str, float] = field(default_factory=_default_custom_weights)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ArchetypePolicy":
        """Create from dictionary."""
        return ArchetypePolicy(**{
            k: v for k, v in d.items() if k in ArchetypePolicy.__dataclass_fields__
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

        for name in ("stress_threshold", "growth_threshold", "plate_probability", "side_branch_factor"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name} must be in [0, 1], got {value}")

        if self.min_node_distance <= 0:
            errors.append(f"min_node_distance must be > 0, got {self.min_node_distance}")

        if self.max_node_distance < self.min_node_distance:
            errors.append(
                f"max_node_distance ({self.max_node_distance}) "
                f"must be >= min_node_distance ({self.min_node_distance})"
            )

        if self.up_axis not in (0, 1, 2):
            errors.append(f"up_axis must be 0, 1 or 2, got {self.up_axis}")

        if self.plate_min_nodes < 1 or self.plate_max_nodes < self.plate_min_nodes:
            errors.append(
                f"plate node range invalid: [{self.plate_min_nodes}, {self.plate_max_nodes}]"
            )

        if self.mycelium_spacing_factor <= 0:
            errors.append(
                f"mycelium_spacing_factor must be > 0, got {self.mycelium_spacing_factor}"
            )

        if self.growth_energy_cost < 0:
            errors.append(f"growth_energy_cost must be >= 0, got {self.growth_energy_cost}")

        weights = self.custom_weights or {}
        if any(w < 0 for w in weights.values()):
            errors.append("custom_weights must be non-negative")
        elif sum(weights.values()) <= 0:
            errors.append("custom_weights must not all be zero")

        return errors


@dataclass
class GrowthPolicy:
    """
    Policy for the growth orchestrator.

    JSON Schema:
    {
        "max_nodes_per_growth_cycle": int,
        "steps_per_tick_scale": float,
        "density_scale": int,
        "min_target_nodes": int,
        "max_target_nodes": int,
        "max_iterations": int,
        "max_duration": float (seconds),
        "influence_cell_size": float,
        "reinforcement_dt": float,
        "settle_probability": float in [0, 1],
        "settle_distance": float,
        "initial_seed_count": int,
        "global_connection_grid_threshold": int
    }
    """
    max_nodes_per_growth_cycle: int = 10
    steps_per_tick_scale: float = 10.0  # steps = max(1, round(growth_rate * scale))

    density_scale: int = 1000
    min_target_nodes: int = 50
    max_target_nodes: int = 2000

    max_iterations: int = 10000
    max_duration: float = 60.0

    influence_cell_size: float = 1.0
    reinforcement_dt: float = 0.1

    # Gravity settling for Bone and Coral
    settle_probability: float = 0.05
    settle_distance: float = 0.1

    # One-call generator
    initial_seed_count: int = 10
    global_connection_grid_threshold: int = 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GrowthPolicy":
        """Create from dictionary."""
        return GrowthPolicy(**{k: v for k, v in d.items() if k in GrowthPolicy.__dataclass_fields__})

    def validate(self) -> List[str]:
        errors = []
        if self.max_nodes_per_growth_cycle < 1:
            errors.append(
                f"max_nodes_per_growth_cycle must be >= 1, got {self.max_nodes_per_growth_cycle}"
            )
        if self.min_target_nodes < 1 or self.max_target_nodes < self.min_target_nodes:
            errors.append(
                f"target range invalid: [{self.min_target_nodes}, {self.max_target_nodes}]"
            )
        if self.max_iterations < 1:
            errors.append(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.max_duration <= 0:
            errors.append(f"max_duration must be > 0, got {self.max_duration}")
        if self.influence_cell_size <= 0:
            errors.append(f"influence_cell_size must be > 0, got {self.influence_cell_size}")
        if not 0.0 <= self.settle_probability <= 1.0:
            errors.append(f"settle_probability must be in [0, 1], got {self.settle_probability}")
        if self.initial_seed_count < 1:
            errors.append(f"initial_seed_count must be >= 1, got {self.initial_seed_count}")
        return errors


@dataclass
class AdaptationPolicy:
    """
    Policy for the adaptation engine.

    Stress is computed as ``min(1, |f| / (1 + degree * degree_damping))``
    and smoothed toward that value by ``stress_smoothing`` per force update.

    JSON Schema:
    {
        "rate_scale": float >= 0,
        "max_nodes_per_adaptation": int,
        "stress_smoothing": float in [0, 1],
        "degree_damping": float >= 0
    }
    """
    rate_scale: float = 1.0
    max_nodes_per_adaptation: int = 10
    stress_smoothing: float = 0.2
    degree_damping: float = 0.2

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "AdaptationPolicy":
        """Create from dictionary."""
        return AdaptationPolicy(**{
            k: v for k, v in d.items() if k in AdaptationPolicy.__dataclass_fields__
        })

    def validate(self) -> List[str]:
        errors = []
        if self.rate_scale < 0:
            errors.append(f"rate_scale must be >= 0, got {self.rate_scale}")
        if self.max_nodes_per_adaptation < 0:
            errors.append(
                f"max_nodes_per_adaptation must be >= 0, got {self.max_nodes_per_adaptation}"
            )
        if not 0.0 <= self.stress_smoothing <= 1.0:
            errors.append(f"stress_smoothing must be in [0, 1], got {self.stress_smoothing}")
        if self.degree_damping < 0:
            errors.append(f"degree_damping must be >= 0, got {self.degree_damping}")
        return errors


__all__ = [
    "GraphPolicy",
    "ArchetypePolicy",
    "GrowthPolicy",
    "AdaptationPolicy",
]
