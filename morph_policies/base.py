"""
Base utilities for morphology policies.

Shared coercion helpers and the OperationReport dataclass returned by
one-call operations such as ``generate_morphology``.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Tuple
import json


def validate_policy(policy: Any, required_fields: Optional[List[str]] = None) -> List[str]:
    """
    Validate a policy object.

    Runs the policy's own ``validate()`` when it has one and checks that
    every field in ``required_fields`` is present and not None.

    Parameters
    ----------
    policy : Any
        Policy dataclass instance to validate
    required_fields : List[str], optional
        Field names that must be non-None

    Returns
    -------
    List[str]
        Validation error messages (empty if valid)
    """
    errors = []

    if required_fields:
        for field_name in required_fields:
            if not hasattr(policy, field_name):
                errors.append(f"Missing required field: {field_name}")
            elif getattr(policy, field_name) is None:
                errors.append(f"Required field is None: {field_name}")

    validate = getattr(policy, "validate", None)
    if callable(validate):
        errors.extend(validate())

    return errors


def coerce_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce a value to float, falling back to ``default``.

    NaN is treated as a failed coercion.
    """
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if result != result:
        return default
    return result


def coerce_unit(value: Any, default: float = 0.5) -> float:
    """Coerce a value to float and clip it into [0, 1]."""
    return min(1.0, max(0.0, coerce_float(value, default)))


def coerce_vec3(
    value: Any,
    default: Tuple[float, float, float] = (0.0, 0.0, 0.0)
) -> Tuple[float, float, float]:
    """
    Coerce a value to a 3D vector tuple.

    Accepts:
    - tuple/list/array of 3 numbers
    - Point3D-like object with x, y, z attributes
    - dict with x, y, z keys

    Parameters
    ----------
    value : Any
        Value to coerce
    default : tuple
        Returned if coercion fails

    Returns
    -------
    Tuple[float, float, float]
        Coerced 3D vector
    """
    if value is None:
        return default

    if hasattr(value, "x") and hasattr(value, "y") and hasattr(value, "z"):
        try:
            return (float(value.x), float(value.y), float(value.z))
        except (TypeError, ValueError):
            return default

    if isinstance(value, dict):
        if "x" in value and "y" in value and "z" in value:
            try:
                return (float(value["x"]), float(value["y"]), float(value["z"]))
            except (TypeError, ValueError):
                return default
        return default

    try:
        if len(value) >= 3:
            return (float(value[0]), float(value[1]), float(value[2]))
    except (TypeError, ValueError):
        return default

    return default


def alias_fields(d: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    """
    Map alternative field names onto canonical ones.

    Canonical names already present in ``d`` win over their aliases.
    """
    result = d.copy()
    for alias, canonical_name in aliases.items():
        if alias in result and canonical_name not in result:
            result[canonical_name] = result.pop(alias)
    return result


@dataclass
class OperationReport:
    """
    Report returned by policy-driven operations.

    Records the policy the caller asked for next to the policy that was
    actually applied (after clamping and defaulting), plus warnings,
    errors and operation metrics.
    """
    operation: str = "unknown"
    success: bool = True
    requested_policy: Dict[str, Any] = field(default_factory=dict)
    effective_policy: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def add_error(self, message: str) -> None:
        """Add an error message and mark as failed."""
        self.errors.append(message)
        self.success = False

    def merge(self, other: "OperationReport") -> None:
        """Merge another report into this one."""
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)
        if not other.success:
            self.success = False
        self.metrics.update(other.metrics)


__all__ = [
    "OperationReport",
    "validate_policy",
    "coerce_float",
    "coerce_unit",
    "coerce_vec3",
    "alias_fields",
]
