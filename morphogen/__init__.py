"""
Morphogen - biomorphic growth and adaptation engine.

Grows a graph of 3D nodes and weighted edges from seed points following
a biological archetype (mold, bone, coral, mycelium or a weighted blend)
and keeps adapting edge strengths and topology to externally supplied
per-node forces.

Main Entry Points:
    - MorphologySimulation: growth + adaptation driven by ``step(dt, forces)``
    - GrowthOrchestrator: tick-driven growth toward a target size
    - AdaptationEngine: force-driven structural response
    - generate_morphology(): one-call seeded generation

Example:
    >>> from morph_policies import MorphologyParameters, BiomorphType
    >>> from morphogen import Bounds, MorphologySimulation
    >>>
    >>> sim = MorphologySimulation(
    ...     parameters=MorphologyParameters(biomorph_type=BiomorphType.CORAL, density=0.1),
    ...     bounds=Bounds.from_center_size((0, 0, 0), (40, 40, 40)),
    ...     seed=42,
    ... )
    >>> sim.start()
    >>> outcome = sim.step(0.016, forces={0: (0.0, -1.0, 0.0)})
"""

from .core import (
    Point3D,
    Bounds,
    MorphNode,
    MorphEdge,
    MorphologyGraph,
    GraphInvariantError,
)
from .growth import (
    GrowthAlgorithm,
    GrowthContext,
    GrowthResult,
    select_algorithm,
    get_algorithm,
    get_available_algorithms,
)
from .engine import (
    GrowthOrchestrator,
    GrowthState,
    StepOutcome,
    AdaptationEngine,
    MorphologySimulation,
    generate_morphology,
)
from .io import MorphologySnapshot, NodeRecord, EdgeRecord, export_snapshot, import_snapshot
from .analysis import MorphologyMetrics, compute_morphology_metrics

__version__ = "0.1.0"

__all__ = [
    # Data model
    "Point3D",
    "Bounds",
    "MorphNode",
    "MorphEdge",
    "MorphologyGraph",
    "GraphInvariantError",
    # Growth
    "GrowthAlgorithm",
    "GrowthContext",
    "GrowthResult",
    "select_algorithm",
    "get_algorithm",
    "get_available_algorithms",
    # Engine
    "GrowthOrchestrator",
    "GrowthState",
    "StepOutcome",
    "AdaptationEngine",
    "MorphologySimulation",
    "generate_morphology",
    # Snapshot / metrics
    "MorphologySnapshot",
    "NodeRecord",
    "EdgeRecord",
    "export_snapshot",
    "import_snapshot",
    "MorphologyMetrics",
    "compute_morphology_metrics",
]
