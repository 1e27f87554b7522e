"""
Growth and adaptation drivers.

- GrowthOrchestrator: tick-driven growth toward a target size
- AdaptationEngine: force-to-stress conversion and structural response
- MorphologySimulation: owns graph, RNG, orchestrator and adaptation
- generate_morphology: one-call seeded generation with a global
  connection pass
"""

from .orchestrator import GrowthOrchestrator, GrowthState, StepOutcome
from .adaptation import AdaptationEngine
from .simulation import MorphologySimulation
from .generator import generate_morphology

__all__ = [
    "GrowthOrchestrator",
    "GrowthState",
    "StepOutcome",
    "AdaptationEngine",
    "MorphologySimulation",
    "generate_morphology",
]
