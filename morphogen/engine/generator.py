"""
One-call morphology generation.

Scatters root seeds through the bounds, grows to a density-derived
target, then runs a global connection pass that links nearby nodes the
local growth rules left apart.
"""

from typing import Optional, Tuple
import logging

from morph_policies import (
    ArchetypePolicy,
    GraphPolicy,
    GrowthPolicy,
    MorphologyParameters,
    OperationReport,
    validate_policy,
)

from ..analysis.metrics import compute_morphology_metrics
from ..core.bounds import Bounds
from ..ops.structure import global_connection_pass
from .orchestrator import StepOutcome
from .simulation import MorphologySimulation

logger = logging.getLogger(__name__)


def generate_morphology(
    bounds: Bounds,
    parameters: Optional[MorphologyParameters] = None,
    growth_policy: Optional[GrowthPolicy] = None,
    graph_policy: Optional[GraphPolicy] = None,
    archetype_policy: Optional[ArchetypePolicy] = None,
    seed: Optional[int] = None,
    max_ticks: Optional[int] = None,
    progress: bool = False,
) -> Tuple[MorphologySimulation, OperationReport]:
    """
    Generate a complete morphology inside ``bounds``.

    Parameters
    ----------
    bounds : Bounds
        Growth volume
    parameters : MorphologyParameters, optional
        Archetype and scalar knobs
    growth_policy : GrowthPolicy, optional
        Seed count, budgets and connection-pass grid threshold
    graph_policy : GraphPolicy, optional
        ``max_nodes`` drives the target size
    archetype_policy : ArchetypePolicy, optional
        Connection distances and archetype thresholds
    seed : int, optional
        Seed for the shared random generator
    max_ticks : int, optional
        Hard cap on growth ticks
    progress : bool
        Show a tqdm progress bar while growing

    Returns
    -------
    simulation : MorphologySimulation
        The simulation holding the grown graph
    report : OperationReport
        Requested and effective settings, warnings and metrics, including
        the snapshot under ``metrics["snapshot"]``
    """
    parameters = parameters or MorphologyParameters()
    growth_policy = growth_policy or GrowthPolicy()
    graph_policy = graph_policy or GraphPolicy()
    archetype_policy = archetype_policy or ArchetypePolicy()

    report = OperationReport(
        operation="generate_morphology",
        requested_policy={
            "parameters": parameters.to_dict(),
            "growth_policy": growth_policy.to_dict(),
            "graph_policy": graph_policy.to_dict(),
            "archetype_policy": archetype_policy.to_dict(),
            "seed": seed,
        },
    )
    for policy in (parameters, growth_policy, graph_policy, archetype_policy):
        for message in validate_policy(policy):
            report.add_error(message)
    if not report.success:
        raise ValueError(f"Invalid generation settings: {'; '.join(report.errors)}")

    sim = MorphologySimulation(
        parameters=parameters,
        bounds=bounds,
        graph_policy=graph_policy,
        growth_policy=growth_policy,
        archetype_policy=archetype_policy,
        seed=seed,
    )

    max_nodes = graph_policy.max_nodes
    seed_count = min(growth_policy.initial_seed_count, max_nodes)
    for point in bounds.sample_points(seed_count, sim.rng):
        sim.seed_root(point)

    target = int(round(max_nodes * parameters.density))
    target = min(max_nodes, max(seed_count, target))
    sim.initialize(target_node_count=target)

    report.effective_policy = {
        "biomorph_type": parameters.biomorph_type.value,
        "algorithm": sim.orchestrator.algorithm.name,
        "seed_count": seed_count,
        "target_node_count": target,
    }
    logger.info(
        f"Generating {parameters.biomorph_type.value} morphology: "
        f"{seed_count} seeds, target {target} nodes"
    )

    outcome = sim.orchestrator.run(max_ticks=max_ticks, progress=progress)
    if outcome == StepOutcome.BUDGET_EXCEEDED:
        report.add_warning(
            f"Growth budget exhausted at {sim.graph.node_count}/{target} nodes"
        )
    elif outcome == StepOutcome.CONTINUE:
        sim.orchestrator.stop()
        report.add_warning(
            f"Stopped after {max_ticks} ticks at {sim.graph.node_count}/{target} nodes"
        )

    extra_edges = global_connection_pass(
        sim.graph,
        parameters.connectivity,
        archetype_policy.min_node_distance,
        archetype_policy.max_node_distance,
        sim.rng,
        growth_policy.global_connection_grid_threshold,
    )
    logger.info(f"Global connection pass added {extra_edges} edges")

    metrics = compute_morphology_metrics(sim.graph, bounds)
    report.metrics = metrics.to_dict()
    report.metrics["outcome"] = outcome.value
    report.metrics["ticks"] = sim.orchestrator.iterations
    report.metrics["global_connections"] = extra_edges
    report.metrics["snapshot"] = sim.export_snapshot().to_dict()
    return sim, report
