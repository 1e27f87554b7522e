"""
Summary metrics for a grown morphology.

Volumetric density uses the given bounds when provided, otherwise the
axis-aligned box around the nodes.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import networkx as nx
import numpy as np

from ..core.bounds import Bounds
from ..core.graph import MorphologyGraph


@dataclass
class MorphologyMetrics:
    node_count: int = 0
    connection_count: int = 0
    density: float = 0.0
    bounding_volume: float = 0.0
    average_edge_length: float = 0.0
    total_edge_length: float = 0.0
    mean_degree: float = 0.0
    mean_stress: float = 0.0
    mean_strength: float = 0.0
    mean_energy: float = 0.0
    connected_components: int = 0
    largest_component_fraction: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_morphology_metrics(
    graph: MorphologyGraph,
    bounds: Optional[Bounds] = None,
) -> MorphologyMetrics:
    """
    Compute structural metrics for a morphology.

    Parameters
    ----------
    graph : MorphologyGraph
        Graph to analyze
    bounds : Bounds, optional
        Volume used for density; the nodes' bounding box if omitted

    Returns
    -------
    MorphologyMetrics
        Counts, lengths, per-node means and connectivity
    """
    n_nodes = graph.node_count
    if n_nodes == 0:
        return MorphologyMetrics()

    _, points = graph.positions_array()
    if bounds is not None:
        volume = bounds.volume
    else:
        extent = points.max(axis=0) - points.min(axis=0)
        volume = float(np.prod(extent))

    lengths = np.array([graph.edge_length(edge_id) for edge_id in graph.edges], dtype=float)
    strengths = [edge.strength for edge in graph.edges.values()]
    nodes = list(graph.nodes.values())

    G = graph.to_networkx()
    components = list(nx.connected_components(G))
    largest = max(len(c) for c in components) if components else 0

    return MorphologyMetrics(
        node_count=n_nodes,
        connection_count=graph.edge_count,
        density=n_nodes / volume if volume > 0 else 0.0,
        bounding_volume=volume,
        average_edge_length=float(lengths.mean()) if len(lengths) else 0.0,
        total_edge_length=float(lengths.sum()),
        mean_degree=2.0 * graph.edge_count / n_nodes,
        mean_stress=float(np.mean([node.stress for node in nodes])),
        mean_strength=float(np.mean(strengths)) if strengths else 0.0,
        mean_energy=float(np.mean([node.energy for node in nodes])),
        connected_components=len(components),
        largest_component_fraction=largest / n_nodes,
    )
