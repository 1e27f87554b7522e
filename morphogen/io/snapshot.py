"""
Plain snapshot of a morphology for import and export.

A snapshot lists node records in ascending ID order and edges as index
pairs into that list plus a strength. It is deliberately format-free:
``to_dict`` gives JSON-compatible data and callers choose where it goes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from morph_policies import GraphPolicy, coerce_float, coerce_vec3

from ..core.graph import GraphInvariantError, MorphNode, MorphologyGraph
from ..core.types import Point3D


@dataclass
class NodeRecord:
    """Read-only view of one node."""
    id: int
    position: Tuple[float, float, float]
    stress: float
    energy: float
    connection_count: int
    is_root: bool = False
    is_anchored: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": list(self.position),
            "stress": self.stress,
            "energy": self.energy,
            "connection_count": self.connection_count,
            "is_root": self.is_root,
            "is_anchored": self.is_anchored,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "NodeRecord":
        return cls(
            id=int(d["id"]),
            position=coerce_vec3(d.get("position")),
            stress=coerce_float(d.get("stress"), 0.0),
            energy=coerce_float(d.get("energy"), 1.0),
            connection_count=int(d.get("connection_count", 0)),
            is_root=bool(d.get("is_root", False)),
            is_anchored=bool(d.get("is_anchored", False)),
        )


@dataclass
class EdgeRecord:
    """Read-only view of one edge."""
    id: int
    node_a: int
    node_b: int
    strength: float


@dataclass
class MorphologySnapshot:
    """
    Nodes plus index-pair edges.

    ``edges`` holds ``(index_a, index_b, strength)`` where the indices
    refer to positions in ``nodes``.
    """
    nodes: List[NodeRecord] = field(default_factory=list)
    edges: List[Tuple[int, int, float]] = field(default_factory=list)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [record.to_dict() for record in self.nodes],
            "edges": [[a, b, strength] for a, b, strength in self.edges],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MorphologySnapshot":
        nodes = [NodeRecord.from_dict(item) for item in d.get("nodes", [])]
        edges = []
        for item in d.get("edges", []):
            if isinstance(item, dict):
                edges.append((int(item["a"]), int(item["b"]), coerce_float(item.get("strength"), 0.5)))
            else:
                edges.append((int(item[0]), int(item[1]), coerce_float(item[2], 0.5)))
        return cls(nodes=nodes, edges=edges)


def node_record(graph: MorphologyGraph, node_id: int) -> NodeRecord:
    node = graph.nodes[node_id]
    return NodeRecord(
        id=node.id,
        position=node.position.to_tuple(),
        stress=node.stress,
        energy=node.energy,
        connection_count=graph.degree(node_id),
        is_root=node.is_root,
        is_anchored=node.is_anchored,
    )


def edge_record(graph: MorphologyGraph, edge_id: int) -> EdgeRecord:
    edge = graph.edges[edge_id]
    return EdgeRecord(id=edge.id, node_a=edge.node_a, node_b=edge.node_b, strength=edge.strength)


def export_snapshot(graph: MorphologyGraph) -> MorphologySnapshot:
    """
    Capture a graph as a snapshot.

    Parameters
    ----------
    graph : MorphologyGraph
        Graph to export

    Returns
    -------
    MorphologySnapshot
        Nodes in ascending ID order, edges in ascending ID order as
        index pairs
    """
    order = sorted(graph.nodes)
    index_of = {node_id: i for i, node_id in enumerate(order)}
    nodes = [node_record(graph, node_id) for node_id in order]
    edges = [
        (index_of[edge.node_a], index_of[edge.node_b], edge.strength)
        for _, edge in sorted(graph.edges.items())
    ]
    return MorphologySnapshot(nodes=nodes, edges=edges)


def import_snapshot(
    snapshot: MorphologySnapshot,
    policy: Optional[GraphPolicy] = None,
) -> MorphologyGraph:
    """
    Rebuild a graph from a snapshot.

    Node IDs are preserved; edge IDs are reassigned in snapshot order.

    Raises
    ------
    GraphInvariantError
        On duplicate node IDs, out-of-range edge indices, self-loops or
        duplicate pairs, or more nodes than ``max_nodes``
    """
    graph = MorphologyGraph(policy)
    ids: List[int] = []
    for record in snapshot.nodes:
        graph.add_node(MorphNode(
            id=record.id,
            position=Point3D(*record.position),
            energy=record.energy,
            stress=record.stress,
            is_root=record.is_root,
            is_anchored=record.is_anchored,
        ))
        ids.append(record.id)

    for index_a, index_b, strength in snapshot.edges:
        if not (0 <= index_a < len(ids) and 0 <= index_b < len(ids)):
            raise GraphInvariantError(f"Edge index pair ({index_a}, {index_b}) out of range")
        if graph.create_edge(ids[index_a], ids[index_b], strength) is None:
            raise GraphInvariantError(
                f"Invalid edge between nodes {ids[index_a]} and {ids[index_b]}"
            )
    return graph
