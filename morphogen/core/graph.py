"""
Core morphology graph data structures.

Nodes and edges live in integer-keyed dicts; edges store node IDs, nodes
store edge IDs as back-references only. An adjacency map keyed by node ID
(neighbor ID -> edge ID) gives O(1) duplicate and connectivity checks.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

import networkx as nx
import numpy as np

from morph_policies import ArchetypePolicy, GraphPolicy

from .ids import IDGenerator
from .types import Point3D, as_array, as_point
from ..spatial.grid_index import NodeGridIndex

logger = logging.getLogger(__name__)


class GraphInvariantError(ValueError):
    """Raised when a graph mutation or import would break an invariant."""


@dataclass
class MorphNode:
    """
    Node in a morphology graph.

    ``stress`` and ``growth_potential`` are kept in [0, 1]. ``force`` holds
    the last external force sample delivered by the host.
    """

    id: int
    position: Point3D
    energy: float = 1.0
    growth_potential: float = 1.0
    stress: float = 0.0
    force: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    is_anchored: bool = False
    is_root: bool = False
    edge_ids: List[int] = field(default_factory=list)

    @property
    def is_fixed(self) -> bool:
        """Anchored and root nodes never move."""
        return self.is_anchored or self.is_root

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "energy": self.energy,
            "growth_potential": self.growth_potential,
            "stress": self.stress,
            "force": list(self.force),
            "is_anchored": self.is_anchored,
            "is_root": self.is_root,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "MorphNode":
        """Create from dictionary. Edge back-references are rebuilt by the graph."""
        return cls(
            id=int(d["id"]),
            position=Point3D.from_dict(d["position"]),
            energy=float(d.get("energy", 1.0)),
            growth_potential=float(d.get("growth_potential", 1.0)),
            stress=float(d.get("stress", 0.0)),
            force=tuple(d.get("force", (0.0, 0.0, 0.0))),
            is_anchored=bool(d.get("is_anchored", False)),
            is_root=bool(d.get("is_root", False)),
        )


@dataclass
class MorphEdge:
    """Undirected, weighted connection between two distinct nodes."""

    id: int
    node_a: int
    node_b: int
    strength: float = 0.5
    rest_length: float = 0.0

    @property
    def key(self) -> Tuple[int, int]:
        """Unordered pair key."""
        return (self.node_a, self.node_b) if self.node_a < self.node_b else (self.node_b, self.node_a)

    def other(self, node_id: int) -> int:
        """Endpoint opposite to ``node_id``."""
        return self.node_b if node_id == self.node_a else self.node_a

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "node_a": self.node_a,
            "node_b": self.node_b,
            "strength": self.strength,
            "rest_length": self.rest_length,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "MorphEdge":
        """Create from dictionary."""
        return cls(
            id=int(d["id"]),
            node_a=int(d["node_a"]),
            node_b=int(d["node_b"]),
            strength=float(d.get("strength", 0.5)),
            rest_length=float(d.get("rest_length", 0.0)),
        )


class MorphologyGraph:
    """
    Growing graph of 3D nodes and undirected weighted edges.

    The graph is the single owner of node and edge lifetimes. Growth
    algorithms and the adaptation engine mutate it only through
    ``create_node``, ``create_edge``, ``remove_edge`` and ``move_node``.
    """

    def __init__(
        self,
        policy: Optional[GraphPolicy] = None,
        connection_distance: Optional[float] = None,
    ):
        """
        Initialize an empty graph.

        Parameters
        ----------
        policy : GraphPolicy, optional
            Capacity, strength range, energy defaults and indexing threshold
        connection_distance : float, optional
            Maximum connection distance; sizes the grid index cells unless
            the policy fixes ``index_cell_size``. Defaults to
            ``ArchetypePolicy().max_node_distance``.
        """
        self.policy = policy or GraphPolicy()
        if connection_distance is None:
            connection_distance = ArchetypePolicy().max_node_distance
        self.connection_distance = float(connection_distance)
        self.nodes: Dict[int, MorphNode] = {}
        self.edges: Dict[int, MorphEdge] = {}
        self.id_gen = IDGenerator()

        self._adjacency: Dict[int, Dict[int, int]] = {}  # node_id -> {neighbor_id: edge_id}
        self._positions: Dict[int, np.ndarray] = {}
        self._position_cache: Optional[Tuple[np.ndarray, np.ndarray]] = None
        self._grid: Optional[NodeGridIndex] = None

    # ------------------------------------------------------------------
    # Size / capacity

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    @property
    def max_nodes(self) -> int:
        return self.policy.max_nodes

    def has_capacity(self, n: int = 1) -> bool:
        """True if ``n`` more nodes fit under ``max_nodes``."""
        return self.node_count + n <= self.policy.max_nodes

    @property
    def uses_spatial_index(self) -> bool:
        return self._grid is not None

    @property
    def index_cell_size(self) -> float:
        """Grid cell size: the policy override, else the connection distance."""
        if self.policy.index_cell_size is not None:
            return self.policy.index_cell_size
        return self.connection_distance

    def set_connection_distance(self, distance: float) -> None:
        """Follow a new maximum connection distance, re-gridding if needed."""
        self.connection_distance = float(distance)
        if self._grid is not None and self._grid.cell_size != self.index_cell_size:
            self._build_spatial_index()

    # ------------------------------------------------------------------
    # Nodes

    def create_node(
        self,
        position: Any,
        is_root: bool = False,
        is_anchored: bool = False,
        energy: Optional[float] = None,
    ) -> int:
        """
        Create a node and return its ID.

        Raises
        ------
        GraphInvariantError
            If the graph is already at ``max_nodes``.
        """
        if not self.has_capacity():
            raise GraphInvariantError(
                f"Cannot create node: graph is at max_nodes ({self.policy.max_nodes})"
            )
        if energy is None:
            energy = self.policy.root_energy if is_root else self.policy.default_energy
        node = MorphNode(
            id=self.id_gen.next_node_id(),
            position=as_point(position),
            energy=max(0.0, float(energy)),
            is_anchored=is_anchored,
            is_root=is_root,
        )
        self._insert_node(node)
        return node.id

    def add_node(self, node: MorphNode) -> None:
        """
        Add an existing node record (used by snapshot import).

        Raises
        ------
        GraphInvariantError
            On duplicate ID or when the graph is full.
        """
        if node.id in self.nodes:
            raise GraphInvariantError(f"Duplicate node id {node.id}")
        if not self.has_capacity():
            raise GraphInvariantError(
                f"Cannot add node {node.id}: graph is at max_nodes ({self.policy.max_nodes})"
            )
        node.edge_ids = []
        node.stress = min(1.0, max(0.0, node.stress))
        node.energy = max(0.0, node.energy)
        self.id_gen.observe_node_id(node.id)
        self._insert_node(node)

    def _insert_node(self, node: MorphNode) -> None:
        self.nodes[node.id] = node
        self._adjacency[node.id] = {}
        pos = node.position.to_array()
        self._positions[node.id] = pos
        self._position_cache = None
        self._refresh_growth_potential(node)
        if self._grid is not None:
            self._grid.insert(node.id, pos)
        elif self.node_count > self.policy.spatial_index_threshold:
            self._build_spatial_index()

    def get_node(self, node_id: int) -> Optional[MorphNode]:
        """Get node by ID."""
        return self.nodes.get(node_id)

    def position_of(self, node_id: int) -> np.ndarray:
        """Position array of a node (copy)."""
        return self._positions[node_id].copy()

    def move_node(self, node_id: int, position: Any) -> bool:
        """
        Move a node. Anchored and root nodes are left in place.

        Returns
        -------
        bool
            True if the node was moved
        """
        node = self.nodes.get(node_id)
        if node is None or node.is_fixed:
            return False
        pos = as_array(position)
        node.position = Point3D.from_array(pos)
        self._positions[node_id] = pos
        self._position_cache = None
        if self._grid is not None:
            self._grid.move(node_id, pos)
        return True

    # ------------------------------------------------------------------
    # Edges

    def create_edge(self, node_a: int, node_b: int, strength: Optional[float] = None) -> Optional[int]:
        """
        Connect two nodes.

        Self-edges, duplicate pairs and unknown endpoints are rejected by
        returning None and leaving the graph untouched.

        Returns
        -------
        int or None
            ID of the new edge, or None if rejected
        """
        if node_a == node_b:
            return None
        if node_a not in self.nodes or node_b not in self.nodes:
            return None
        if node_b in self._adjacency[node_a]:
            return None

        if strength is None:
            strength = self.policy.initial_strength
        edge = MorphEdge(
            id=self.id_gen.next_edge_id(),
            node_a=node_a,
            node_b=node_b,
            strength=self.clamp_strength(strength),
            rest_length=float(np.linalg.norm(self._positions[node_a] - self._positions[node_b])),
        )
        self._insert_edge(edge)
        return edge.id

    def add_edge(self, edge: MorphEdge) -> None:
        """
        Add an existing edge record (used by snapshot import).

        Raises
        ------
        GraphInvariantError
            If an endpoint is missing, the edge is a self-loop, or the
            pair or ID is already present.
        """
        if edge.node_a not in self.nodes or edge.node_b not in self.nodes:
            raise GraphInvariantError(
                f"Edge {edge.id} references missing node ({edge.node_a}, {edge.node_b})"
            )
        if edge.node_a == edge.node_b:
            raise GraphInvariantError(f"Edge {edge.id} is a self-loop on node {edge.node_a}")
        if edge.id in self.edges:
            raise GraphInvariantError(f"Duplicate edge id {edge.id}")
        if edge.node_b in self._adjacency[edge.node_a]:
            raise GraphInvariantError(
                f"Duplicate edge between nodes {edge.node_a} and {edge.node_b}"
            )
        edge.strength = self.clamp_strength(edge.strength)
        self.id_gen.observe_edge_id(edge.id)
        self._insert_edge(edge)

    def _insert_edge(self, edge: MorphEdge) -> None:
        self.edges[edge.id] = edge
        self._adjacency[edge.node_a][edge.node_b] = edge.id
        self._adjacency[edge.node_b][edge.node_a] = edge.id
        for node_id in (edge.node_a, edge.node_b):
            node = self.nodes[node_id]
            node.edge_ids.append(edge.id)
            self._refresh_growth_potential(node)

    def remove_edge(self, edge_id: int) -> bool:
        """Remove an edge. Returns False if it does not exist."""
        edge = self.edges.pop(edge_id, None)
        if edge is None:
            return False
        self._adjacency[edge.node_a].pop(edge.node_b, None)
        self._adjacency[edge.node_b].pop(edge.node_a, None)
        for node_id in (edge.node_a, edge.node_b):
            node = self.nodes[node_id]
            node.edge_ids.remove(edge_id)
            self._refresh_growth_potential(node)
        return True

    def get_edge(self, edge_id: int) -> Optional[MorphEdge]:
        """Get edge by ID."""
        return self.edges.get(edge_id)

    def edge_between(self, node_a: int, node_b: int) -> Optional[MorphEdge]:
        edge_id = self._adjacency.get(node_a, {}).get(node_b)
        return None if edge_id is None else self.edges[edge_id]

    def is_connected(self, node_a: int, node_b: int) -> bool:
        """True if an edge joins the two nodes directly."""
        return node_b in self._adjacency.get(node_a, {})

    def neighbors(self, node_id: int) -> List[int]:
        return list(self._adjacency.get(node_id, {}))

    def degree(self, node_id: int) -> int:
        return len(self._adjacency.get(node_id, {}))

    def edge_length(self, edge_id: int) -> float:
        edge = self.edges[edge_id]
        return float(np.linalg.norm(self._positions[edge.node_a] - self._positions[edge.node_b]))

    def clamp_strength(self, strength: float) -> float:
        return min(1.0, max(self.policy.min_strength, float(strength)))

    # ------------------------------------------------------------------
    # Proximity

    def positions_array(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        All node IDs and positions as arrays.

        Returns
        -------
        ids : np.ndarray
            Node IDs in insertion order, shape (N,)
        points : np.ndarray
            Positions, shape (N, 3)
        """
        if self._position_cache is None:
            ids = np.fromiter(self._positions.keys(), dtype=int, count=len(self._positions))
            if len(ids):
                points = np.vstack(list(self._positions.values()))
            else:
                points = np.empty((0, 3))
            self._position_cache = (ids, points)
        return self._position_cache

    def nodes_within(self, position: Any, radius: float, exclude: Optional[int] = None) -> List[int]:
        """
        IDs of nodes within ``radius`` of ``position``, in ascending ID order.

        Uses a brute-force scan while the graph is small and the uniform
        grid index once it grows past ``spatial_index_threshold``.
        """
        p = as_array(position)
        if self._grid is not None:
            candidates = sorted(self._grid.query_radius(p, radius))
            result = [
                node_id for node_id in candidates
                if node_id != exclude and np.linalg.norm(self._positions[node_id] - p) <= radius
            ]
            return result

        ids, points = self.positions_array()
        if not len(ids):
            return []
        dist = np.linalg.norm(points - p, axis=1)
        mask = dist <= radius
        result = sorted(int(i) for i in ids[mask])
        if exclude is not None and exclude in result:
            result.remove(exclude)
        return result

    def has_node_within(self, position: Any, radius: float, exclude: Optional[int] = None) -> bool:
        """True if any node other than ``exclude`` lies strictly closer than ``radius``."""
        p = as_array(position)
        if self._grid is not None:
            for node_id in self._grid.query_radius(p, radius):
                if node_id != exclude and np.linalg.norm(self._positions[node_id] - p) < radius:
                    return True
            return False
        return self.nearest_distance(p, exclude=exclude) < radius

    def nearest_distance(self, position: Any, exclude: Optional[int] = None) -> float:
        """Distance from ``position`` to the closest node, ``inf`` if none."""
        p = as_array(position)
        ids, points = self.positions_array()
        if not len(ids):
            return float("inf")
        dist = np.linalg.norm(points - p, axis=1)
        if exclude is not None:
            dist = np.where(ids == exclude, np.inf, dist)
        return float(dist.min()) if len(dist) else float("inf")

    def _build_spatial_index(self) -> None:
        self._grid = NodeGridIndex(self.index_cell_size)
        self._grid.bulk_insert(self._positions.items())
        logger.debug(
            f"Switched to grid index (cell_size={self.index_cell_size}) "
            f"at {self.node_count} nodes"
        )

    # ------------------------------------------------------------------
    # Attributes / lifecycle

    def _refresh_growth_potential(self, node: MorphNode) -> None:
        falloff = self.policy.growth_potential_falloff
        node.growth_potential = min(1.0, max(0.0, 1.0 - falloff * len(node.edge_ids)))

    def update_node_attributes(self, dt: float) -> None:
        """Decay energy by ``dt * energy_decay * degree`` and refresh growth potential."""
        decay = dt * self.policy.energy_decay
        for node in self.nodes.values():
            degree = len(node.edge_ids)
            if degree:
                node.energy = max(0.0, node.energy - decay * degree)
            self._refresh_growth_potential(node)

    def clear(self) -> None:
        """Remove all nodes and edges and reset ID allocation."""
        self.nodes.clear()
        self.edges.clear()
        self._adjacency.clear()
        self._positions.clear()
        self._position_cache = None
        self._grid = None
        self.id_gen.reset()

    def check_invariants(self) -> List[str]:
        """
        Check every structural invariant.

        Returns
        -------
        List[str]
            Violations found (empty if the graph is consistent)
        """
        errors = []
        if self.node_count > self.policy.max_nodes:
            errors.append(f"node count {self.node_count} exceeds max_nodes {self.policy.max_nodes}")

        seen_pairs = set()
        for edge in self.edges.values():
            if edge.node_a not in self.nodes or edge.node_b not in self.nodes:
                errors.append(f"edge {edge.id} has a dangling endpoint")
                continue
            if edge.node_a == edge.node_b:
                errors.append(f"edge {edge.id} is a self-loop")
            if edge.key in seen_pairs:
                errors.append(f"duplicate edge for pair {edge.key}")
            seen_pairs.add(edge.key)
            if not self.policy.min_strength <= edge.strength <= 1.0:
                errors.append(f"edge {edge.id} strength {edge.strength} out of range")

        for node in self.nodes.values():
            if not 0.0 <= node.stress <= 1.0:
                errors.append(f"node {node.id} stress {node.stress} out of [0, 1]")
            if not 0.0 <= node.growth_potential <= 1.0:
                errors.append(f"node {node.id} growth_potential out of [0, 1]")
            if node.energy < 0:
                errors.append(f"node {node.id} has negative energy")
            for edge_id in node.edge_ids:
                edge = self.edges.get(edge_id)
                if edge is None or node.id not in (edge.node_a, edge.node_b):
                    errors.append(f"node {node.id} has stale edge reference {edge_id}")
        return errors

    def validate(self) -> None:
        """
        Raise if any invariant is broken.

        Raises
        ------
        GraphInvariantError
            Listing every violation found
        """
        errors = self.check_invariants()
        if errors:
            raise GraphInvariantError("; ".join(errors))

    def to_networkx(self) -> nx.Graph:
        """Export to an undirected networkx graph with node and edge attributes."""
        G = nx.Graph()
        for node in self.nodes.values():
            G.add_node(
                node.id,
                position=self._positions[node.id].copy(),
                stress=node.stress,
                energy=node.energy,
                is_root=node.is_root,
            )
        for edge in self.edges.values():
            G.add_edge(
                edge.node_a,
                edge.node_b,
                id=edge.id,
                strength=edge.strength,
                length=self.edge_length(edge.id),
            )
        return G

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "policy": self.policy.to_dict(),
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges.values()],
            "id_state": self.id_gen.get_state(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "MorphologyGraph":
        """Create from dictionary, validating endpoints as edges are added."""
        graph = cls(GraphPolicy.from_dict(d.get("policy", {})))
        for node_data in d.get("nodes", []):
            graph.add_node(MorphNode.from_dict(node_data))
        for edge_data in d.get("edges", []):
            graph.add_edge(MorphEdge.from_dict(edge_data))
        if "id_state" in d:
            state = graph.id_gen.get_state()
            restored = d["id_state"]
            graph.id_gen.set_state({
                "next_node_id": max(state["next_node_id"], int(restored.get("next_node_id", 0))),
                "next_edge_id": max(state["next_edge_id"], int(restored.get("next_edge_id", 0))),
            })
        return graph
