"""
Deterministic ID allocation for graph nodes and edges.
"""

from typing import Dict


class IDGenerator:
    """
    Monotonic integer ID allocator.

    Node and edge IDs come from separate counters and are never reused,
    not even after an edge is removed. Imported IDs are observed so that
    subsequently allocated IDs stay unique.
    """

    def __init__(self, start: int = 0):
        self._next_node_id = start
        self._next_edge_id = start

    def next_node_id(self) -> int:
        node_id = self._next_node_id
        self._next_node_id += 1
        return node_id

    def next_edge_id(self) -> int:
        edge_id = self._next_edge_id
        self._next_edge_id += 1
        return edge_id

    def observe_node_id(self, node_id: int) -> None:
        """Make sure future node IDs are greater than ``node_id``."""
        if node_id >= self._next_node_id:
            self._next_node_id = node_id + 1

    def observe_edge_id(self, edge_id: int) -> None:
        """Make sure future edge IDs are greater than ``edge_id``."""
        if edge_id >= self._next_edge_id:
            self._next_edge_id = edge_id + 1

    def reset(self) -> None:
        self._next_node_id = 0
        self._next_edge_id = 0

    def get_state(self) -> Dict[str, int]:
        return {"next_node_id": self._next_node_id, "next_edge_id": self._next_edge_id}

    def set_state(self, state: Dict[str, int]) -> None:
        self._next_node_id = int(state.get("next_node_id", 0))
        self._next_edge_id = int(state.get("next_edge_id", 0))
