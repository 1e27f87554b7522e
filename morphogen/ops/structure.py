"""
Structural operations shared by growth and adaptation.

These are the building blocks the archetype algorithms compose: placing
and realizing candidates, linking to neighbors, edge remodeling and the
archetype-specific topology moves (triangulation, coral plates, side
branches, anastomoses). Every function mutates the graph only through
its public API, so graph invariants hold after each call.
"""

from typing import Optional, TYPE_CHECKING
import logging
import math

import numpy as np

from ..spatial.grid_index import NodeGridIndex
from ..utils.vectors import lerp, normalize, random_in_unit_sphere, axis_vector

if TYPE_CHECKING:
    from ..core.graph import MorphologyGraph
    from ..core.bounds import Bounds
    from ..growth.base import GrowthContext, GrowthResult

logger = logging.getLogger(__name__)


def place_candidate(
    graph: "MorphologyGraph",
    origin: np.ndarray,
    direction: np.ndarray,
    distance: float,
    context: "GrowthContext",
    spacing: float,
) -> Optional[np.ndarray]:
    """
    Compute a candidate position and apply the spacing rule.

    The point ``origin + direction * distance`` is clamped into the
    context bounds, then rejected if any existing node lies closer than
    ``spacing``.

    Returns
    -------
    np.ndarray or None
        Accepted position, or None if rejected
    """
    position = np.asarray(origin, dtype=float) + direction * distance
    if context.bounds is not None:
        position = context.bounds.project_inside(position)
    if graph.has_node_within(position, spacing):
        return None
    return position


def spawn_node(graph: "MorphologyGraph", position: np.ndarray, context: "GrowthContext") -> int:
    """Create a node and deposit its influence point."""
    node_id = graph.create_node(position)
    if context.influence_field is not None:
        context.influence_field.add_influence_point(position, 1.0)
    return node_id


def realize_growth(
    graph: "MorphologyGraph",
    result: "GrowthResult",
    context: "GrowthContext",
    energy_cost: float = 0.0,
) -> Optional[int]:
    """
    Turn a valid growth result into a node joined to its parent.

    Parameters
    ----------
    graph : MorphologyGraph
        Graph to grow
    result : GrowthResult
        Valid proposal
    context : GrowthContext
        Supplies the field and node limit
    energy_cost : float
        Energy drawn from the parent

    Returns
    -------
    int or None
        New node ID, or None if the node limit was reached
    """
    if not result.is_valid or not context.has_room(graph):
        return None
    new_id = spawn_node(graph, result.position, context)
    parent = graph.get_node(result.parent_id) if result.parent_id is not None else None
    if parent is not None:
        graph.create_edge(parent.id, new_id)
        parent.energy = max(0.0, parent.energy - energy_cost)
    return new_id


def connect_to_nearby(
    graph: "MorphologyGraph",
    node_id: int,
    probability: float,
    context: "GrowthContext",
) -> int:
    """
    Link ``node_id`` to nodes at distance in [min, max] node distance,
    each with ``probability``.

    Returns
    -------
    int
        Number of edges created
    """
    if probability <= 0:
        return 0
    policy = context.policy
    origin = graph.position_of(node_id)
    created = 0
    for other_id in graph.nodes_within(origin, policy.max_node_distance, exclude=node_id):
        if np.linalg.norm(graph.position_of(other_id) - origin) < policy.min_node_distance:
            continue
        if context.rng.random() < probability:
            if graph.create_edge(node_id, other_id) is not None:
                created += 1
    return created


def reinforce_stressed_edges(graph: "MorphologyGraph", amount: float, threshold: float) -> float:
    """
    Strengthen every edge whose endpoints both exceed ``threshold`` stress
    by ``amount * 0.5`` (capped at 1).

    Returns
    -------
    float
        0.1 per reinforced edge
    """
    total = 0.0
    for edge in graph.edges.values():
        if graph.nodes[edge.node_a].stress > threshold and graph.nodes[edge.node_b].stress > threshold:
            edge.strength = graph.clamp_strength(edge.strength + amount * 0.5)
            total += 0.1
    return total


def remodel_edges(graph: "MorphologyGraph", amount: float, growth_threshold: float) -> float:
    """
    Stress-driven strength remodeling.

    Edges whose average endpoint stress is above ``growth_threshold`` gain
    ``amount * avg`` (capped at 1); edges below ``0.3 * growth_threshold``
    lose ``amount * 0.1`` (floored at the graph's minimum strength).

    Returns
    -------
    float
        Total strength gained
    """
    total = 0.0
    weak_threshold = growth_threshold * 0.3
    for edge in graph.edges.values():
        avg = (graph.nodes[edge.node_a].stress + graph.nodes[edge.node_b].stress) * 0.5
        if avg > growth_threshold:
            increase = amount * avg
            edge.strength = graph.clamp_strength(edge.strength + increase)
            total += increase
        elif avg < weak_threshold:
            edge.strength = graph.clamp_strength(edge.strength - amount * 0.1)
    return total


def prune_weak_edges(graph: "MorphologyGraph") -> int:
    """
    Remove edges that sit at the minimum strength.

    Edges are kept if removing them would leave an endpoint isolated.

    Returns
    -------
    int
        Number of edges removed
    """
    floor = graph.policy.min_strength
    doomed = [
        edge.id for edge in graph.edges.values()
        if edge.strength <= floor
    ]
    removed = 0
    for edge_id in doomed:
        edge = graph.get_edge(edge_id)
        if graph.degree(edge.node_a) <= 1 or graph.degree(edge.node_b) <= 1:
            continue
        graph.remove_edge(edge_id)
        removed += 1
    if removed:
        logger.debug(f"Pruned {removed} edges at minimum strength")
    return removed


def triangulate_stressed_nodes(
    graph: "MorphologyGraph",
    amount: float,
    context: "GrowthContext",
    max_added: int,
) -> float:
    """
    Close triangles around highly stressed nodes.

    For each node with stress above ``0.7 * stress_threshold``, every pair
    of its neighbors that are not yet connected and both exceed
    ``growth_threshold`` is linked with probability
    ``amount * connectivity``.

    Returns
    -------
    float
        0.5 per edge added
    """
    policy = context.policy
    hot = policy.stress_threshold * 0.7
    probability = amount * context.parameters.connectivity
    added = 0
    for node_id in list(graph.nodes):
        if added >= max_added:
            break
        if graph.nodes[node_id].stress <= hot:
            continue
        neighbors = graph.neighbors(node_id)
        for i in range(len(neighbors)):
            for j in range(i + 1, len(neighbors)):
                a, b = neighbors[i], neighbors[j]
                if graph.is_connected(a, b):
                    continue
                if graph.nodes[a].stress <= policy.growth_threshold:
                    continue
                if graph.nodes[b].stress <= policy.growth_threshold:
                    continue
                if context.rng.random() < probability:
                    if graph.create_edge(a, b) is not None:
                        added += 1
    return 0.5 * added


def form_coral_plate(graph: "MorphologyGraph", center_id: int, context: "GrowthContext") -> int:
    """
    Spawn a horizontal ring of plate nodes around ``center_id``.

    Between ``plate_min_nodes`` and ``plate_max_nodes`` nodes are placed
    at random angles in the plane normal to the up axis, each joined to
    the center and to the previously placed plate node. Rings with more
    than two nodes are closed.

    Returns
    -------
    int
        Number of plate nodes created
    """
    policy = context.policy
    rng = context.rng
    count = int(rng.integers(policy.plate_min_nodes, policy.plate_max_nodes + 1))
    up = policy.up_axis
    plane_axes = [axis for axis in range(3) if axis != up]
    center = graph.position_of(center_id)

    ring = []
    for _ in range(count):
        if not context.has_room(graph):
            break
        angle = rng.uniform(0.0, 2.0 * math.pi)
        radius = rng.uniform(policy.min_node_distance, policy.max_node_distance * policy.plate_radius_factor)
        direction = np.zeros(3)
        direction[plane_axes[0]] = math.cos(angle)
        direction[plane_axes[1]] = math.sin(angle)
        position = place_candidate(graph, center, direction, radius, context, policy.min_node_distance)
        if position is None:
            continue
        plate_id = spawn_node(graph, position, context)
        graph.create_edge(center_id, plate_id)
        if ring:
            graph.create_edge(ring[-1], plate_id)
        ring.append(plate_id)

    if len(ring) > 2:
        graph.create_edge(ring[0], ring[-1])
    return len(ring)


def sprout_side_branches(
    graph: "MorphologyGraph",
    source_id: int,
    direction: np.ndarray,
    distance: float,
    context: "GrowthContext",
    spacing: float,
) -> int:
    """
    Grow one or two extra branches from ``source_id`` around ``direction``,
    each at ``distance * U(0.5, 0.9)``.

    Returns
    -------
    int
        Number of branch nodes created
    """
    rng = context.rng
    origin = graph.position_of(source_id)
    branches = int(rng.integers(1, 3))
    created = 0
    for _ in range(branches):
        if not context.has_room(graph):
            break
        branch_dir = normalize(direction + random_in_unit_sphere(rng) * 0.6)
        if not branch_dir.any():
            continue
        branch_distance = distance * rng.uniform(0.5, 0.9)
        position = place_candidate(graph, origin, branch_dir, branch_distance, context, spacing)
        if position is None:
            continue
        branch_id = spawn_node(graph, position, context)
        graph.create_edge(source_id, branch_id)
        created += 1
    return created


def form_anastomoses(graph: "MorphologyGraph", count: int, context: "GrowthContext") -> int:
    """
    Add up to ``count`` long-range edges between unconnected nodes.

    For each link a random node is drawn, then up to
    ``anastomosis_attempts`` random partners are tried; a partner
    qualifies if it is not already connected and its distance lies in
    ``(factor * min_node_distance, factor * max_node_distance)``.

    Returns
    -------
    int
        Number of edges created
    """
    policy = context.policy
    rng = context.rng
    ids = list(graph.nodes)
    if len(ids) < 2:
        return 0
    lo = policy.min_node_distance * policy.anastomosis_distance_factor
    hi = policy.max_node_distance * policy.anastomosis_distance_factor
    created = 0
    for _ in range(max(0, count)):
        node_a = ids[int(rng.integers(len(ids)))]
        pos_a = graph.position_of(node_a)
        for _ in range(policy.anastomosis_attempts):
            candidate = ids[int(rng.integers(len(ids)))]
            if candidate == node_a or graph.is_connected(node_a, candidate):
                continue
            distance = np.linalg.norm(graph.position_of(candidate) - pos_a)
            if lo < distance < hi:
                if graph.create_edge(node_a, candidate) is not None:
                    created += 1
                break
    return created


def settle_nodes(
    graph: "MorphologyGraph",
    bounds: "Bounds",
    rng: np.random.Generator,
    probability: float,
    distance: float,
    up_axis: int = 1,
) -> int:
    """
    Let free nodes sag along ``-up`` with ``probability`` each, never
    below the bounds' minimum on the up axis.

    Returns
    -------
    int
        Number of nodes moved
    """
    floor = float(bounds.min_array[up_axis])
    down = -axis_vector(up_axis)
    moved = 0
    for node_id in list(graph.nodes):
        if rng.random() >= probability:
            continue
        node = graph.nodes[node_id]
        if node.is_fixed:
            continue
        position = graph.position_of(node_id) + down * distance
        position[up_axis] = max(floor, position[up_axis])
        if graph.move_node(node_id, position):
            moved += 1
    return moved


def global_connection_pass(
    graph: "MorphologyGraph",
    probability: float,
    min_distance: float,
    max_distance: float,
    rng: np.random.Generator,
    grid_threshold: Optional[int] = 100,
) -> int:
    """
    Link every node pair at distance in [min_distance, max_distance] with
    ``probability``.

    Each unordered pair is considered once. Above ``grid_threshold`` nodes
    candidates come from a uniform grid with cell size ``max_distance``;
    below it every node is scanned.

    Returns
    -------
    int
        Number of edges created
    """
    grid = None
    if grid_threshold is not None and graph.node_count > grid_threshold:
        grid = NodeGridIndex(max_distance)
        grid.bulk_insert((node_id, graph.position_of(node_id)) for node_id in graph.nodes)

    created = 0
    for node_id in sorted(graph.nodes):
        origin = graph.position_of(node_id)
        if grid is not None:
            candidates = sorted(grid.query_radius(origin, max_distance))
        else:
            candidates = sorted(graph.nodes)
        for other_id in candidates:
            if other_id <= node_id or graph.is_connected(node_id, other_id):
                continue
            distance = np.linalg.norm(graph.position_of(other_id) - origin)
            if distance < min_distance or distance > max_distance:
                continue
            if rng.random() < probability:
                if graph.create_edge(node_id, other_id) is not None:
                    created += 1
    return created


def lerp_distance(context: "GrowthContext", t: float) -> float:
    """Distance between min and max node distance at fraction ``t``."""
    policy = context.policy
    return float(lerp(policy.min_node_distance, policy.max_node_distance, min(1.0, max(0.0, t))))
