"""Structural operations shared by growth algorithms and the adaptation engine."""

from .structure import (
    place_candidate,
    spawn_node,
    realize_growth,
    connect_to_nearby,
    reinforce_stressed_edges,
    remodel_edges,
    prune_weak_edges,
    triangulate_stressed_nodes,
    form_coral_plate,
    sprout_side_branches,
    form_anastomoses,
    settle_nodes,
    global_connection_pass,
    lerp_distance,
)

__all__ = [
    "place_candidate",
    "spawn_node",
    "realize_growth",
    "connect_to_nearby",
    "reinforce_stressed_edges",
    "remodel_edges",
    "prune_weak_edges",
    "triangulate_stressed_nodes",
    "form_coral_plate",
    "sprout_side_branches",
    "form_anastomoses",
    "settle_nodes",
    "global_connection_pass",
    "lerp_distance",
]
