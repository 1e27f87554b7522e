"""Spatial structures: node grid index, influence field and attraction points."""

from .grid_index import NodeGridIndex
from .influence_field import InfluenceField
from .attraction_field import AttractionField

__all__ = ["NodeGridIndex", "InfluenceField", "AttractionField"]
