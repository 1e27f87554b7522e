"""
Tests for Biomorph Growth

This package contains tests for:
- Configuration policies and parameter coercion
- Morphology graph invariants and proximity indexing
- Spatial influence and attraction fields
- Archetype growth algorithms and adaptation
- Orchestrated growth scenarios, snapshots and generation
"""
