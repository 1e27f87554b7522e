"""Snapshot import and export."""

from .snapshot import (
    NodeRecord,
    EdgeRecord,
    MorphologySnapshot,
    export_snapshot,
    import_snapshot,
)

__all__ = [
    "NodeRecord",
    "EdgeRecord",
    "MorphologySnapshot",
    "export_snapshot",
    "import_snapshot",
]
