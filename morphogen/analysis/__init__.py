"""Structural metrics for grown morphologies."""

from .metrics import MorphologyMetrics, compute_morphology_metrics

__all__ = ["MorphologyMetrics", "compute_morphology_metrics"]
