# ============================================================================
# src/chart_extraction/core/__init__.py
# ============================================================================
"""
Core components for the chart extraction engine.
"""

from .confidence import ConfidenceScorer, ConfidenceThresholds
from .chart_format import convert_to_chart_format
from .merge_gate import (
    ALLOWED_TRANSITIONS,
    ChartDeltas,
    MergeGate,
    MergePlan,
    can_transition,
    transition,
)
from .pipeline import ProcessingResult, SafeExtractionPipeline

__all__ = [
    "ConfidenceScorer",
    "ConfidenceThresholds",
    "convert_to_chart_format",
    "ALLOWED_TRANSITIONS",
    "ChartDeltas",
    "MergeGate",
    "MergePlan",
    "can_transition",
    "transition",
    "ProcessingResult",
    "SafeExtractionPipeline",
]
