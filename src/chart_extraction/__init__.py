# ============================================================================
# src/chart_extraction/__init__.py
# ============================================================================
"""
Safe chart extraction engine.

Turns clinical document text into evidence-backed surgeries, diagnoses,
medications and allergies, and decides whether they may be merged into a
patient's chart.

    from chart_extraction import SafeExtractionPipeline

    result = SafeExtractionPipeline().process({
        "rawText": text,
        "patientId": "p-1",
        "documentId": "d-1",
        "chartSnapshot": {"allergies": ["Penicillin"]},
    })
"""

__version__ = "0.1.0"

from .config import extraction_settings, threshold_settings, logging_settings
from .utils import setup_logging, setup_logging_from_settings

# core must load before extractors/validators/enrichers, which import core.context
from .core import (
    ConfidenceScorer,
    MergeGate,
    ProcessingResult,
    SafeExtractionPipeline,
    convert_to_chart_format,
)
from .core.context import ChartSnapshot, DocumentStatus, MergeCategory, ProcessingRequest
from .enrichers import FieldEnricher, JsonResponseEnricher, NoOpEnricher
from .extractors import HeaderSliceExtractor
from .validators import ConflictDetector, InvariantChecker

__all__ = [
    "__version__",
    "extraction_settings",
    "threshold_settings",
    "logging_settings",
    "setup_logging",
    "setup_logging_from_settings",
    "ConfidenceScorer",
    "MergeGate",
    "ProcessingResult",
    "SafeExtractionPipeline",
    "convert_to_chart_format",
    "ChartSnapshot",
    "DocumentStatus",
    "MergeCategory",
    "ProcessingRequest",
    "FieldEnricher",
    "JsonResponseEnricher",
    "NoOpEnricher",
    "HeaderSliceExtractor",
    "ConflictDetector",
    "InvariantChecker",
]
