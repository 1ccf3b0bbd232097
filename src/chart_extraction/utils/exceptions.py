# ============================================================================
# src/chart_extraction/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the chart extraction engine.

Extraction problems (invariant violations, conflicts, short text) are
reported as data. These exceptions are reserved for true faults.
"""

from typing import List, Optional


class ChartExtractionError(Exception):
    """Base exception for all chart extraction errors."""
    pass


class ConfigurationError(ChartExtractionError):
    """Invalid configuration or unreadable data table."""
    pass


class InvalidInputError(ChartExtractionError):
    """Malformed request structure."""
    pass


class EnrichmentError(ChartExtractionError):
    """Enrichment collaborator failed or returned an unusable response."""
    pass


class InvalidTransitionError(ChartExtractionError):
    """Document status transition not allowed."""
    def __init__(self, message: str, current: str, target: str):
        super().__init__(message)
        self.current = current
        self.target = target


class MergeBlockedError(ChartExtractionError):
    """Merge requested but no category is eligible."""
    def __init__(self, message: str, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.reasons = list(reasons or [])
