# ============================================================================
# src/chart_extraction/utils/__init__.py
# ============================================================================
"""
Utility modules for the chart extraction engine.
"""

from .exceptions import (
    ChartExtractionError,
    ConfigurationError,
    InvalidInputError,
    EnrichmentError,
    InvalidTransitionError,
    MergeBlockedError,
)

from .logging import (
    setup_logging,
    setup_logging_from_settings,
    log_performance,
    JsonFormatter,
    DocumentLogAdapter,
)

from .text_normalizer import (
    collapse_whitespace,
    capitalize_first,
    digits_only,
    normalize_date,
    token_overlap,
    names_similar,
)

__all__ = [
    # Exceptions
    'ChartExtractionError',
    'ConfigurationError',
    'InvalidInputError',
    'EnrichmentError',
    'InvalidTransitionError',
    'MergeBlockedError',
    # Logging
    'setup_logging',
    'setup_logging_from_settings',
    'log_performance',
    'JsonFormatter',
    'DocumentLogAdapter',
    # Text
    'collapse_whitespace',
    'capitalize_first',
    'digits_only',
    'normalize_date',
    'token_overlap',
    'names_similar',
]
