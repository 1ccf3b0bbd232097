# ============================================================================
# src/chart_extraction/enrichers/__init__.py
# ============================================================================
"""
Missing-Field Enrichers

Enrichers may only fill fields the deterministic extraction left empty:
- NoOpEnricher: proposes nothing (default, fully deterministic)
- JsonResponseEnricher: micro-prompts an external language model
"""

from .base import (
    MEDICATIONS_FIELD,
    PROCEDURES_FIELD,
    EnrichmentResult,
    FieldEnricher,
    NoOpEnricher,
)
from .json_response_enricher import JsonResponseEnricher, parse_json_response

__all__ = [
    "MEDICATIONS_FIELD",
    "PROCEDURES_FIELD",
    "EnrichmentResult",
    "FieldEnricher",
    "NoOpEnricher",
    "JsonResponseEnricher",
    "parse_json_response",
]
