# ============================================================================
# src/chart_extraction/validators/__init__.py
# ============================================================================
"""
Validators Package

- Invariant checking (header present => list non-empty, medication filter)
- Conflict detection against the stored patient chart
"""

from .invariant_checker import InvariantChecker
from .conflict_detector import ConflictDetector

__all__ = [
    'InvariantChecker',
    'ConflictDetector',
]
