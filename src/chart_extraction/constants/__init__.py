# ============================================================================
# src/chart_extraction/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .clinical_headers import CLINICAL_HEADERS, INVARIANT_SECTIONS, MEDICATION_SECTIONS
from .document_types import DocumentType, DOCUMENT_TYPE_MARKERS
from .medication_vocabulary import (
    MedicationEntry,
    MedicationVocabulary,
    get_medication_vocabulary,
)
