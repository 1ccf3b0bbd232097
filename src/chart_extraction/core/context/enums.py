# ============================================================================
# src/chart_extraction/core/context/enums.py
# ============================================================================
"""
Processing Enums
- Document lifecycle status
- Issue severity
- Violation / conflict codes
- Merge categories
"""

from enum import Enum


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    EXTRACTED = "extracted"
    NEEDS_REVIEW = "needs_review"
    ERROR = "error"
    MERGED = "merged"


class Severity(str, Enum):
    CRITICAL = "critical"   # Blocks merge
    WARNING = "warning"     # Surfaced, does not block auto-merge on its own
    INFO = "info"           # Audit note only


class ViolationCode(str, Enum):
    MISSING_PREOP_DX = "MISSING_PREOP_DX"
    MISSING_POSTOP_DX = "MISSING_POSTOP_DX"
    MISSING_PROCEDURES = "MISSING_PROCEDURES"
    INVALID_MEDICATION = "INVALID_MEDICATION"
    NKDA_AUTOCORRECTED = "NKDA_AUTOCORRECTED"


class ConflictType(str, Enum):
    NKDA_VS_ALLERGY = "nkda_vs_allergy"
    ALLERGY_VS_NKDA = "allergy_vs_nkda"
    DATE_MISMATCH = "date_mismatch"
    RECORD_NUMBER_MISMATCH = "mrn_mismatch"


class MergeCategory(str, Enum):
    PROCEDURES = "procedures"
    DIAGNOSES = "diagnoses"
    MEDICATIONS = "medications"
    ALLERGIES = "allergies"
