# src/chart_extraction/core/context/__init__.py

from .enums import ConflictType, DocumentStatus, MergeCategory, Severity, ViolationCode
from .extraction import (
    NKDA,
    NKDA_ALLERGY,
    UNKNOWN,
    Allergy,
    Diagnoses,
    DocumentInfo,
    Extraction,
    Medication,
    PartialExtraction,
    SurgeryInfo,
    fill_missing,
    is_nkda_substance,
)
from .chart import (
    ChartFacts,
    ChartSnapshot,
    ProcessingRequest,
    SurgeryRecord,
    normalize_allergy,
    normalize_diagnosis,
    normalize_medication,
    normalize_surgery,
    snapshot_from_payload,
)
from .results import (
    Confidence,
    Conflict,
    ConflictReport,
    InvariantReport,
    MergeDecision,
    Violation,
    blocked_decision,
)

__all__ = [
    "ConflictType",
    "DocumentStatus",
    "MergeCategory",
    "Severity",
    "ViolationCode",
    "NKDA",
    "NKDA_ALLERGY",
    "UNKNOWN",
    "Allergy",
    "Diagnoses",
    "DocumentInfo",
    "Extraction",
    "Medication",
    "PartialExtraction",
    "SurgeryInfo",
    "fill_missing",
    "is_nkda_substance",
    "ChartFacts",
    "ChartSnapshot",
    "ProcessingRequest",
    "SurgeryRecord",
    "normalize_allergy",
    "normalize_diagnosis",
    "normalize_medication",
    "normalize_surgery",
    "snapshot_from_payload",
    "Confidence",
    "Conflict",
    "ConflictReport",
    "InvariantReport",
    "MergeDecision",
    "Violation",
    "blocked_decision",
]
