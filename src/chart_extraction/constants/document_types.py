# ============================================================================
# src/chart_extraction/constants/document_types.py
# ============================================================================
"""
Document type identifiers and the phrases that identify them.
"""

from enum import Enum


class DocumentType(str, Enum):
    OPERATIVE_REPORT = "operative_report"
    DISCHARGE_SUMMARY = "discharge_summary"
    SURGICAL_REPORT = "surgical_report"
    CLINICAL_DOCUMENT = "clinical_document"


# Checked in order against lower-cased text
DOCUMENT_TYPE_MARKERS = (
    (DocumentType.OPERATIVE_REPORT, ("operative report", "op note", "operative note")),
    (DocumentType.DISCHARGE_SUMMARY, ("discharge summary",)),
)
