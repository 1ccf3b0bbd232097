# ============================================================================
# src/chart_extraction/extractors/metadata_extractor.py
# ============================================================================
"""
Document Metadata Extraction

Independent single-value probes. Each probe is optional and a miss leaves
its field None:
- Surgery date
- Surgeon / provider (leading "Dr" normalized to "Dr. ")
- Facility
- Patient name
- Record number (MRN)
- Admission and discharge dates
Also detects the document type and builds the text summary.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..constants.document_types import DOCUMENT_TYPE_MARKERS, DocumentType
from ..utils.text_normalizer import collapse_whitespace

logger = logging.getLogger(__name__)

DATE_VALUE = (
    r"(?:\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"
    r"|[A-Z][a-z]{2,8}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
    r"|\d{1,2}\s+[A-Z][a-z]{2,8}\s+\d{4})"
)
DATE_VALUE_RE = re.compile(rf"^{DATE_VALUE}")

SURGERY_DATE_RE = re.compile(
    r"\b(?:date\s+of\s+(?:surgery|operation|procedure)|surgery\s+date)[ \t]*[:\-]?[ \t]*([^\n]+)",
    re.IGNORECASE
)
ADMISSION_DATE_RE = re.compile(
    rf"\b(?:date\s+of\s+admission|admission\s+date|admitted(?:\s+on)?)[ \t]*:?[ \t]*({DATE_VALUE})",
    re.IGNORECASE
)
DISCHARGE_DATE_RE = re.compile(
    rf"\b(?:date\s+of\s+discharge|discharge\s+date|discharged(?:\s+on)?)[ \t]*:?[ \t]*({DATE_VALUE})",
    re.IGNORECASE
)
SURGEON_RES = (
    re.compile(r"\b(?:attending|reporting)\s+(?:surgeon|physician)[ \t]*:[ \t]*([^\n]+)", re.IGNORECASE),
    re.compile(r"\b(?:primary\s+)?surgeon[ \t]*:[ \t]*([^\n]+)", re.IGNORECASE),
)
FACILITY_RE = re.compile(
    r"\b(?:facility|hospital|medical\s+center|clinic)[ \t]*:[ \t]*([^\n]+)",
    re.IGNORECASE
)
PATIENT_NAME_RE = re.compile(r"\bpatient(?:\s+name)?[ \t]*:[ \t]*([^\n]+)", re.IGNORECASE)
RECORD_NUMBER_RE = re.compile(
    r"\b(?:medical\s+record\s+(?:number|no\.?|#)(?:[ \t]*\(MRN\))?|MRN)[ \t]*[:#]?[ \t]*"
    r"((?=[A-Z0-9\-]*\d)[A-Z0-9][A-Z0-9\-]*)",
    re.IGNORECASE
)
DOCTOR_PREFIX_RE = re.compile(r"^Dr\b\.?\s*", re.IGNORECASE)

# Layout-preserving text puts several labels on one line
FIELD_GAP_RE = re.compile(r"\s{2,}|\t")


@dataclass(frozen=True)
class DocumentMetadata:
    surgery_date: Optional[str] = None
    surgeon: Optional[str] = None
    facility: Optional[str] = None
    patient_name: Optional[str] = None
    record_number: Optional[str] = None
    admission_date: Optional[str] = None
    discharge_date: Optional[str] = None
    evidence: Dict[str, str] = field(default_factory=dict)


def _first_field(value: str) -> Optional[str]:
    value = FIELD_GAP_RE.split(value.strip())[0].strip(" ,;")
    return value or None


def _probe_date(pattern: re.Pattern, text: str):
    match = pattern.search(text)
    if not match:
        return None, None
    return match.group(1).strip(), match.group(0).strip()


def normalize_provider(name: Optional[str]) -> Optional[str]:
    """'dr smith' / 'DR. Smith' -> 'Dr. smith' / 'Dr. Smith'."""
    if not name:
        return name
    if DOCTOR_PREFIX_RE.match(name):
        return DOCTOR_PREFIX_RE.sub("Dr. ", name, count=1)
    return name


class MetadataExtractor:
    """Single-value regex probes for document metadata."""

    def __init__(self, summary_length: int = 600):
        self.summary_length = summary_length

    def extract(self, text: str) -> DocumentMetadata:
        """
        Run every probe over the text.

        Args:
            text: Full document text

        Returns:
            DocumentMetadata with evidence for the probes that matched
        """
        if not text:
            return DocumentMetadata()

        evidence: Dict[str, str] = {}

        surgery_date = None
        match = SURGERY_DATE_RE.search(text)
        if match:
            raw = match.group(1).strip()
            date = DATE_VALUE_RE.match(raw)
            surgery_date = date.group(0) if date else _first_field(raw)
            if surgery_date:
                evidence["surgery_date"] = match.group(0).strip()

        surgeon = None
        for pattern in SURGEON_RES:
            match = pattern.search(text)
            if match:
                surgeon = normalize_provider(_first_field(match.group(1)))
                if surgeon:
                    evidence["surgeon"] = match.group(0).strip()
                    break

        facility = None
        match = FACILITY_RE.search(text)
        if match:
            facility = _first_field(match.group(1))

        patient_name = None
        match = PATIENT_NAME_RE.search(text)
        if match:
            patient_name = _first_field(match.group(1))

        record_number = None
        match = RECORD_NUMBER_RE.search(text)
        if match:
            record_number = match.group(1).strip("-")
            evidence["record_number"] = match.group(0).strip()

        admission_date, _ = _probe_date(ADMISSION_DATE_RE, text)
        discharge_date, _ = _probe_date(DISCHARGE_DATE_RE, text)

        return DocumentMetadata(
            surgery_date=surgery_date,
            surgeon=surgeon,
            facility=facility,
            patient_name=patient_name,
            record_number=record_number or None,
            admission_date=admission_date,
            discharge_date=discharge_date,
            evidence=evidence,
        )

    def build_summary(self, text: str) -> Optional[str]:
        """First `summary_length` characters, whitespace collapsed."""
        collapsed = collapse_whitespace(text)
        if not collapsed:
            return None
        if len(collapsed) <= self.summary_length:
            return collapsed
        return collapsed[:self.summary_length].rstrip() + "..."


def detect_document_type(text: str, has_procedures: bool = False) -> str:
    """
    Classify by explicit title phrases, then by content.

    Returns:
        A DocumentType value
    """
    lowered = (text or "").lower()
    for doc_type, markers in DOCUMENT_TYPE_MARKERS:
        if any(marker in lowered for marker in markers):
            return doc_type.value
    if has_procedures:
        return DocumentType.SURGICAL_REPORT.value
    return DocumentType.CLINICAL_DOCUMENT.value
