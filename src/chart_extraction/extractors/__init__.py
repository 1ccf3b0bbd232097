# ============================================================================
# src/chart_extraction/extractors/__init__.py
# ============================================================================
"""
Deterministic extractors.

- section_slicer: header-only lines partition the text into sections
- list_extractor: numbered / bulleted items with continuation handling
- medication_extractor: vocabulary-restricted, three layers
- allergy_extractor: NKDA override, section list, inline label, phrases
- metadata_extractor: single-value probes, document type, summary
- header_slice: assembles the above into one Extraction
"""

from .section_slicer import slice_by_headers, match_header
from .list_extractor import extract_numbered_list
from .medication_extractor import MedicationExtractor, extract_medications
from .allergy_extractor import AllergyExtractor, extract_allergies, parse_allergy
from .metadata_extractor import (
    DocumentMetadata,
    MetadataExtractor,
    detect_document_type,
    normalize_provider,
)
from .header_slice import HeaderSliceExtractor, HeaderSliceResult, METHOD

__all__ = [
    "slice_by_headers",
    "match_header",
    "extract_numbered_list",
    "MedicationExtractor",
    "extract_medications",
    "AllergyExtractor",
    "extract_allergies",
    "parse_allergy",
    "DocumentMetadata",
    "MetadataExtractor",
    "detect_document_type",
    "normalize_provider",
    "HeaderSliceExtractor",
    "HeaderSliceResult",
    "METHOD",
]
