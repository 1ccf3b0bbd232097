# ============================================================================
# src/chart_extraction/extractors/header_slice.py
# ============================================================================
"""
Header-Slice Extractor

Deterministic, model-free extraction:
1. Slice text into sections by known headers
2. Extract numbered lists from the diagnosis / procedure sections
3. Extract medications, allergies and metadata with the layered probes
4. Assemble one immutable Extraction with an evidence map

Each step returns its own partial result; the Extraction is built once at
the end so no intermediate state is shared between documents.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from ..config.extraction_config import ExtractionSettings, extraction_settings
from ..constants.clinical_headers import (
    FUNCTIONAL_LIMITATIONS,
    POSTOP_DIAGNOSES,
    PREOP_DIAGNOSES,
    PROCEDURES,
)
from ..constants.medication_vocabulary import MedicationVocabulary, get_medication_vocabulary
from ..core.context.extraction import (
    Diagnoses,
    DocumentInfo,
    Extraction,
    SurgeryInfo,
)
from ..utils.text_normalizer import truncate
from .allergy_extractor import AllergyExtractor
from .list_extractor import extract_numbered_list
from .medication_extractor import MedicationExtractor
from .metadata_extractor import MetadataExtractor, detect_document_type
from .section_slicer import slice_by_headers

logger = logging.getLogger(__name__)

METHOD = "header-slice-regex"


@dataclass(frozen=True)
class HeaderSliceResult:
    extraction: Extraction
    sections: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "sections", MappingProxyType(dict(self.sections)))

    @property
    def sections_found(self) -> Tuple[str, ...]:
        return tuple(self.sections)

    def has_section(self, key: str) -> bool:
        return key in self.sections


class HeaderSliceExtractor:
    """
    Orchestrates the section slicer and field extractors.

    Holds only read-only collaborators, so a single instance can serve
    concurrent documents.
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        vocabulary: Optional[MedicationVocabulary] = None
    ):
        self.settings = settings or extraction_settings
        self.vocabulary = vocabulary or get_medication_vocabulary(
            self.settings.MEDICATION_VOCABULARY_PATH
        )
        self.medication_extractor = MedicationExtractor(self.vocabulary)
        self.allergy_extractor = AllergyExtractor(self.settings.CONTINUATION_MAX_LENGTH)
        self.metadata_extractor = MetadataExtractor(self.settings.SUMMARY_LENGTH)

    def extract(self, text: str) -> HeaderSliceResult:
        """
        Extract structured facts from raw document text.

        Args:
            text: Raw document text (never modified)

        Returns:
            HeaderSliceResult with the Extraction and the section map
        """
        text = text or ""
        sections = slice_by_headers(text)
        logger.info(f"Sections found: {list(sections)}")

        preop = self._list(sections, PREOP_DIAGNOSES)
        postop = self._list(sections, POSTOP_DIAGNOSES)
        procedures = self._list(sections, PROCEDURES)
        limitations = self._list(sections, FUNCTIONAL_LIMITATIONS)

        medications, medication_evidence = self.medication_extractor.extract(text, sections)
        allergies, allergy_evidence = self.allergy_extractor.extract(text, sections)
        metadata = self.metadata_extractor.extract(text)

        doc = DocumentInfo(
            doc_type=detect_document_type(text, has_procedures=bool(procedures)),
            doc_date=metadata.surgery_date or metadata.discharge_date or metadata.admission_date,
            facility=metadata.facility,
            provider=metadata.surgeon,
            patient_name=metadata.patient_name,
            record_number=metadata.record_number,
            admission_date=metadata.admission_date,
            discharge_date=metadata.discharge_date,
        )
        surgery = SurgeryInfo(
            has_surgery=bool(procedures),
            date=metadata.surgery_date,
            surgeon=metadata.surgeon,
            procedures=procedures,
        )

        evidence = self._evidence(
            metadata.evidence,
            sections,
            allergy_evidence,
            medication_evidence,
        )

        extraction = Extraction(
            doc=doc,
            surgery=surgery,
            diagnoses=Diagnoses(preop=preop, postop=postop),
            medications=medications,
            allergies=allergies,
            functional_limitations=limitations,
            summary=self.metadata_extractor.build_summary(text),
            evidence=evidence,
        )

        logger.debug(
            f"Extracted {len(procedures)} procedures, {len(preop)} preop dx, "
            f"{len(postop)} postop dx, {len(medications)} medications, {len(allergies)} allergies"
        )
        return HeaderSliceResult(extraction=extraction, sections=sections)

    def _list(self, sections: Mapping[str, str], key: str) -> Tuple[str, ...]:
        if key not in sections:
            return ()
        return tuple(extract_numbered_list(sections[key], self.settings.CONTINUATION_MAX_LENGTH))

    def _evidence(
        self,
        metadata_evidence: Mapping[str, str],
        sections: Mapping[str, str],
        allergy_evidence: Optional[str],
        medication_evidence: Optional[str],
    ) -> Dict[str, str]:
        """Verbatim snippets, in a fixed key order."""
        length = self.settings.EVIDENCE_SNIPPET_LENGTH
        candidates = (
            ("surgery_date", metadata_evidence.get("surgery_date")),
            ("surgeon", metadata_evidence.get("surgeon")),
            ("record_number", metadata_evidence.get("record_number")),
            ("procedures_section", sections.get(PROCEDURES)),
            ("preop_dx_section", sections.get(PREOP_DIAGNOSES)),
            ("postop_dx_section", sections.get(POSTOP_DIAGNOSES)),
            ("allergies", allergy_evidence),
            ("medications", medication_evidence),
        )
        return {key: truncate(value, length) for key, value in candidates if value}
