# ============================================================================
# src/chart_extraction/validators/invariant_checker.py
# ============================================================================
"""
Invariant Checker

Structural rules of the form "header present => extracted list non-empty":
- Preoperative diagnoses header  -> preop list      (warning)
- Postoperative diagnoses header -> postop list     (warning)
- Procedures header              -> procedures list (critical)

Besides reporting, the checker applies exactly two corrections to the
Extraction it returns, each recorded as an info note:
- NKDA wording in the text with no allergy entry becomes the NKDA sentinel
- Side-effect phrases and over-long prose are removed from medications
"""

import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

from ..config.extraction_config import ExtractionSettings, extraction_settings
from ..constants.clinical_headers import POSTOP_DIAGNOSES, PREOP_DIAGNOSES, PROCEDURES
from ..constants.medication_vocabulary import MedicationVocabulary, get_medication_vocabulary
from ..core.context.enums import Severity, ViolationCode
from ..core.context.extraction import NKDA_ALLERGY, NKDA_TEXT_RE, Extraction, Medication
from ..core.context.results import InvariantReport, Violation

logger = logging.getLogger(__name__)


# (section key, violation code, severity, label)
RULES = (
    (PREOP_DIAGNOSES, ViolationCode.MISSING_PREOP_DX, Severity.WARNING, "Preoperative Diagnoses"),
    (POSTOP_DIAGNOSES, ViolationCode.MISSING_POSTOP_DX, Severity.WARNING, "Postoperative Diagnoses"),
    (PROCEDURES, ViolationCode.MISSING_PROCEDURES, Severity.CRITICAL, "Procedures"),
)


def _extracted_list(extraction: Extraction, key: str) -> Tuple[str, ...]:
    if key == PREOP_DIAGNOSES:
        return extraction.diagnoses.preop
    if key == POSTOP_DIAGNOSES:
        return extraction.diagnoses.postop
    return extraction.surgery.procedures


class InvariantChecker:
    """
    Checks structural invariants and filters implausible medications.

    Must run before confidence scoring so the score reflects the filtered
    medication list.
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

    def check(
        self,
        sections: Mapping[str, str],
        extraction: Extraction,
        raw_text: str = ""
    ) -> Tuple[Extraction, InvariantReport]:
        """
        Evaluate invariants.

        Args:
            sections: Section map from the slicer
            extraction: Extraction to check (not modified)
            raw_text: Original document text, for the NKDA auto-correction

        Returns:
            (corrected extraction, report)
        """
        violations: List[Violation] = []
        notes: List[Violation] = []
        header_flags: Dict[str, bool] = {}

        for key, code, severity, label in RULES:
            header_exists = key in sections
            extracted = bool(_extracted_list(extraction, key))
            header_flags[f"{key}_header_exists"] = header_exists
            header_flags[f"{key}_extracted"] = extracted

            if header_exists and not extracted:
                violation = Violation(
                    code=code,
                    message=f"{label} section found but extraction returned empty",
                    severity=severity,
                )
                violations.append(violation)
                logger.warning(f"Invariant violation {code.value} ({severity.value})")

        extraction = self._correct_nkda(extraction, raw_text, notes)
        extraction = self._filter_medications(extraction, notes)

        report = InvariantReport(violations=violations, notes=notes, header_flags=header_flags)
        return extraction, report

    def _correct_nkda(self, extraction: Extraction, raw_text: str, notes: List[Violation]) -> Extraction:
        if extraction.allergies or not NKDA_TEXT_RE.search(raw_text or ""):
            return extraction

        notes.append(Violation(
            code=ViolationCode.NKDA_AUTOCORRECTED,
            message="Text states no known drug allergies; allergies set to NKDA",
            severity=Severity.INFO,
        ))
        logger.info("Allergies auto-corrected to NKDA")
        return replace(extraction, allergies=(NKDA_ALLERGY,))

    def _filter_medications(self, extraction: Extraction, notes: List[Violation]) -> Extraction:
        kept: List[Medication] = []
        for medication in extraction.medications:
            if self.is_valid_medication(medication.name):
                kept.append(medication)
                continue

            notes.append(Violation(
                code=ViolationCode.INVALID_MEDICATION,
                message=f'Filtered invalid medication entry: "{medication.name}"',
                severity=Severity.INFO,
            ))
            logger.info(f"Filtered invalid medication entry: {medication.name!r}")

        if len(kept) == len(extraction.medications):
            return extraction
        return replace(extraction, medications=tuple(kept))

    def is_valid_medication(self, name: str) -> bool:
        """False for side-effect phrases and entries longer than the word limit."""
        if not name or not name.strip():
            return False
        if self.vocabulary.is_non_drug(name):
            return False
        return len(name.split()) <= self.settings.MAX_MEDICATION_WORDS
