# ============================================================================
# src/chart_extraction/core/confidence.py
# ============================================================================
"""
Confidence Scoring

Code-computed completeness metric, not a model probability:
- Document score: fixed weights per present signal, minus a penalty per
  invariant violation, floored at 0 and rounded to two decimals
- Field scores: one score per tracked field, lowered when sub-details
  (dose, reaction) are missing
- Missing fields: only reported when the text mentions the field
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..config.thresholds_config import ThresholdSettings, threshold_settings
from .context.extraction import Extraction
from .context.results import Confidence, InvariantReport

# Field score constants
PATIENT_NAME_SCORE = 0.95
RECORD_NUMBER_SCORE = 0.90
ENCOUNTER_DATE_SCORE = 0.92
SURGERY_DATE_SCORE = 0.93
PROCEDURES_WITH_EVIDENCE_SCORE = 0.95
PROCEDURES_SCORE = 0.85
DIAGNOSES_SCORE = 0.90
MEDICATIONS_FULL_SCORE = 0.85
MEDICATIONS_PARTIAL_SCORE = 0.70
MEDICATIONS_NAMES_ONLY_SCORE = 0.60
ALLERGIES_NKDA_SCORE = 0.95
ALLERGIES_FULL_SCORE = 0.85
ALLERGIES_PARTIAL_SCORE = 0.70

# Field -> phrases whose presence makes its absence worth reporting
MISSING_FIELD_CUES: Dict[str, Tuple[str, ...]] = {
    "patient_name": ("patient name", "patient:"),
    "record_number": ("mrn", "medical record"),
    "admission_date": ("admission", "admitted"),
    "discharge_date": ("discharge",),
    "surgery_date": ("date of surgery", "surgery date"),
    "procedures": ("procedure", "operation"),
    "preop_diagnoses": ("preoperative diagnos", "pre-operative diagnos"),
    "postop_diagnoses": ("postoperative diagnos", "post-operative diagnos"),
    "medications": ("medication", "analgesia", "discharge med"),
    "allergies": ("allerg",),
}


@dataclass
class ConfidenceThresholds:
    """Merge-eligibility thresholds"""
    auto_merge: float = 0.80
    review: float = 0.60

    @classmethod
    def from_settings(cls, settings: ThresholdSettings) -> "ConfidenceThresholds":
        return cls(auto_merge=settings.AUTO_MERGE_THRESHOLD, review=settings.REVIEW_THRESHOLD)

    def get_level(self, score: float) -> str:
        """
        Get confidence level from score.

        Args:
            score: Confidence score (0.0-1.0)

        Returns:
            "high" (auto-merge), "medium" (merge with review) or "low"
        """
        if score >= self.auto_merge:
            return "high"
        elif score >= self.review:
            return "medium"
        else:
            return "low"


class ConfidenceScorer:
    """
    Scores an Extraction after invariant checking.
    """

    def __init__(self, settings: Optional[ThresholdSettings] = None):
        self.settings = settings or threshold_settings
        self.thresholds = ConfidenceThresholds.from_settings(self.settings)

    def score(
        self,
        extraction: Extraction,
        report: Optional[InvariantReport] = None,
        raw_text: str = ""
    ) -> Confidence:
        """
        Compute document and field confidence.

        Args:
            extraction: Checked extraction
            report: Invariant report; each violation costs INVARIANT_PENALTY
            raw_text: Document text, used to decide which absences to report

        Returns:
            Confidence
        """
        document_score, breakdown = self.document_score(extraction, report)
        field_confidence, missing_fields = self.field_scores(extraction, raw_text)

        return Confidence(
            score=document_score,
            field_confidence=field_confidence,
            breakdown=breakdown,
            missing_fields=missing_fields,
            level=self.thresholds.get_level(document_score),
        )

    def document_score(
        self,
        extraction: Extraction,
        report: Optional[InvariantReport] = None
    ) -> Tuple[float, Dict[str, float]]:
        s = self.settings
        signals = (
            ("surgery_date", s.WEIGHT_SURGERY_DATE, bool(extraction.surgery.date)),
            ("procedures", s.WEIGHT_PROCEDURES, bool(extraction.surgery.procedures)),
            ("diagnoses", s.WEIGHT_DIAGNOSES,
             bool(extraction.diagnoses.preop or extraction.diagnoses.postop)),
            ("allergies", s.WEIGHT_ALLERGIES, bool(extraction.allergies)),
            ("medications", s.WEIGHT_MEDICATIONS, bool(extraction.medications)),
            ("metadata", s.WEIGHT_METADATA,
             bool(extraction.surgery.surgeon or extraction.doc.provider or extraction.doc.facility)),
            ("evidence", s.WEIGHT_EVIDENCE, any(extraction.evidence.values())),
        )

        breakdown: Dict[str, float] = {}
        total = 0.0
        for name, weight, present in signals:
            if present and weight > 0:
                breakdown[name] = weight
                total += weight
        total = min(1.0, total)

        violations = report.penalized_count if report else 0
        if violations:
            penalty = violations * s.INVARIANT_PENALTY
            breakdown["invariant_penalty"] = -penalty
            total = max(0.0, total - penalty)

        return round(total, 2), breakdown

    def field_scores(self, extraction: Extraction, raw_text: str = "") -> Tuple[Dict[str, float], List[str]]:
        lowered = (raw_text or "").lower()
        scores: Dict[str, float] = {}
        missing: List[str] = []

        def _mark_missing(name: str):
            scores[name] = 0.0
            if any(cue in lowered for cue in MISSING_FIELD_CUES[name]):
                missing.append(name)

        def _simple(name: str, present, value: float):
            if present:
                scores[name] = value
            else:
                _mark_missing(name)

        doc = extraction.doc
        _simple("patient_name", doc.patient_name, PATIENT_NAME_SCORE)
        _simple("record_number", doc.record_number, RECORD_NUMBER_SCORE)
        _simple("admission_date", doc.admission_date, ENCOUNTER_DATE_SCORE)
        _simple("discharge_date", doc.discharge_date, ENCOUNTER_DATE_SCORE)
        _simple("surgery_date", extraction.surgery.date, SURGERY_DATE_SCORE)

        if extraction.surgery.procedures:
            has_evidence = bool(extraction.evidence.get("procedures_section"))
            scores["procedures"] = PROCEDURES_WITH_EVIDENCE_SCORE if has_evidence else PROCEDURES_SCORE
        else:
            _mark_missing("procedures")

        _simple("preop_diagnoses", extraction.diagnoses.preop, DIAGNOSES_SCORE)
        _simple("postop_diagnoses", extraction.diagnoses.postop, DIAGNOSES_SCORE)

        medications = extraction.medications
        if medications:
            with_dose = sum(1 for m in medications if m.has_dose)
            if with_dose == len(medications):
                scores["medications"] = MEDICATIONS_FULL_SCORE
            elif with_dose:
                scores["medications"] = MEDICATIONS_PARTIAL_SCORE
                missing.append("medications_dose")
            else:
                scores["medications"] = MEDICATIONS_NAMES_ONLY_SCORE
                missing.extend(["medications_dose", "medications_frequency"])
        else:
            _mark_missing("medications")

        allergies = extraction.allergies
        if allergies:
            if extraction.has_nkda:
                scores["allergies"] = ALLERGIES_NKDA_SCORE
            elif all(a.reaction for a in allergies):
                scores["allergies"] = ALLERGIES_FULL_SCORE
            else:
                scores["allergies"] = ALLERGIES_PARTIAL_SCORE
                missing.append("allergies_reaction")
        else:
            _mark_missing("allergies")

        return scores, missing
