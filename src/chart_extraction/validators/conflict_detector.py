# ============================================================================
# src/chart_extraction/validators/conflict_detector.py
# ============================================================================
"""
Conflict Detector

Diffs incoming chart-format facts against the patient's stored chart.
Conflicts are reported, never resolved:

- nkda_vs_allergy:  chart says NKDA, document lists real allergies
                    (critical, blocks allergies)
- allergy_vs_nkda:  chart has real allergies, document says NKDA only
                    (warning, blocks allergies)
- date_mismatch:    same surgery, different date (warning, blocks procedures)
- mrn_mismatch:     record numbers differ (critical, blocks every category)
"""

import logging
from typing import Dict, List, Mapping, Optional

from ..config.thresholds_config import ThresholdSettings, threshold_settings
from ..core.context.chart import ChartFacts, ChartSnapshot, SurgeryRecord
from ..core.context.enums import ConflictType, MergeCategory, Severity
from ..core.context.extraction import NKDA
from ..core.context.results import Conflict, ConflictReport
from ..utils.text_normalizer import digits_only, names_similar, normalize_date

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Compares extracted facts to a ChartSnapshot."""

    def __init__(self, settings: Optional[ThresholdSettings] = None):
        self.settings = settings or threshold_settings

    def detect(
        self,
        facts: ChartFacts,
        snapshot: ChartSnapshot,
        evidence: Optional[Mapping[str, str]] = None
    ) -> ConflictReport:
        """
        Detect conflicts between incoming facts and the stored chart.

        Args:
            facts: Chart-format facts from the current document
            snapshot: Patient's current chart (read only)
            evidence: Extraction evidence map, used as conflict evidence

        Returns:
            ConflictReport with per-category safe-to-merge flags
        """
        evidence = evidence or {}
        conflicts: List[Conflict] = []

        conflicts.extend(self._allergy_conflicts(facts, snapshot, evidence))
        conflicts.extend(self._surgery_date_conflicts(facts, snapshot, evidence))
        conflicts.extend(self._record_number_conflicts(facts, snapshot, evidence))

        safe: Dict[MergeCategory, bool] = {category: True for category in MergeCategory}
        for conflict in conflicts:
            for category in conflict.blocked_categories:
                safe[category] = False
            logger.warning(f"Conflict {conflict.conflict_type.value} ({conflict.severity.value}): {conflict.message}")

        return ConflictReport(conflicts=conflicts, safe_to_merge=safe)

    def _allergy_conflicts(
        self,
        facts: ChartFacts,
        snapshot: ChartSnapshot,
        evidence: Mapping[str, str]
    ) -> List[Conflict]:
        conflicts = []
        incoming_real = [a.substance for a in facts.allergies if not a.is_nkda and a.substance]
        incoming_nkda = any(a.is_nkda for a in facts.allergies)
        existing_real = [a.substance for a in snapshot.real_allergies]
        pointer = tuple(v for v in (evidence.get("allergies"),) if v)

        if snapshot.has_nkda and incoming_real:
            conflicts.append(Conflict(
                field="allergies",
                conflict_type=ConflictType.NKDA_VS_ALLERGY,
                existing=(NKDA,),
                incoming=tuple(incoming_real),
                severity=Severity.CRITICAL,
                message=f"Chart says NKDA but document lists allergies: {', '.join(incoming_real)}",
                blocked_categories=(MergeCategory.ALLERGIES,),
                evidence=pointer or tuple(incoming_real),
            ))

        if existing_real and incoming_nkda and not incoming_real:
            conflicts.append(Conflict(
                field="allergies",
                conflict_type=ConflictType.ALLERGY_VS_NKDA,
                existing=tuple(existing_real),
                incoming=(NKDA,),
                severity=Severity.WARNING,
                message=f"Chart has allergies ({', '.join(existing_real)}) but document says NKDA",
                blocked_categories=(MergeCategory.ALLERGIES,),
                evidence=pointer,
            ))

        return conflicts

    def _surgery_date_conflicts(
        self,
        facts: ChartFacts,
        snapshot: ChartSnapshot,
        evidence: Mapping[str, str]
    ) -> List[Conflict]:
        conflicts = []
        pointer = tuple(v for v in (evidence.get("surgery_date"),) if v)

        for incoming in facts.surgeries:
            incoming_date = normalize_date(incoming.date)
            if not incoming_date:
                continue

            for existing in snapshot.surgeries:
                existing_date = normalize_date(existing.date)
                if not existing_date or existing_date == incoming_date:
                    continue
                if not self._same_surgery(incoming, existing):
                    continue

                conflicts.append(Conflict(
                    field="surgery_date",
                    conflict_type=ConflictType.DATE_MISMATCH,
                    existing=existing.date,
                    incoming=incoming.date,
                    severity=Severity.WARNING,
                    message=f"Surgery date conflict: chart has {existing.date}, document says {incoming.date}",
                    blocked_categories=(MergeCategory.PROCEDURES,),
                    evidence=pointer or incoming.procedures,
                ))

        return conflicts

    def _same_surgery(self, incoming: SurgeryRecord, existing: SurgeryRecord) -> bool:
        """Any procedure pair contains one another or overlaps by tokens."""
        threshold = self.settings.PROCEDURE_OVERLAP_THRESHOLD
        return any(
            names_similar(new, old, threshold)
            for new in incoming.procedures
            for old in existing.procedures
        )

    def _record_number_conflicts(
        self,
        facts: ChartFacts,
        snapshot: ChartSnapshot,
        evidence: Mapping[str, str]
    ) -> List[Conflict]:
        existing = digits_only(snapshot.record_number)
        incoming = digits_only(facts.record_number)
        if not existing or not incoming or existing == incoming:
            return []

        return [Conflict(
            field="record_number",
            conflict_type=ConflictType.RECORD_NUMBER_MISMATCH,
            existing=snapshot.record_number,
            incoming=facts.record_number,
            severity=Severity.CRITICAL,
            message=(
                f"Record number mismatch: chart has {snapshot.record_number}, "
                f"document has {facts.record_number}. Possible wrong patient"
            ),
            blocked_categories=tuple(MergeCategory),
            evidence=tuple(v for v in (evidence.get("record_number"),) if v),
        )]
