# ============================================================================
# src/chart_extraction/core/merge_gate.py
# ============================================================================
"""
Merge Gate

Document lifecycle:

    uploaded -> processing -> {extracted | needs_review | error} -> merged

The gate turns confidence, invariants and conflicts into a MergeDecision
and, on request, into a MergePlan for a selective merge. It never writes
to the chart; the MergePlan carries the ChartDeltas the persistence layer
appends.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..config.thresholds_config import ThresholdSettings, threshold_settings
from ..utils.exceptions import InvalidTransitionError, MergeBlockedError
from .context.chart import ChartFacts, SurgeryRecord
from .context.enums import ConflictType, DocumentStatus, MergeCategory, Severity
from .context.extraction import Allergy, Medication
from .context.results import (
    Confidence,
    ConflictReport,
    InvariantReport,
    MergeDecision,
    blocked_decision,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_TEXT = "insufficient text"

ALLOWED_TRANSITIONS: Mapping[DocumentStatus, Tuple[DocumentStatus, ...]] = MappingProxyType({
    DocumentStatus.UPLOADED: (DocumentStatus.PROCESSING,),
    DocumentStatus.PROCESSING: (
        DocumentStatus.EXTRACTED,
        DocumentStatus.NEEDS_REVIEW,
        DocumentStatus.ERROR,
    ),
    DocumentStatus.EXTRACTED: (DocumentStatus.MERGED, DocumentStatus.NEEDS_REVIEW),
    DocumentStatus.NEEDS_REVIEW: (DocumentStatus.MERGED, DocumentStatus.PROCESSING),
    DocumentStatus.ERROR: (DocumentStatus.PROCESSING,),
    DocumentStatus.MERGED: (),
})


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return DocumentStatus(target) in ALLOWED_TRANSITIONS[DocumentStatus(current)]


def transition(current: DocumentStatus, target: DocumentStatus) -> DocumentStatus:
    """
    Validate a status change.

    Raises:
        InvalidTransitionError: target not reachable from current
    """
    current = DocumentStatus(current)
    target = DocumentStatus(target)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move document from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )
    return target


@dataclass(frozen=True)
class ChartDeltas:
    """Per-category lists to append to the chart. Excluded categories are empty."""
    patient_id: Optional[str]
    source_document_id: Optional[str]
    surgeries: Tuple[SurgeryRecord, ...] = ()
    diagnoses: Tuple[str, ...] = ()
    medications: Tuple[Medication, ...] = ()
    allergies: Tuple[Allergy, ...] = ()

    def is_empty(self) -> bool:
        return not (self.surgeries or self.diagnoses or self.medications or self.allergies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "source_document_id": self.source_document_id,
            "chart_deltas": {
                "surgeries": [s.to_dict() for s in self.surgeries],
                "diagnoses": list(self.diagnoses),
                "medications": [m.to_dict() for m in self.medications],
                "allergies": [a.to_dict() for a in self.allergies],
            },
        }


@dataclass(frozen=True)
class MergePlan:
    categories: Tuple[MergeCategory, ...]
    deltas: ChartDeltas
    skipped: Mapping[MergeCategory, str] = field(default_factory=dict)
    status: DocumentStatus = DocumentStatus.MERGED

    def __post_init__(self):
        object.__setattr__(self, "skipped", MappingProxyType(dict(self.skipped)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [c.value for c in self.categories],
            "skipped": {c.value: reason for c, reason in self.skipped.items()},
            "status": self.status.value,
            **self.deltas.to_dict(),
        }


CategoryKey = Union[str, MergeCategory]


class MergeGate:
    """
    Combines confidence, invariants and conflicts into a merge decision.
    """

    def __init__(self, settings: Optional[ThresholdSettings] = None):
        self.settings = settings or threshold_settings

    def decide(
        self,
        confidence: Confidence,
        report: InvariantReport,
        conflicts: Optional[ConflictReport] = None
    ) -> MergeDecision:
        """
        Decide merge eligibility.

        - critical invariant violation: cannot merge
        - score below REVIEW_THRESHOLD: cannot merge
        - score below AUTO_MERGE_THRESHOLD: may merge, flagged for review
        - any conflict: flagged for review, affected categories blocked
        - every category blocked: cannot merge

        Returns:
            MergeDecision
        """
        conflicts = conflicts or ConflictReport()
        reasons: List[str] = []
        eligible = True
        score = round(confidence.score, 2)

        for violation in report.violations:
            if violation.severity == Severity.CRITICAL:
                eligible = False
                reasons.append(violation.message)
        for violation in report.violations:
            if violation.severity == Severity.WARNING:
                reasons.append(violation.message)

        if score < self.settings.REVIEW_THRESHOLD:
            eligible = False
            reasons.append(f"Confidence too low ({score * 100:.0f}%)")
        elif score < self.settings.AUTO_MERGE_THRESHOLD:
            reasons.append("Confidence below auto-merge threshold - review recommended")

        for conflict in conflicts.conflicts:
            reasons.append(conflict.message)

        safe = {c: conflicts.safe_to_merge.get(c, False) for c in MergeCategory}
        any_safe = any(safe.values())
        if eligible and not any_safe:
            reasons.append("Every category is blocked by conflicts")

        can_merge = eligible and any_safe
        needs_review = (
            not can_merge
            or score < self.settings.AUTO_MERGE_THRESHOLD
            or conflicts.has_conflicts
        )
        status = (
            DocumentStatus.EXTRACTED
            if can_merge and not conflicts.has_conflicts
            else DocumentStatus.NEEDS_REVIEW
        )

        decision = MergeDecision(
            can_merge=can_merge,
            needs_review=needs_review,
            status=status,
            reasons=reasons,
            safe_to_merge=safe,
            auto_merge=can_merge and not needs_review,
            eligible=eligible,
        )
        logger.info(
            f"Merge decision: status={status.value} can_merge={can_merge} "
            f"needs_review={needs_review} score={score:.2f}"
        )
        return decision

    def insufficient_text(self, length: int) -> MergeDecision:
        logger.info(f"Text too short for extraction ({length} chars)")
        return blocked_decision(INSUFFICIENT_TEXT)

    def plan_merge(
        self,
        decision: MergeDecision,
        facts: ChartFacts,
        selection: Optional[Mapping[CategoryKey, bool]] = None,
        approved_conflicts: Iterable[Union[str, ConflictType]] = (),
        conflicts: Optional[ConflictReport] = None,
        patient_id: Optional[str] = None
    ) -> MergePlan:
        """
        Build the selective merge for a decided document.

        A category is written when the decision allows merging, no
        unapproved conflict blocks it, and the caller did not set it to
        False in `selection`. A reviewer may approve any conflict except a
        record-number mismatch.

        Args:
            decision: Result of decide()
            facts: Chart-format facts of the document
            selection: Per-category opt-in; missing keys count as True
            approved_conflicts: Conflict types the reviewer accepted
            conflicts: Conflict report the decision was based on
            patient_id: Patient the deltas are written to

        Returns:
            MergePlan

        Raises:
            MergeBlockedError: nothing may be merged
            InvalidTransitionError: decision status cannot move to merged
        """
        status = transition(decision.status, DocumentStatus.MERGED)

        if not decision.eligible:
            raise MergeBlockedError(
                "Document is not eligible for merge",
                reasons=list(decision.reasons),
            )

        selected = self._normalize_selection(selection)
        blocked = self._blocked_categories(decision, conflicts, approved_conflicts)

        categories: List[MergeCategory] = []
        skipped: Dict[MergeCategory, str] = {}
        for category in MergeCategory:
            if category in blocked:
                skipped[category] = blocked[category]
            elif not selected.get(category, True):
                skipped[category] = "excluded by selection"
            else:
                categories.append(category)

        if not categories:
            raise MergeBlockedError(
                "No category is eligible for merge",
                reasons=[f"{c.value}: {reason}" for c, reason in skipped.items()],
            )

        deltas = ChartDeltas(
            patient_id=patient_id,
            source_document_id=facts.source_document_id,
            surgeries=facts.surgeries if MergeCategory.PROCEDURES in categories else (),
            diagnoses=facts.diagnoses if MergeCategory.DIAGNOSES in categories else (),
            medications=facts.medications if MergeCategory.MEDICATIONS in categories else (),
            allergies=facts.allergies if MergeCategory.ALLERGIES in categories else (),
        )
        logger.info(f"Merge plan: {[c.value for c in categories]} (skipped {[c.value for c in skipped]})")
        return MergePlan(categories=tuple(categories), deltas=deltas, skipped=skipped, status=status)

    @staticmethod
    def _normalize_selection(selection: Optional[Mapping[CategoryKey, bool]]) -> Dict[MergeCategory, bool]:
        if not selection:
            return {}
        return {MergeCategory(key): value is not False for key, value in selection.items()}

    @staticmethod
    def _blocked_categories(
        decision: MergeDecision,
        conflicts: Optional[ConflictReport],
        approved_conflicts: Iterable[Union[str, ConflictType]]
    ) -> Dict[MergeCategory, str]:
        if conflicts is None:
            # Only the decision's flags are known
            return {
                c: "blocked by conflict"
                for c in MergeCategory
                if not decision.safe_to_merge.get(c, False)
            }

        approved = {ConflictType(a) for a in approved_conflicts}
        blocked: Dict[MergeCategory, str] = {}
        for conflict in conflicts.conflicts:
            if conflict.approvable and conflict.conflict_type in approved:
                continue
            for category in conflict.blocked_categories:
                blocked.setdefault(category, f"blocked by {conflict.conflict_type.value} conflict")
        return blocked
