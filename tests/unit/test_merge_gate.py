# ============================================================================
# FILE: tests/unit/test_merge_gate.py
# ============================================================================
"""
Unit tests for the merge gate and document lifecycle
"""

import pytest

from chart_extraction.core.chart_format import convert_to_chart_format
from chart_extraction.core.context import (
    NKDA_ALLERGY,
    ChartSnapshot,
    Confidence,
    ConflictReport,
    ConflictType,
    Diagnoses,
    DocumentInfo,
    DocumentStatus,
    Extraction,
    InvariantReport,
    MergeCategory,
    Medication,
    Severity,
    SurgeryInfo,
    Violation,
    ViolationCode,
)
from chart_extraction.core.merge_gate import (
    INSUFFICIENT_TEXT,
    MergeGate,
    can_transition,
    transition,
)
from chart_extraction.utils.exceptions import InvalidTransitionError, MergeBlockedError
from chart_extraction.validators.conflict_detector import ConflictDetector


@pytest.fixture
def gate():
    return MergeGate()


@pytest.fixture
def facts():
    extraction = Extraction(
        surgery=SurgeryInfo(has_surgery=True, date="2025-09-18", procedures=("Total Knee Replacement",)),
        diagnoses=Diagnoses(preop=("Severe osteoarthritis",)),
        medications=(Medication("Tylenol", dose="650 mg"),),
        allergies=(NKDA_ALLERGY,),
    )
    return convert_to_chart_format(extraction, "doc-1")


def _critical():
    return Violation(ViolationCode.MISSING_PROCEDURES, "Procedures section found but extraction returned empty", Severity.CRITICAL)


def _warning():
    return Violation(ViolationCode.MISSING_POSTOP_DX, "Postoperative Diagnoses section found but extraction returned empty", Severity.WARNING)


# ============================================================================
# LIFECYCLE
# ============================================================================

def test_allowed_transitions():
    assert transition(DocumentStatus.UPLOADED, DocumentStatus.PROCESSING) == DocumentStatus.PROCESSING
    assert can_transition(DocumentStatus.PROCESSING, DocumentStatus.ERROR)
    assert can_transition(DocumentStatus.NEEDS_REVIEW, DocumentStatus.MERGED)
    assert can_transition("error", "processing")


def test_illegal_transitions():
    assert not can_transition(DocumentStatus.UPLOADED, DocumentStatus.MERGED)
    assert not can_transition(DocumentStatus.MERGED, DocumentStatus.PROCESSING)

    with pytest.raises(InvalidTransitionError) as exc_info:
        transition(DocumentStatus.ERROR, DocumentStatus.MERGED)

    assert exc_info.value.current == "error"
    assert exc_info.value.target == "merged"


# ============================================================================
# DECISION
# ============================================================================

def test_high_confidence_auto_merges(gate):
    decision = gate.decide(Confidence(score=0.9), InvariantReport(), ConflictReport())

    assert decision.can_merge
    assert not decision.needs_review
    assert decision.auto_merge
    assert decision.status == DocumentStatus.EXTRACTED
    assert decision.reasons == ()
    assert decision.eligible_categories == list(MergeCategory)


def test_medium_confidence_merges_with_review(gate):
    decision = gate.decide(Confidence(score=0.7), InvariantReport())

    assert decision.can_merge
    assert decision.needs_review
    assert not decision.auto_merge
    assert decision.status == DocumentStatus.EXTRACTED
    assert decision.reasons == ("Confidence below auto-merge threshold - review recommended",)


def test_low_confidence_blocks(gate):
    decision = gate.decide(Confidence(score=0.45), InvariantReport())

    assert not decision.can_merge
    assert decision.needs_review
    assert decision.status == DocumentStatus.NEEDS_REVIEW
    assert decision.reasons == ("Confidence too low (45%)",)


def test_threshold_boundaries_are_inclusive(gate):
    assert gate.decide(Confidence(score=0.8), InvariantReport()).auto_merge
    assert gate.decide(Confidence(score=0.6), InvariantReport()).can_merge


def test_critical_violation_blocks_despite_score(gate):
    decision = gate.decide(Confidence(score=0.95), InvariantReport(violations=[_critical()]))

    assert not decision.can_merge
    assert not decision.eligible
    assert decision.status == DocumentStatus.NEEDS_REVIEW
    assert decision.reasons[0] == "Procedures section found but extraction returned empty"


def test_warning_violation_is_surfaced_only(gate):
    decision = gate.decide(Confidence(score=0.85), InvariantReport(violations=[_warning()]))

    assert decision.can_merge
    assert decision.auto_merge
    assert decision.reasons == ("Postoperative Diagnoses section found but extraction returned empty",)


def test_conflict_forces_review_and_blocks_category(gate, facts, allergic_snapshot):
    conflicts = ConflictDetector().detect(facts, allergic_snapshot)

    decision = gate.decide(Confidence(score=0.9), InvariantReport(), conflicts)

    assert decision.can_merge
    assert decision.needs_review
    assert not decision.auto_merge
    assert decision.status == DocumentStatus.NEEDS_REVIEW
    assert MergeCategory.ALLERGIES not in decision.eligible_categories
    assert MergeCategory.PROCEDURES in decision.eligible_categories


def test_every_category_blocked(gate):
    conflicts = ConflictDetector().detect(
        convert_to_chart_format(Extraction(doc=DocumentInfo(record_number="45678")), "doc-2"),
        ChartSnapshot(record_number="12345"),
    )

    decision = gate.decide(Confidence(score=0.9), InvariantReport(), conflicts)

    assert not decision.can_merge
    assert decision.eligible
    assert decision.reasons[-1] == "Every category is blocked by conflicts"


def test_insufficient_text(gate):
    decision = gate.insufficient_text(12)

    assert not decision.can_merge
    assert decision.status == DocumentStatus.NEEDS_REVIEW
    assert decision.reasons == (INSUFFICIENT_TEXT,)


# ============================================================================
# SELECTIVE MERGE
# ============================================================================

def test_plan_merge_all_categories(gate, facts):
    decision = gate.decide(Confidence(score=0.9), InvariantReport())

    plan = gate.plan_merge(decision, facts, patient_id="p-1")

    assert plan.categories == tuple(MergeCategory)
    assert plan.status == DocumentStatus.MERGED
    assert plan.deltas.patient_id == "p-1"
    assert plan.deltas.source_document_id == "doc-1"
    assert plan.deltas.surgeries[0].procedures == ("Total Knee Replacement",)


def test_plan_merge_respects_selection(gate, facts):
    decision = gate.decide(Confidence(score=0.9), InvariantReport())

    plan = gate.plan_merge(decision, facts, selection={"medications": False})

    assert MergeCategory.MEDICATIONS not in plan.categories
    assert plan.deltas.medications == ()
    assert plan.skipped[MergeCategory.MEDICATIONS] == "excluded by selection"
    assert plan.to_dict()["chart_deltas"]["medications"] == []


def test_plan_merge_skips_conflicted_category(gate, facts, allergic_snapshot):
    conflicts = ConflictDetector().detect(facts, allergic_snapshot)
    decision = gate.decide(Confidence(score=0.9), InvariantReport(), conflicts)

    plan = gate.plan_merge(decision, facts, conflicts=conflicts)

    assert MergeCategory.ALLERGIES not in plan.categories
    assert plan.deltas.allergies == ()


def test_approved_conflict_unblocks_category(gate, facts, allergic_snapshot):
    conflicts = ConflictDetector().detect(facts, allergic_snapshot)
    decision = gate.decide(Confidence(score=0.9), InvariantReport(), conflicts)

    plan = gate.plan_merge(
        decision, facts,
        approved_conflicts=[ConflictType.ALLERGY_VS_NKDA],
        conflicts=conflicts,
    )

    assert MergeCategory.ALLERGIES in plan.categories
    assert plan.deltas.allergies == (NKDA_ALLERGY,)


def test_record_number_conflict_cannot_be_approved(gate):
    facts = convert_to_chart_format(Extraction(doc=DocumentInfo(record_number="45678")), "doc-2")
    conflicts = ConflictDetector().detect(facts, ChartSnapshot(record_number="12345"))
    decision = gate.decide(Confidence(score=0.9), InvariantReport(), conflicts)

    with pytest.raises(MergeBlockedError):
        gate.plan_merge(decision, facts, approved_conflicts=["mrn_mismatch"], conflicts=conflicts)


def test_plan_merge_refuses_ineligible_document(gate, facts):
    decision = gate.decide(Confidence(score=0.3), InvariantReport())

    with pytest.raises(MergeBlockedError) as exc_info:
        gate.plan_merge(decision, facts)

    assert exc_info.value.reasons == ["Confidence too low (30%)"]


def test_plan_merge_refuses_empty_selection(gate, facts):
    decision = gate.decide(Confidence(score=0.9), InvariantReport())

    with pytest.raises(MergeBlockedError):
        gate.plan_merge(decision, facts, selection={c: False for c in MergeCategory})
