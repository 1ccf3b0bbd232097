# ============================================================================
# FILE: tests/unit/test_conflict_detector.py
# ============================================================================
"""
Unit tests for chart conflict detection
"""

import pytest

from chart_extraction.core.context import (
    NKDA_ALLERGY,
    Allergy,
    ChartFacts,
    ChartSnapshot,
    ConflictType,
    MergeCategory,
    Severity,
    SurgeryRecord,
)
from chart_extraction.validators.conflict_detector import ConflictDetector


@pytest.fixture
def detector():
    return ConflictDetector()


def _knee_facts(date="2025-09-18", allergies=(NKDA_ALLERGY,), record_number=None):
    return ChartFacts(
        surgeries=(SurgeryRecord(date=date, procedures=("Total Knee Replacement",)),),
        allergies=allergies,
        record_number=record_number,
    )


def test_no_conflicts_against_empty_chart(detector, empty_snapshot):
    report = detector.detect(_knee_facts(), empty_snapshot)

    assert not report.has_conflicts
    assert all(report.safe_to_merge.values())


def test_chart_allergy_vs_document_nkda(detector, allergic_snapshot):
    """Document says NKDA while the chart lists a real allergy"""
    report = detector.detect(_knee_facts(record_number="00482-19"), allergic_snapshot)

    assert len(report.conflicts) == 1
    conflict = report.conflicts[0]
    assert conflict.conflict_type == ConflictType.ALLERGY_VS_NKDA
    assert conflict.severity == Severity.WARNING
    assert conflict.existing == ("Penicillin",)
    assert report.safe_to_merge[MergeCategory.ALLERGIES] is False
    assert report.safe_to_merge[MergeCategory.PROCEDURES] is True
    assert not report.has_critical


def test_chart_nkda_vs_document_allergy(detector):
    snapshot = ChartSnapshot(allergies=["NKDA"])
    facts = _knee_facts(allergies=(Allergy("Penicillin", "hives"),))

    report = detector.detect(facts, snapshot, {"allergies": "1. Penicillin (hives)"})

    conflict = report.conflicts[0]
    assert conflict.conflict_type == ConflictType.NKDA_VS_ALLERGY
    assert conflict.is_critical
    assert conflict.incoming == ("Penicillin",)
    assert conflict.evidence == ("1. Penicillin (hives)",)
    assert report.safe_to_merge[MergeCategory.ALLERGIES] is False


def test_matching_allergies_do_not_conflict(detector):
    snapshot = ChartSnapshot(allergies=[{"substance": "Penicillin"}])
    facts = _knee_facts(allergies=(Allergy("Penicillin", "hives"),))

    assert not detector.detect(facts, snapshot).has_conflicts


def test_surgery_date_mismatch(detector):
    snapshot = ChartSnapshot(surgeries=[{"date": "2024-01-05", "procedures": ["Total knee replacement"]}])

    report = detector.detect(_knee_facts(), snapshot, {"surgery_date": "Date of Surgery: 2025-09-18"})

    conflict = report.conflicts[0]
    assert conflict.conflict_type == ConflictType.DATE_MISMATCH
    assert conflict.existing == "2024-01-05"
    assert conflict.incoming == "2025-09-18"
    assert conflict.blocked_categories == (MergeCategory.PROCEDURES,)
    assert report.safe_to_merge[MergeCategory.PROCEDURES] is False
    assert report.safe_to_merge[MergeCategory.DIAGNOSES] is True


def test_same_date_in_another_format(detector):
    snapshot = ChartSnapshot(surgeries=[{"date": "09/18/2025", "procedures": ["Total Knee Replacement"]}])

    assert not detector.detect(_knee_facts(), snapshot).has_conflicts


def test_different_surgery_is_not_a_date_conflict(detector):
    snapshot = ChartSnapshot(surgeries=[{"date": "2024-01-05", "procedure": "Appendectomy"}])

    assert not detector.detect(_knee_facts(), snapshot).has_conflicts


def test_record_number_mismatch_blocks_everything(detector):
    snapshot = ChartSnapshot(record_number="MRN-00123")

    report = detector.detect(_knee_facts(record_number="45678"), snapshot)

    conflict = report.conflicts[0]
    assert conflict.conflict_type == ConflictType.RECORD_NUMBER_MISMATCH
    assert conflict.is_critical
    assert not conflict.approvable
    assert not any(report.safe_to_merge.values())


def test_record_number_formatting_is_ignored(detector):
    snapshot = ChartSnapshot(record_number="00-123")

    assert not detector.detect(_knee_facts(record_number="00123"), snapshot).has_conflicts


def test_report_to_dict(detector, allergic_snapshot):
    data = detector.detect(_knee_facts(), allergic_snapshot).to_dict()

    assert data["has_conflicts"] is True
    assert data["conflicts"][0]["type"] == "allergy_vs_nkda"
    assert data["conflicts"][0]["incoming"] == ["NKDA"]
    assert data["safe_to_merge"] == {
        "procedures": True,
        "diagnoses": True,
        "medications": True,
        "allergies": False,
    }
