# ============================================================================
# FILE: tests/unit/test_context.py
# ============================================================================
"""
Unit tests for extraction, chart and request models
"""

import dataclasses

import pytest

from chart_extraction.core.chart_format import convert_to_chart_format
from chart_extraction.core.context import (
    NKDA_ALLERGY,
    Allergy,
    ChartSnapshot,
    Diagnoses,
    DocumentInfo,
    Extraction,
    Medication,
    PartialExtraction,
    ProcessingRequest,
    SurgeryInfo,
    SurgeryRecord,
    fill_missing,
    normalize_allergy,
    normalize_diagnosis,
    normalize_medication,
    normalize_surgery,
    snapshot_from_payload,
)
from chart_extraction.utils.exceptions import InvalidInputError


# ============================================================================
# SHAPE NORMALIZERS
# ============================================================================

def test_normalize_medication_shapes():
    assert normalize_medication("Tylenol") == Medication("Tylenol")
    assert normalize_medication({"name": "Tylenol", "dosage": "500 mg", "route": "PO"}) == Medication(
        "Tylenol", dose="500 mg", route="PO"
    )
    medication = Medication("Morphine")
    assert normalize_medication(medication) is medication


@pytest.mark.parametrize("value", [42, "  ", {"dose": "5 mg"}])
def test_normalize_medication_rejects_bad_shapes(value):
    with pytest.raises(ValueError):
        normalize_medication(value)


def test_normalize_allergy_shapes():
    assert normalize_allergy("Latex") == Allergy("Latex")
    assert normalize_allergy({"name": "Sulfa", "reaction": "rash"}) == Allergy("Sulfa", "rash")
    assert normalize_allergy({"substance": "NKDA"}).is_nkda
    assert normalize_allergy("NKA").is_nkda
    assert not normalize_allergy("Penicillin").is_nkda


def test_normalize_diagnosis_shapes():
    assert normalize_diagnosis(" Obesity ") == "Obesity"
    assert normalize_diagnosis({"description": "Hypertension"}) == "Hypertension"
    with pytest.raises(ValueError):
        normalize_diagnosis(["Obesity"])


def test_normalize_surgery_shapes():
    assert normalize_surgery("Appendectomy") == SurgeryRecord(procedures=("Appendectomy",))
    assert normalize_surgery({"date": "2024-01-05", "procedure": "Appendectomy"}) == SurgeryRecord(
        date="2024-01-05", procedures=("Appendectomy",)
    )
    assert normalize_surgery({"procedures": "Hernia repair"}).procedures == ("Hernia repair",)


# ============================================================================
# CHART SNAPSHOT AND REQUEST
# ============================================================================

def test_snapshot_from_camel_case_payload():
    snapshot = ChartSnapshot.model_validate({
        "surgeries": [{"date": "2024-01-05", "procedures": ["Appendectomy"], "surgeon": "Dr. Lee"}],
        "problemList": ["Obesity", {"name": "Hypertension"}],
        "medications": ["Lisinopril", {"name": "Metformin", "dose": "500 mg"}],
        "allergies": ["Penicillin", {"substance": "NKDA"}],
        "recordNumber": 12345,
    })

    assert snapshot.surgeries[0].surgeon == "Dr. Lee"
    assert snapshot.problem_list == ["Obesity", "Hypertension"]
    assert snapshot.medications[1] == Medication("Metformin", dose="500 mg")
    assert snapshot.record_number == "12345"
    assert snapshot.has_nkda
    assert [a.substance for a in snapshot.real_allergies] == ["Penicillin"]


def test_snapshot_defaults_are_empty():
    snapshot = ChartSnapshot()

    assert snapshot.surgeries == []
    assert snapshot.allergies == []
    assert snapshot.record_number is None


def test_snapshot_rejects_bad_shapes():
    with pytest.raises(InvalidInputError):
        snapshot_from_payload({"medications": "Tylenol"})
    with pytest.raises(InvalidInputError):
        snapshot_from_payload({"allergies": [3.5]})

    assert snapshot_from_payload(None) == ChartSnapshot()


def test_request_from_payload():
    request = ProcessingRequest.from_payload({"raw_text": None, "document_id": 7})

    assert request.raw_text == ""
    assert request.document_id == "7"
    assert request.patient_id is None
    assert request.chart_snapshot == ChartSnapshot()


def test_request_payload_must_be_a_mapping():
    with pytest.raises(InvalidInputError):
        ProcessingRequest.from_payload(["rawText"])


# ============================================================================
# EXTRACTION
# ============================================================================

def test_extraction_is_immutable():
    extraction = Extraction(medications=[Medication("Tylenol")], evidence={"allergies": "NKDA"})

    assert extraction.medications == (Medication("Tylenol"),)
    with pytest.raises(dataclasses.FrozenInstanceError):
        extraction.summary = "changed"
    with pytest.raises(TypeError):
        extraction.evidence["allergies"] = "changed"


def test_real_allergies_excludes_nkda():
    extraction = Extraction(allergies=(NKDA_ALLERGY, Allergy("Latex")))

    assert extraction.has_nkda
    assert extraction.real_allergies == (Allergy("Latex"),)


def test_diagnoses_all_dedupes_case_insensitively():
    diagnoses = Diagnoses(preop=("Appendicitis", "Obesity"), postop=("appendicitis", "Peritonitis"))

    assert diagnoses.all() == ("Appendicitis", "Obesity", "Peritonitis")


def test_fill_missing_never_overrides():
    extraction = Extraction(
        surgery=SurgeryInfo(has_surgery=True, procedures=("Appendectomy",)),
        medications=(),
    )
    partial = PartialExtraction(
        procedures=("Something else",),
        medications=(Medication("Tylenol"),),
        surgeon="Dr. Lee",
    )

    filled_extraction, filled = fill_missing(extraction, partial)

    assert filled == ["surgeon", "medications"]
    assert filled_extraction.surgery.procedures == ("Appendectomy",)
    assert filled_extraction.surgery.surgeon == "Dr. Lee"
    assert filled_extraction.doc.provider == "Dr. Lee"
    assert filled_extraction.medications == (Medication("Tylenol"),)
    assert extraction.medications == ()


def test_fill_missing_with_nothing_to_offer():
    extraction = Extraction()

    assert fill_missing(extraction, PartialExtraction()) == (extraction, [])


# ============================================================================
# CHART FORMAT
# ============================================================================

def test_convert_to_chart_format():
    extraction = Extraction(
        doc=DocumentInfo(provider="Dr. Grant", record_number="00482-19"),
        surgery=SurgeryInfo(has_surgery=True, date="2025-03-03", procedures=("Appendectomy",)),
        diagnoses=Diagnoses(preop=("Appendicitis",), postop=("Appendicitis",)),
        summary="Discharge summary",
    )

    facts = convert_to_chart_format(extraction, 11)

    assert facts.surgeries == (SurgeryRecord(
        date="2025-03-03",
        procedures=("Appendectomy",),
        surgeon="Dr. Grant",
        source_document_id="11",
    ),)
    assert facts.diagnoses == ("Appendicitis",)
    assert facts.record_number == "00482-19"
    assert facts.to_dict()["surgeries"][0]["source_document_id"] == "11"


def test_no_surgery_record_without_surgery():
    assert convert_to_chart_format(Extraction()).surgeries == ()


def test_fill_missing_ignores_fields_not_requested():
    extraction = Extraction()
    partial = PartialExtraction(
        medications=(Medication("Tylenol"),),
        surgery_date="2020-01-01",
        surgeon="Dr. Lee",
        postop_diagnoses=("Appendicitis",),
    )

    filled_extraction, filled = fill_missing(extraction, partial, requested=["medications"])

    assert filled == ["medications"]
    assert filled_extraction.surgery.date is None
    assert filled_extraction.surgery.surgeon is None
    assert filled_extraction.diagnoses.postop == ()
    assert filled_extraction.doc.doc_date is None
