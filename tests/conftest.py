# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import pytest

from chart_extraction.config import ExtractionSettings, ThresholdSettings
from chart_extraction.core.context import ChartSnapshot
from chart_extraction.core.pipeline import SafeExtractionPipeline


OPERATIVE_REPORT = """OPERATIVE REPORT

Patient Name: Jane Doe
Date of Surgery: 2025-09-18

Preoperative Diagnoses:
1. Severe osteoarthritis, right knee

Procedures Performed:
1. Total Knee Replacement

Allergies:
NKDA
"""

OPERATIVE_REPORT_EMPTY_PROCEDURES = """OPERATIVE REPORT

Patient Name: Jane Doe
Date of Surgery: 2025-09-18

Preoperative Diagnoses:
1. Severe osteoarthritis, right knee

Procedures Performed:

Allergies:
NKDA
"""

DISCHARGE_SUMMARY = """DISCHARGE SUMMARY
Facility: St. Mary Medical Center
Patient Name: John Smith    MRN: 00482-19
Admission Date: 03/02/2025
Discharge Date: 03/06/2025
Date of Surgery: 03/03/2025
Attending Surgeon: dr Alan Grant

Preoperative Diagnosis
1. Acute appendicitis

Postoperative Diagnosis
1. Perforated appendicitis
   - localized peritonitis

Procedure Performed
1. Laparoscopic appendectomy

Hospital Course
Pain was controlled with IV analgesia (morphine/hydromorphone).
Cefazolin 2 g IV q8h for 24 hours.
Transitioned to scheduled Tylenol 650 mg PO every 6 hours.
Mild nausea and drowsiness resolved.

Allergies
1. Penicillin (hives)
2. Sulfa - rash

Follow-Up
Clinic in two weeks.
"""


@pytest.fixture
def operative_report():
    """Complete operative report (auto-merge case)"""
    return OPERATIVE_REPORT


@pytest.fixture
def operative_report_empty_procedures():
    """Operative report whose Procedures Performed section is empty"""
    return OPERATIVE_REPORT_EMPTY_PROCEDURES


@pytest.fixture
def discharge_summary():
    """Discharge summary with medications, allergies and metadata"""
    return DISCHARGE_SUMMARY


@pytest.fixture
def empty_snapshot():
    return ChartSnapshot()


@pytest.fixture
def allergic_snapshot():
    """Chart that already records a real allergy"""
    return ChartSnapshot.model_validate({
        "allergies": [{"substance": "Penicillin", "reaction": "hives"}],
        "recordNumber": "00482-19",
    })


@pytest.fixture
def extraction_settings():
    return ExtractionSettings()


@pytest.fixture
def threshold_settings():
    return ThresholdSettings()


@pytest.fixture
def pipeline():
    """Pipeline with default settings and no enrichment collaborator"""
    return SafeExtractionPipeline()
