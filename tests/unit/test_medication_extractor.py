# ============================================================================
# FILE: tests/unit/test_medication_extractor.py
# ============================================================================
"""
Unit tests for vocabulary-restricted medication extraction
"""

import json

import pytest

from chart_extraction.constants.medication_vocabulary import (
    MedicationVocabulary,
    get_medication_vocabulary,
)
from chart_extraction.core.context import Medication
from chart_extraction.extractors.medication_extractor import (
    MedicationExtractor,
    extract_medications,
)
from chart_extraction.extractors.section_slicer import slice_by_headers
from chart_extraction.utils.exceptions import ConfigurationError


@pytest.fixture
def extractor():
    return MedicationExtractor()


def test_dose_route_frequency_read_per_name(extractor):
    """Details between one name and the next belong to the first name"""
    medications, evidence = extractor.extract_from_text(
        "Patient received morphine 2 mg IV q4h PRN and Zofran 4 mg IV."
    )

    assert medications == (
        Medication(name="Morphine", dose="2 mg", route="IV", frequency="q4h"),
        Medication(name="Zofran", dose="4 mg", route="IV"),
    )
    assert evidence.startswith("Patient received morphine")


def test_parenthetical_group_is_split(extractor):
    medications, _ = extractor.extract_from_text(
        "Pain controlled with IV analgesia (morphine/hydromorphone)."
    )

    assert [m.name for m in medications] == ["Morphine", "Hydromorphone"]


def test_written_out_frequency(extractor):
    medications, _ = extractor.extract_from_text("Tylenol 650 mg PO every 6 hours as needed")

    assert medications == (
        Medication(name="Tylenol", dose="650 mg", route="PO", frequency="every 6 hours"),
    )


def test_unknown_drug_is_never_reported(extractor):
    """A dose pattern alone does not make a medication"""
    medications, evidence = extractor.extract_from_text("Vitamin Z 500 mg daily")

    assert medications == ()
    assert evidence is None


def test_duplicates_are_case_insensitive(extractor):
    medications, _ = extractor.extract_from_text("Morphine given.\nmorphine repeated.\nMORPHINE held.")

    assert [m.name for m in medications] == ["Morphine"]


def test_allergy_lines_are_excluded(extractor):
    text = "Allergic to morphine (hives)\nGiven tylenol for pain"

    assert [m.name for m in extractor.extract(text)[0]] == ["Tylenol"]


def test_allergic_reaction_note_keeps_medication(extractor):
    text = "Medications:\n1. Tylenol 500 mg, no allergic reaction\n"
    medications, _ = extractor.extract(text, slice_by_headers(text))

    assert medications == (Medication(name="Tylenol", dose="500 mg"),)


def test_allergies_section_is_excluded(extractor):
    text = "Hospital Course\nStarted cefazolin.\nAllergies\n1. Codeine"
    medications, _ = extractor.extract(text, slice_by_headers(text))

    assert [m.name for m in medications] == ["Cefazolin"]


def test_medication_sections_are_preferred(extractor):
    """When a medication section yields names the rest of the text is not scanned"""
    text = "Anesthesia\nPropofol induction.\nDischarge Medications\n1. Tylenol 500 mg PO"
    medications, evidence = extractor.extract(text, slice_by_headers(text))

    assert [m.name for m in medications] == ["Tylenol"]
    assert evidence == "1. Tylenol 500 mg PO"


def test_full_text_fallback(extractor):
    text = "Anesthesia\nPropofol induction without event."
    medications, _ = extractor.extract(text, slice_by_headers(text))

    assert [m.name for m in medications] == ["Propofol"]


def test_scheduled_mention(extractor):
    medications, _ = extractor.extract_from_text("Continue scheduled acetaminophen.")

    assert [m.name for m in medications] == ["Acetaminophen"]


def test_extract_medications_helper():
    assert extract_medications("cefazolin 2 g IV q8h") == ["Cefazolin"]
    assert extract_medications("") == []


def test_custom_vocabulary_from_dict():
    vocabulary = MedicationVocabulary.from_dict({"medications": [{"name": "Examplamab"}]})

    assert extract_medications("examplamab 5 mg weekly, morphine 2 mg", vocabulary) == ["Examplamab"]


def test_vocabulary_from_json(tmp_path):
    path = tmp_path / "vocabulary.json"
    path.write_text(json.dumps({
        "medications": [{"name": "Testazole", "aliases": ["tz-1"]}],
        "class_keywords": ["antifungal"],
    }))

    vocabulary = get_medication_vocabulary(path)

    assert vocabulary.is_known("testazole")
    assert vocabulary.is_known("TZ-1")
    assert not vocabulary.is_known("morphine")
    assert vocabulary.class_keywords == ("antifungal",)


def test_builtin_table_exports_as_override_file(tmp_path):
    """An exported table can be extended and loaded back"""
    data = get_medication_vocabulary().to_dict()
    data["medications"].append({"name": "Examplamab", "aliases": []})
    path = tmp_path / "extended.json"
    path.write_text(json.dumps(data))

    vocabulary = get_medication_vocabulary(path)

    assert vocabulary.is_known("morphine")
    assert vocabulary.is_known("examplamab")
    assert vocabulary.scheduled_allow_list == get_medication_vocabulary().scheduled_allow_list


def test_invalid_vocabulary_raises():
    with pytest.raises(ConfigurationError):
        MedicationVocabulary.from_dict({"drugs": []})


def test_unreadable_vocabulary_file_raises(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(ConfigurationError):
        get_medication_vocabulary(path)


def test_builtin_vocabulary_is_shared():
    assert get_medication_vocabulary() is get_medication_vocabulary()
