# ============================================================================
# FILE: tests/unit/test_section_slicer.py
# ============================================================================
"""
Unit tests for header-based section slicing
"""

from chart_extraction.extractors.section_slicer import match_header, slice_by_headers


def test_slice_maps_headers_to_canonical_keys():
    """Each recognized header starts a section under its canonical key"""
    text = (
        "Intro line\n"
        "Preoperative Diagnoses:\n"
        "1. Osteoarthritis\n"
        "Procedures Performed\n"
        "1. Total knee replacement\n"
    )

    sections = slice_by_headers(text)

    assert sections == {
        "preop_diagnoses": "1. Osteoarthritis",
        "procedures": "1. Total knee replacement",
    }


def test_text_before_first_header_is_dropped():
    sections = slice_by_headers("Patient seen today.\nAllergies\nNKDA")

    assert list(sections) == ["allergies"]
    assert "Patient seen today" not in sections["allergies"]


def test_headers_are_case_insensitive_and_indentable():
    """Upper case, indentation and a trailing colon are all accepted"""
    text = "   PROCEDURES PERFORMED:\n1. Arthroscopy\n  allergies  \nLatex"

    sections = slice_by_headers(text)

    assert sections["procedures"] == "1. Arthroscopy"
    assert sections["allergies"] == "Latex"


def test_header_words_inside_prose_do_not_start_sections():
    text = "The procedures performed were uneventful.\nAllergies: penicillin"

    assert slice_by_headers(text) == {}


def test_duplicate_header_keeps_later_body():
    """The later occurrence wins and takes the later position"""
    text = "Medications\nmorphine\nAllergies\nNKDA\nMedications\nTylenol"

    sections = slice_by_headers(text)

    assert sections["medications"] == "Tylenol"
    assert list(sections) == ["allergies", "medications"]


def test_empty_section_body_is_kept():
    """A header with no body is still a section (empty string)"""
    text = "Procedures Performed:\n\nAllergies:\nNKDA"

    sections = slice_by_headers(text)

    assert sections["procedures"] == ""
    assert sections["allergies"] == "NKDA"


def test_body_keeps_inner_indentation():
    sections = slice_by_headers("Procedures\n1. Repair\n   with mesh\n\n")

    assert sections["procedures"] == "1. Repair\n   with mesh"


def test_empty_text():
    assert slice_by_headers("") == {}
    assert slice_by_headers(None) == {}


def test_custom_header_vocabulary():
    """A caller-supplied vocabulary replaces the built-in one"""
    text = "Plan\nRest\nProcedures\n1. Repair"

    sections = slice_by_headers(text, headers=[("Plan", "plan")])

    assert sections == {"plan": "Rest\nProcedures\n1. Repair"}


def test_match_header_variants():
    assert match_header("Discharge Medications") == "medications"
    assert match_header("Post-Operative Diagnosis:") == "postop_diagnoses"
    assert match_header("Follow-Up") == "follow_up"
    assert match_header("Allergies: NKDA") is None
