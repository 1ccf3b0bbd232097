# ============================================================================
# src/chart_extraction/constants/clinical_headers.py
# ============================================================================
"""
Recognized clinical section headers and their canonical section keys.

Order matters: longer variants come before their prefixes so that
"Procedures Performed" is preferred over "Procedures".
"""

PREOP_DIAGNOSES = "preop_diagnoses"
POSTOP_DIAGNOSES = "postop_diagnoses"
PROCEDURES = "procedures"
ANESTHESIA = "anesthesia"
INDICATION = "indication"
OPERATIVE_FINDINGS = "operative_findings"
POSTOP_COURSE = "postop_course"
HOSPITAL_COURSE = "hospital_course"
FUNCTIONAL_LIMITATIONS = "functional_limitations"
DISCHARGE_PLAN = "discharge_plan"
PROGNOSIS = "prognosis"
PHYSICIAN_SIGNATURE = "physician_signature"
FOLLOW_UP = "follow_up"
MEDICATIONS = "medications"
ALLERGIES = "allergies"

# (header text, canonical key)
CLINICAL_HEADERS = (
    ("Preoperative Diagnoses", PREOP_DIAGNOSES),
    ("Preoperative Diagnosis", PREOP_DIAGNOSES),
    ("Pre-Operative Diagnoses", PREOP_DIAGNOSES),
    ("Pre-Operative Diagnosis", PREOP_DIAGNOSES),
    ("Postoperative Diagnoses", POSTOP_DIAGNOSES),
    ("Postoperative Diagnosis", POSTOP_DIAGNOSES),
    ("Post-Operative Diagnoses", POSTOP_DIAGNOSES),
    ("Post-Operative Diagnosis", POSTOP_DIAGNOSES),
    ("Procedures Performed", PROCEDURES),
    ("Procedure Performed", PROCEDURES),
    ("Procedures", PROCEDURES),
    ("Anesthesia", ANESTHESIA),
    ("Indications for Surgery", INDICATION),
    ("Indication for Surgery", INDICATION),
    ("Operative Findings", OPERATIVE_FINDINGS),
    ("Postoperative Course", POSTOP_COURSE),
    ("Post-Operative Course", POSTOP_COURSE),
    ("Hospital Course", HOSPITAL_COURSE),
    ("Functional Limitations", FUNCTIONAL_LIMITATIONS),
    ("Discharge Instructions", DISCHARGE_PLAN),
    ("Discharge Plan", DISCHARGE_PLAN),
    ("Prognosis", PROGNOSIS),
    ("Physician Signature", PHYSICIAN_SIGNATURE),
    ("Attending Physician", PHYSICIAN_SIGNATURE),
    ("Follow-Up", FOLLOW_UP),
    ("Follow Up", FOLLOW_UP),
    ("Current Medications", MEDICATIONS),
    ("Discharge Medications", MEDICATIONS),
    ("Home Medications", MEDICATIONS),
    ("Medications", MEDICATIONS),
    ("Known Allergies", ALLERGIES),
    ("Drug Allergies", ALLERGIES),
    ("Allergies", ALLERGIES),
)

# Section key -> extraction list it must populate when present
INVARIANT_SECTIONS = (PREOP_DIAGNOSES, POSTOP_DIAGNOSES, PROCEDURES)

# Sections scanned for medications before falling back to the full text
MEDICATION_SECTIONS = (MEDICATIONS, POSTOP_COURSE, HOSPITAL_COURSE, DISCHARGE_PLAN)
