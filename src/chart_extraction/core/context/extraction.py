# ============================================================================
# src/chart_extraction/core/context/extraction.py
# ============================================================================
"""
Structured extraction model.

Every part is a frozen dataclass with tuple-valued lists. Extractors return
their own partial pieces and the header-slice extractor assembles them into
one Extraction; later stages derive new instances with dataclasses.replace
instead of mutating shared state.
"""

import re
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Collection, Dict, List, Mapping, Optional, Tuple

UNKNOWN = "unknown"
NKDA = "NKDA"

# NKDA, NKA, "no known (drug) allergy/allergies"
NKDA_TEXT_RE = re.compile(
    r"\bNKD?A\b|\bno\s+known\s+(?:drug\s+)?allerg(?:y|ies)\b",
    re.IGNORECASE
)


def is_nkda_substance(substance: Optional[str]) -> bool:
    """True for the NKDA sentinel or any 'no known ... allergies' wording."""
    lowered = (substance or "").lower()
    return "no known" in lowered or bool(NKDA_TEXT_RE.search(lowered))


def _freeze(instance, *names: str) -> None:
    for name in names:
        value = getattr(instance, name)
        if value is not None and not isinstance(value, tuple):
            object.__setattr__(instance, name, tuple(value))


@dataclass(frozen=True)
class Medication:
    name: str
    dose: str = UNKNOWN
    route: str = UNKNOWN
    frequency: str = UNKNOWN

    @property
    def has_dose(self) -> bool:
        return bool(self.dose) and self.dose != UNKNOWN

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "dose": self.dose,
            "route": self.route,
            "frequency": self.frequency,
        }


@dataclass(frozen=True)
class Allergy:
    substance: str
    reaction: Optional[str] = None

    @property
    def is_nkda(self) -> bool:
        return is_nkda_substance(self.substance)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"substance": self.substance, "reaction": self.reaction}


NKDA_ALLERGY = Allergy(substance=NKDA)


@dataclass(frozen=True)
class DocumentInfo:
    doc_type: Optional[str] = None
    doc_date: Optional[str] = None
    facility: Optional[str] = None
    provider: Optional[str] = None
    patient_name: Optional[str] = None
    record_number: Optional[str] = None
    admission_date: Optional[str] = None
    discharge_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class SurgeryInfo:
    has_surgery: bool = False
    date: Optional[str] = None
    surgeon: Optional[str] = None
    procedures: Tuple[str, ...] = ()

    def __post_init__(self):
        _freeze(self, "procedures")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_surgery": self.has_surgery,
            "date": self.date,
            "surgeon": self.surgeon,
            "procedures": list(self.procedures),
        }


@dataclass(frozen=True)
class Diagnoses:
    preop: Tuple[str, ...] = ()
    postop: Tuple[str, ...] = ()

    def __post_init__(self):
        _freeze(self, "preop", "postop")

    def all(self) -> Tuple[str, ...]:
        """Preop followed by postop, first occurrence wins."""
        seen = set()
        combined = []
        for dx in self.preop + self.postop:
            key = dx.lower()
            if key not in seen:
                seen.add(key)
                combined.append(dx)
        return tuple(combined)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"preop": list(self.preop), "postop": list(self.postop)}


@dataclass(frozen=True)
class Extraction:
    """Complete structured output for one document."""
    doc: DocumentInfo = field(default_factory=DocumentInfo)
    surgery: SurgeryInfo = field(default_factory=SurgeryInfo)
    diagnoses: Diagnoses = field(default_factory=Diagnoses)
    medications: Tuple[Medication, ...] = ()
    allergies: Tuple[Allergy, ...] = ()
    functional_limitations: Tuple[str, ...] = ()
    summary: Optional[str] = None
    evidence: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        _freeze(self, "medications", "allergies", "functional_limitations")
        object.__setattr__(self, "evidence", MappingProxyType(dict(self.evidence)))

    @property
    def has_nkda(self) -> bool:
        return any(a.is_nkda for a in self.allergies)

    @property
    def real_allergies(self) -> Tuple[Allergy, ...]:
        return tuple(a for a in self.allergies if not a.is_nkda and a.substance)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "doc": self.doc.to_dict(),
            "surgery": self.surgery.to_dict(),
            "diagnoses": self.diagnoses.to_dict(),
            "medications": [m.to_dict() for m in self.medications],
            "allergies": [a.to_dict() for a in self.allergies],
            "functional_limitations": list(self.functional_limitations),
            "summary": self.summary,
            "evidence": dict(self.evidence),
        }


@dataclass(frozen=True)
class PartialExtraction:
    """
    Values proposed by an enrichment source.

    None / empty means "nothing to offer" for that field.
    """
    procedures: Tuple[str, ...] = ()
    preop_diagnoses: Tuple[str, ...] = ()
    postop_diagnoses: Tuple[str, ...] = ()
    medications: Tuple[Medication, ...] = ()
    allergies: Tuple[Allergy, ...] = ()
    surgery_date: Optional[str] = None
    surgeon: Optional[str] = None
    facility: Optional[str] = None
    patient_name: Optional[str] = None
    record_number: Optional[str] = None

    def __post_init__(self):
        _freeze(self, "procedures", "preop_diagnoses", "postop_diagnoses",
                "medications", "allergies")

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


def fill_missing(
    extraction: Extraction,
    partial: PartialExtraction,
    requested: Optional[Collection[str]] = None
) -> Tuple[Extraction, List[str]]:
    """
    Fill only the fields the deterministic pipeline left empty.

    Values already present are never overridden. When `requested` is given,
    offered values for any other field are ignored.

    Returns:
        (new_extraction, names_of_filled_fields)
    """
    filled: List[str] = []
    doc_changes: Dict[str, Any] = {}
    surgery_changes: Dict[str, Any] = {}
    dx_changes: Dict[str, Any] = {}
    top_changes: Dict[str, Any] = {}

    def _take(target: Dict[str, Any], name: str, current: Any, offered: Any, label: str):
        if requested is not None and label not in requested:
            return
        if offered and not current:
            target[name] = offered
            filled.append(label)

    _take(surgery_changes, "procedures", extraction.surgery.procedures, partial.procedures, "procedures")
    _take(surgery_changes, "date", extraction.surgery.date, partial.surgery_date, "surgery_date")
    _take(surgery_changes, "surgeon", extraction.surgery.surgeon, partial.surgeon, "surgeon")
    _take(dx_changes, "preop", extraction.diagnoses.preop, partial.preop_diagnoses, "preop_diagnoses")
    _take(dx_changes, "postop", extraction.diagnoses.postop, partial.postop_diagnoses, "postop_diagnoses")
    _take(top_changes, "medications", extraction.medications, partial.medications, "medications")
    _take(top_changes, "allergies", extraction.allergies, partial.allergies, "allergies")
    _take(doc_changes, "facility", extraction.doc.facility, partial.facility, "facility")
    _take(doc_changes, "patient_name", extraction.doc.patient_name, partial.patient_name, "patient_name")
    _take(doc_changes, "record_number", extraction.doc.record_number, partial.record_number, "record_number")

    if not filled:
        return extraction, filled

    if surgery_changes:
        surgery = replace(extraction.surgery, **surgery_changes)
        if surgery.procedures:
            surgery = replace(surgery, has_surgery=True)
        top_changes["surgery"] = surgery
        if "surgeon" in surgery_changes and not extraction.doc.provider:
            doc_changes["provider"] = surgery_changes["surgeon"]
        if "date" in surgery_changes and not extraction.doc.doc_date:
            doc_changes["doc_date"] = surgery_changes["date"]
    if dx_changes:
        top_changes["diagnoses"] = replace(extraction.diagnoses, **dx_changes)
    if doc_changes:
        top_changes["doc"] = replace(extraction.doc, **doc_changes)

    return replace(extraction, **top_changes), filled
