# ============================================================================
# src/chart_extraction/core/context/chart.py
# ============================================================================
"""
Patient chart model and the request contract.

Chart fields arrive from the persistence layer in mixed shapes: a
medication may be "Tylenol" or {"name": "Tylenol", "dose": "500 mg"}, an
allergy may be "Penicillin" or {"substance": "Penicillin", "reaction":
"rash"}. The normalizers below collapse every shape into the internal
dataclasses once, at this boundary, so nothing downstream branches on
shape.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .extraction import Allergy, Medication, UNKNOWN
from ...utils.exceptions import InvalidInputError


@dataclass(frozen=True)
class SurgeryRecord:
    date: Optional[str] = None
    procedures: Tuple[str, ...] = ()
    surgeon: Optional[str] = None
    source_document_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.procedures, tuple):
            object.__setattr__(self, "procedures", tuple(self.procedures))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "procedures": list(self.procedures),
            "surgeon": self.surgeon,
            "source_document_id": self.source_document_id,
        }


# ============================================================================
# SHAPE NORMALIZERS
# ============================================================================

def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_medication(value: Union[str, Mapping[str, Any], Medication]) -> Medication:
    if isinstance(value, Medication):
        return value
    if isinstance(value, str):
        name = _text(value)
        if not name:
            raise ValueError("medication name is empty")
        return Medication(name=name)
    if isinstance(value, Mapping):
        name = _text(value.get("name") or value.get("medication") or value.get("drug"))
        if not name:
            raise ValueError(f"medication entry has no name: {dict(value)!r}")
        return Medication(
            name=name,
            dose=_text(value.get("dose") or value.get("dosage")) or UNKNOWN,
            route=_text(value.get("route")) or UNKNOWN,
            frequency=_text(value.get("frequency")) or UNKNOWN,
        )
    raise ValueError(f"unsupported medication shape: {type(value).__name__}")


def normalize_allergy(value: Union[str, Mapping[str, Any], Allergy]) -> Allergy:
    if isinstance(value, Allergy):
        return value
    if isinstance(value, str):
        substance = _text(value)
        if not substance:
            raise ValueError("allergy substance is empty")
        return Allergy(substance=substance)
    if isinstance(value, Mapping):
        substance = _text(value.get("substance") or value.get("name") or value.get("allergen"))
        if not substance:
            raise ValueError(f"allergy entry has no substance: {dict(value)!r}")
        return Allergy(substance=substance, reaction=_text(value.get("reaction")))
    raise ValueError(f"unsupported allergy shape: {type(value).__name__}")


def normalize_diagnosis(value: Union[str, Mapping[str, Any]]) -> str:
    if isinstance(value, str):
        text = _text(value)
    elif isinstance(value, Mapping):
        text = _text(value.get("name") or value.get("description") or value.get("diagnosis"))
    else:
        raise ValueError(f"unsupported diagnosis shape: {type(value).__name__}")
    if not text:
        raise ValueError("diagnosis is empty")
    return text


def normalize_surgery(value: Union[str, Mapping[str, Any], SurgeryRecord]) -> SurgeryRecord:
    if isinstance(value, SurgeryRecord):
        return value
    if isinstance(value, str):
        procedure = _text(value)
        if not procedure:
            raise ValueError("surgery entry is empty")
        return SurgeryRecord(procedures=(procedure,))
    if isinstance(value, Mapping):
        procedures = value.get("procedures")
        if procedures is None:
            # Older single-procedure records
            single = _text(value.get("procedure"))
            procedures = [single] if single else []
        elif isinstance(procedures, str):
            procedures = [procedures]
        return SurgeryRecord(
            date=_text(value.get("date")),
            procedures=tuple(p for p in (_text(x) for x in procedures) if p),
            surgeon=_text(value.get("surgeon")),
            source_document_id=_text(value.get("source_document_id")),
        )
    raise ValueError(f"unsupported surgery shape: {type(value).__name__}")


def _normalize_list(value: Any, normalizer) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        raise ValueError("expected a list")
    return [normalizer(item) for item in value]


# ============================================================================
# INPUT CONTRACT
# ============================================================================

class ChartSnapshot(BaseModel):
    """The patient's currently stored facts. Read-only input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    surgeries: List[SurgeryRecord] = Field(default_factory=list)
    problem_list: List[str] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    allergies: List[Allergy] = Field(default_factory=list)
    record_number: Optional[str] = None

    @field_validator("surgeries", mode="plain")
    @classmethod
    def _surgeries(cls, value):
        return _normalize_list(value, normalize_surgery)

    @field_validator("problem_list", mode="plain")
    @classmethod
    def _problems(cls, value):
        return _normalize_list(value, normalize_diagnosis)

    @field_validator("medications", mode="plain")
    @classmethod
    def _medications(cls, value):
        return _normalize_list(value, normalize_medication)

    @field_validator("allergies", mode="plain")
    @classmethod
    def _allergies(cls, value):
        return _normalize_list(value, normalize_allergy)

    @field_validator("record_number", mode="before")
    @classmethod
    def _record_number(cls, value):
        return _text(value)

    @property
    def has_nkda(self) -> bool:
        return any(a.is_nkda for a in self.allergies)

    @property
    def real_allergies(self) -> List[Allergy]:
        return [a for a in self.allergies if not a.is_nkda and a.substance]


class ProcessingRequest(BaseModel):
    """One document's text plus the chart it will be compared against."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    raw_text: str
    patient_id: Optional[str] = None
    document_id: Optional[str] = None
    chart_snapshot: ChartSnapshot = Field(default_factory=ChartSnapshot)

    @field_validator("patient_id", "document_id", mode="before")
    @classmethod
    def _identifier(cls, value):
        return _text(value)

    @field_validator("raw_text", mode="before")
    @classmethod
    def _raw_text(cls, value):
        if value is None:
            return ""
        return value

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ProcessingRequest":
        """
        Validate a raw payload (camelCase or snake_case keys).

        Raises:
            InvalidInputError: payload does not match the contract
        """
        if not isinstance(payload, Mapping):
            raise InvalidInputError(f"Request payload must be a mapping, got {type(payload).__name__}")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid processing request: {e}") from e


def snapshot_from_payload(payload: Optional[Mapping[str, Any]]) -> ChartSnapshot:
    """Validate a chart payload, raising InvalidInputError on bad shape."""
    if payload is None:
        return ChartSnapshot()
    try:
        return ChartSnapshot.model_validate(payload)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid chart snapshot: {e}") from e


# ============================================================================
# CHART-FORMAT FACTS
# ============================================================================

@dataclass(frozen=True)
class ChartFacts:
    """A document's extraction expressed in chart shape."""
    surgeries: Tuple[SurgeryRecord, ...] = ()
    diagnoses: Tuple[str, ...] = ()
    medications: Tuple[Medication, ...] = ()
    allergies: Tuple[Allergy, ...] = ()
    record_number: Optional[str] = None
    summary: Optional[str] = None
    source_document_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "surgeries": [s.to_dict() for s in self.surgeries],
            "diagnoses": list(self.diagnoses),
            "medications": [m.to_dict() for m in self.medications],
            "allergies": [a.to_dict() for a in self.allergies],
            "record_number": self.record_number,
            "summary": self.summary,
            "source_document_id": self.source_document_id,
        }
