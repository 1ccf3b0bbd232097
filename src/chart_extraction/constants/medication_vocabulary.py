# ============================================================================
# src/chart_extraction/constants/medication_vocabulary.py
# ============================================================================
"""
Medication Vocabulary Data Table.

Medication detection is restricted to this table: a name is only ever
reported when it (or one of its aliases) appears here. The table can be
replaced at runtime with a JSON file of the same shape:

    {
      "medications": [{"name": "acetaminophen", "aliases": ["tylenol"]}],
      "class_keywords": ["opioid", "analgesic"],
      "scheduled_allow_list": ["acetaminophen"],
      "non_drug_phrases": ["nausea"]
    }
"""

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MedicationEntry:
    name: str
    aliases: Tuple[str, ...] = ()

    @property
    def terms(self) -> Tuple[str, ...]:
        return (self.name,) + self.aliases


MEDICATIONS: Tuple[MedicationEntry, ...] = (
    # Opioid analgesics
    MedicationEntry("morphine"),
    MedicationEntry("hydromorphone", ("dilaudid",)),
    MedicationEntry("fentanyl"),
    MedicationEntry("oxycodone", ("oxycontin", "percocet")),
    MedicationEntry("hydrocodone", ("vicodin", "norco")),
    MedicationEntry("codeine"),
    MedicationEntry("tramadol", ("ultram",)),

    # Non-opioid analgesics
    MedicationEntry("acetaminophen", ("tylenol",)),
    MedicationEntry("ibuprofen", ("advil", "motrin")),
    MedicationEntry("ketorolac", ("toradol",)),
    MedicationEntry("aspirin"),
    MedicationEntry("celecoxib", ("celebrex",)),
    MedicationEntry("meloxicam", ("mobic",)),
    MedicationEntry("naproxen", ("aleve",)),
    MedicationEntry("gabapentin", ("neurontin",)),

    # Antiemetics / sedation
    MedicationEntry("ondansetron", ("zofran",)),
    MedicationEntry("metoclopramide", ("reglan",)),
    MedicationEntry("diphenhydramine", ("benadryl",)),
    MedicationEntry("lorazepam", ("ativan",)),
    MedicationEntry("midazolam", ("versed",)),
    MedicationEntry("propofol"),

    # Antibiotics
    MedicationEntry("cefazolin", ("ancef",)),
    MedicationEntry("cephalexin", ("keflex",)),
    MedicationEntry("vancomycin"),
    MedicationEntry("piperacillin"),
    MedicationEntry("metronidazole", ("flagyl",)),

    # Anticoagulants / antiplatelets
    MedicationEntry("heparin"),
    MedicationEntry("enoxaparin", ("lovenox",)),
    MedicationEntry("warfarin", ("coumadin",)),
    MedicationEntry("apixaban", ("eliquis",)),
    MedicationEntry("rivaroxaban", ("xarelto",)),
    MedicationEntry("clopidogrel", ("plavix",)),

    # Chronic medications
    MedicationEntry("atorvastatin", ("lipitor",)),
    MedicationEntry("metformin"),
    MedicationEntry("lisinopril"),
    MedicationEntry("amlodipine"),
    MedicationEntry("omeprazole", ("prilosec",)),
    MedicationEntry("pantoprazole", ("protonix",)),
    MedicationEntry("prednisone"),
    MedicationEntry("dexamethasone", ("decadron",)),
    MedicationEntry("albuterol"),
    MedicationEntry("furosemide", ("lasix",)),
    MedicationEntry("docusate", ("colace",)),
)

CLASS_KEYWORDS: Tuple[str, ...] = (
    "opioid", "analgesia", "analgesic", "pain", "antibiotic",
    "antiemetic", "sedation", "anticoagulant", "anticoagulation",
)

# "scheduled <drug>" is only trusted for these
SCHEDULED_ALLOW_LIST: Tuple[str, ...] = (
    "acetaminophen", "tylenol", "ibuprofen", "aspirin",
)

# Side effects and other phrases that are not medications
NON_DRUG_PHRASES: Tuple[str, ...] = (
    "sedation", "reaction time", "side effect", "coordination",
    "drowsiness", "nausea", "vomiting", "constipation", "dizziness",
)


class MedicationVocabulary:
    """
    Compiled, read-only view of the medication data table.

    Instances are built once and never mutated, so one vocabulary can be
    shared by concurrent pipeline invocations.
    """

    def __init__(
        self,
        medications: Tuple[MedicationEntry, ...] = MEDICATIONS,
        class_keywords: Tuple[str, ...] = CLASS_KEYWORDS,
        scheduled_allow_list: Tuple[str, ...] = SCHEDULED_ALLOW_LIST,
        non_drug_phrases: Tuple[str, ...] = NON_DRUG_PHRASES,
    ):
        self.medications = tuple(medications)
        self.class_keywords = tuple(k.lower() for k in class_keywords)
        self.scheduled_allow_list = tuple(s.lower() for s in scheduled_allow_list)
        self.non_drug_phrases = tuple(p.lower() for p in non_drug_phrases)

        terms = sorted(
            {term.lower() for entry in self.medications for term in entry.terms},
            key=lambda t: (-len(t), t)
        )
        self._known = frozenset(terms)
        self.drug_pattern = self._compile(terms)
        self.class_pattern = self._compile(self.class_keywords)
        self.non_drug_pattern = self._compile(self.non_drug_phrases)

    @staticmethod
    def _compile(words) -> Optional[re.Pattern]:
        if not words:
            return None
        alternation = "|".join(re.escape(w) for w in words)
        return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)

    def is_known(self, term: str) -> bool:
        return term.lower().strip() in self._known

    def contains_drug(self, text: str) -> bool:
        return bool(self.drug_pattern and self.drug_pattern.search(text))

    def contains_class_keyword(self, text: str) -> bool:
        return bool(self.class_pattern and self.class_pattern.search(text))

    def is_non_drug(self, text: str) -> bool:
        return bool(self.non_drug_pattern and self.non_drug_pattern.search(text))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicationVocabulary":
        try:
            medications = tuple(
                MedicationEntry(
                    name=item["name"].lower(),
                    aliases=tuple(a.lower() for a in item.get("aliases", [])),
                )
                for item in data["medications"]
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Invalid medication vocabulary: {e}") from e

        return cls(
            medications=medications,
            class_keywords=tuple(data.get("class_keywords", CLASS_KEYWORDS)),
            scheduled_allow_list=tuple(data.get("scheduled_allow_list", SCHEDULED_ALLOW_LIST)),
            non_drug_phrases=tuple(data.get("non_drug_phrases", NON_DRUG_PHRASES)),
        )

    @classmethod
    def from_json(cls, path: Path) -> "MedicationVocabulary":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read medication vocabulary {path}: {e}") from e

        vocabulary = cls.from_dict(data)
        logger.info(f"Loaded {len(vocabulary.medications)} medications from {path}")
        return vocabulary

    def to_dict(self) -> Dict[str, List[Any]]:
        return {
            "medications": [
                {"name": e.name, "aliases": list(e.aliases)}
                for e in self.medications
            ],
            "class_keywords": list(self.class_keywords),
            "scheduled_allow_list": list(self.scheduled_allow_list),
            "non_drug_phrases": list(self.non_drug_phrases),
        }


@lru_cache(maxsize=1)
def _builtin_vocabulary() -> MedicationVocabulary:
    return MedicationVocabulary()


def get_medication_vocabulary(path: Optional[Path] = None) -> MedicationVocabulary:
    """
    Return the vocabulary from `path`, or the built-in table.

    The built-in table is compiled once per process.
    """
    if path is not None:
        return MedicationVocabulary.from_json(path)
    return _builtin_vocabulary()
