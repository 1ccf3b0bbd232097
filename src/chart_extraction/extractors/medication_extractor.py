# ============================================================================
# src/chart_extraction/extractors/medication_extractor.py
# ============================================================================
"""
Medication Extraction

Three layers, results unioned:
- A: parenthetical groups that mention a drug class keyword or a known
     drug, split on "/" and ","
- B: direct scan for known drug names
- C: "scheduled <drug>" restricted to the scheduled allow-list

Every reported name is a term from the medication vocabulary. Dose, route
and frequency are read from the same line as a recognized name and never
cause detection by themselves.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..constants.clinical_headers import ALLERGIES, MEDICATION_SECTIONS
from ..constants.medication_vocabulary import MedicationVocabulary, get_medication_vocabulary
from ..core.context.extraction import Medication, UNKNOWN
from ..utils.text_normalizer import capitalize_first, collapse_whitespace

logger = logging.getLogger(__name__)

PARENTHETICAL_RE = re.compile(r"\(([^)]+)\)")
SCHEDULED_RE = re.compile(r"\bscheduled\s+(\w+)", re.IGNORECASE)
# "Allergies: X", "allergic to X", "allergies include X"; not "no allergic reaction"
ALLERGY_LINE_RE = re.compile(
    r"\ballerg(?:y|ies)\s*[:\-]|\ballerg(?:ic|y|ies)\s+(?:to|include)\b",
    re.IGNORECASE
)

DOSE_RE = re.compile(
    r"\b(\d+(?:\.\d+)?(?:\s*-\s*\d+(?:\.\d+)?)?)\s*(mg|mcg|g|mL|ml|units?)\b",
    re.IGNORECASE
)

# Written form -> canonical route
ROUTES = {
    "po": "PO",
    "by mouth": "PO",
    "oral": "PO",
    "orally": "PO",
    "iv": "IV",
    "intravenous": "IV",
    "intravenously": "IV",
    "im": "IM",
    "intramuscular": "IM",
    "sc": "SC",
    "sq": "SC",
    "subcutaneous": "SC",
    "subcutaneously": "SC",
    "sl": "SL",
    "sublingual": "SL",
    "pr": "PR",
    "rectal": "PR",
    "topical": "topical",
    "transdermal": "transdermal",
    "inhaled": "inhaled",
}
ROUTE_RE = re.compile(
    r"\b(" + "|".join(re.escape(r) for r in sorted(ROUTES, key=len, reverse=True)) + r")\b",
    re.IGNORECASE
)

FREQUENCY_RE = re.compile(
    r"\b(q\d+(?:-\d+)?h|qhs|qid|tid|bid|qd|prn|"
    r"every\s+\d+(?:\s*-\s*\d+)?\s+hours|"
    r"once\s+daily|twice\s+daily|three\s+times\s+daily|"
    r"daily|nightly|at\s+bedtime|as\s+needed)\b",
    re.IGNORECASE
)


class MedicationExtractor:
    """
    Vocabulary-restricted medication extractor.

    Stateless apart from the read-only vocabulary, so one instance may be
    shared across documents.
    """

    def __init__(self, vocabulary: Optional[MedicationVocabulary] = None):
        self.vocabulary = vocabulary or get_medication_vocabulary()

    def extract(
        self,
        text: str,
        sections: Optional[Mapping[str, str]] = None
    ) -> Tuple[Tuple[Medication, ...], Optional[str]]:
        """
        Extract medications from a document.

        Medication-bearing sections are scanned first; the full text is
        only scanned when they yield nothing. Lines inside the allergies
        section, or stating an allergy, are never scanned.

        Args:
            text: Full document text
            sections: Section map from the slicer

        Returns:
            (medications in first-occurrence order, evidence line or None)
        """
        sections = sections or {}
        excluded = self._allergy_lines(sections)

        scoped = "\n".join(sections[key] for key in MEDICATION_SECTIONS if sections.get(key))
        medications, evidence = self.extract_from_text(scoped, excluded)

        if not medications:
            medications, evidence = self.extract_from_text(text or "", excluded)
            scope = "full text"
        else:
            scope = "medication sections"

        logger.debug(f"Found {len(medications)} medications in {scope}")
        return medications, evidence

    def extract_from_text(
        self,
        text: str,
        excluded_lines: Sequence[str] = ()
    ) -> Tuple[Tuple[Medication, ...], Optional[str]]:
        """Scan `text` line by line and union the three layers."""
        if not text:
            return (), None

        excluded = set(excluded_lines)
        found: Dict[str, Medication] = {}
        evidence: Optional[str] = None

        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped in excluded or ALLERGY_LINE_RE.search(stripped):
                continue

            hits = self._scan_line(stripped)
            for position, term in hits:
                key = term.lower()
                if key in found:
                    continue
                found[key] = self._with_details(term, stripped, position, hits)
                if evidence is None:
                    evidence = stripped

        return tuple(found.values()), evidence

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def _scan_line(self, line: str) -> List[Tuple[int, str]]:
        """All vocabulary hits on one line as (position, term), position ordered."""
        hits: Dict[Tuple[int, str], None] = {}
        for hit in self._parenthetical_hits(line):
            hits[hit] = None
        for hit in self._keyword_hits(line):
            hits[hit] = None
        for hit in self._scheduled_hits(line):
            hits[hit] = None
        return sorted(hits, key=lambda h: (h[0], h[1]))

    def _parenthetical_hits(self, line: str) -> List[Tuple[int, str]]:
        hits = []
        for group in PARENTHETICAL_RE.finditer(line):
            inner = group.group(1)
            if not (self.vocabulary.contains_class_keyword(inner) or self.vocabulary.contains_drug(inner)):
                continue

            offset = group.start(1)
            for part in re.finditer(r"[^/,]+", inner):
                if len(part.group(0).strip()) <= 2:
                    continue
                for match in self._drug_matches(part.group(0)):
                    hits.append((offset + part.start() + match.start(), match.group(0).lower()))
        return hits

    def _keyword_hits(self, line: str) -> List[Tuple[int, str]]:
        return [(m.start(), m.group(0).lower()) for m in self._drug_matches(line)]

    def _scheduled_hits(self, line: str) -> List[Tuple[int, str]]:
        hits = []
        for match in SCHEDULED_RE.finditer(line):
            drug = match.group(1).lower()
            if len(drug) > 3 and drug in self.vocabulary.scheduled_allow_list:
                hits.append((match.start(1), drug))
        return hits

    def _drug_matches(self, text: str):
        if self.vocabulary.drug_pattern is None:
            return []
        return self.vocabulary.drug_pattern.finditer(text)

    # ------------------------------------------------------------------
    # Sub-details
    # ------------------------------------------------------------------

    def _with_details(
        self,
        term: str,
        line: str,
        position: int,
        hits: List[Tuple[int, str]]
    ) -> Medication:
        """Read dose/route/frequency between this name and the next one."""
        end = len(line)
        for other_position, _ in hits:
            if other_position > position:
                end = other_position
                break
        segment = line[position + len(term):end]

        dose = DOSE_RE.search(segment)
        route = ROUTE_RE.search(segment)
        frequency = FREQUENCY_RE.search(segment)

        return Medication(
            name=capitalize_first(term),
            dose=collapse_whitespace(dose.group(0)) if dose else UNKNOWN,
            route=ROUTES[route.group(1).lower()] if route else UNKNOWN,
            frequency=collapse_whitespace(frequency.group(0)) if frequency else UNKNOWN,
        )

    @staticmethod
    def _allergy_lines(sections: Mapping[str, str]) -> Tuple[str, ...]:
        body = sections.get(ALLERGIES) or ""
        return tuple(line.strip() for line in body.splitlines() if line.strip())


def extract_medications(text: str, vocabulary: Optional[MedicationVocabulary] = None) -> List[str]:
    """Medication names found anywhere in `text`."""
    medications, _ = MedicationExtractor(vocabulary).extract_from_text(text or "")
    return [m.name for m in medications]
