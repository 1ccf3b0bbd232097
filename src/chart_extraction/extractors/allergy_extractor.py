# ============================================================================
# src/chart_extraction/extractors/allergy_extractor.py
# ============================================================================
"""
Allergy Extraction

NKDA wording anywhere in the document overrides every other finding.
Otherwise allergies come from, in order: the allergies section list, an
inline "Allergies: A, B" label, or "allergic to X" phrases.
"""

import logging
import re
from typing import List, Mapping, Optional, Tuple

from ..constants.clinical_headers import ALLERGIES
from ..core.context.extraction import NKDA_ALLERGY, NKDA_TEXT_RE, Allergy
from ..utils.text_normalizer import capitalize_first, collapse_whitespace
from .list_extractor import extract_numbered_list

logger = logging.getLogger(__name__)

INLINE_RE = re.compile(
    r"^\s*(?:known\s+|drug\s+)?allergies\s*:[ \t]*(\S.*)$",
    re.IGNORECASE | re.MULTILINE
)
ALLERGIC_TO_RE = re.compile(r"\ballergic\s+to\s+([^.,;\n]+)", re.IGNORECASE)
NON_ANSWERS = ("none", "n/a", "na", "unknown", "not applicable")

# Reaction notations, tried in order
REACTION_PATTERNS = (
    re.compile(r"^(?P<substance>.+?)\s*\((?P<reaction>[^)]+)\)\s*$"),
    re.compile(r"^(?P<substance>.+?)\s+(?:causes|caused|->|→)\s+(?P<reaction>.+)$", re.IGNORECASE),
    re.compile(r"^(?P<substance>.+?)\s*(?:-|–|:)\s+(?P<reaction>.+)$"),
)


def parse_allergy(item: str) -> Optional[Allergy]:
    """Split "Penicillin (hives)" style text into substance and reaction."""
    text = collapse_whitespace(item).strip(" .;")
    if not text or text.lower() in NON_ANSWERS:
        return None

    for pattern in REACTION_PATTERNS:
        match = pattern.match(text)
        if match:
            substance = match.group("substance").strip(" .;:-")
            reaction = match.group("reaction").strip(" .;")
            if substance:
                return Allergy(substance=capitalize_first(substance), reaction=reaction or None)

    return Allergy(substance=capitalize_first(text))


def _split_inline(value: str) -> List[str]:
    # Commas inside parentheses belong to the reaction
    parts, depth, current = [], 0, []
    for char in value:
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        if char in ",;" and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


class AllergyExtractor:
    """Extracts allergies from document text."""

    def __init__(self, continuation_max_length: int = 60):
        self.continuation_max_length = continuation_max_length

    def extract(
        self,
        text: str,
        sections: Optional[Mapping[str, str]] = None
    ) -> Tuple[Tuple[Allergy, ...], Optional[str]]:
        """
        Extract allergies.

        Args:
            text: Full document text
            sections: Section map from the slicer

        Returns:
            (allergies, evidence snippet or None)
        """
        if not text:
            return (), None

        nkda = NKDA_TEXT_RE.search(text)
        if nkda:
            logger.debug("NKDA wording found, overriding other allergy findings")
            return (NKDA_ALLERGY,), nkda.group(0)

        sections = sections or {}
        body = sections.get(ALLERGIES)
        if body:
            items = extract_numbered_list(body, self.continuation_max_length)
            allergies = self._parse_items(items)
            if allergies:
                return allergies, body

        inline = INLINE_RE.search(text)
        if inline:
            allergies = self._parse_items(_split_inline(inline.group(1)))
            if allergies:
                return allergies, inline.group(0).strip()

        phrases = list(ALLERGIC_TO_RE.finditer(text))
        if phrases:
            allergies = self._parse_items(m.group(1) for m in phrases)
            if allergies:
                return allergies, phrases[0].group(0)

        return (), None

    @staticmethod
    def _parse_items(items) -> Tuple[Allergy, ...]:
        seen = set()
        allergies = []
        for item in items:
            allergy = parse_allergy(item)
            if allergy is None:
                continue
            key = allergy.substance.lower()
            if key not in seen:
                seen.add(key)
                allergies.append(allergy)
        return tuple(allergies)


def extract_allergies(text: str, sections: Optional[Mapping[str, str]] = None) -> List[Allergy]:
    allergies, _ = AllergyExtractor().extract(text, sections)
    return list(allergies)
