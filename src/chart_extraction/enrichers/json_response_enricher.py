# ============================================================================
# src/chart_extraction/enrichers/json_response_enricher.py
# ============================================================================
"""
JSON-response enricher for an external language-model collaborator.

The collaborator is any callable `generate(system_prompt, user_prompt) -> str`.
Each missing field gets its own narrow micro-prompt asking for a JSON
object; replies are parsed strictly first and repaired with json_repair
when the model wraps or truncates the JSON.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from json_repair import repair_json

from ..core.context.chart import normalize_medication
from ..core.context.extraction import Extraction, Medication, PartialExtraction
from ..utils.exceptions import EnrichmentError
from .base import MEDICATIONS_FIELD, PROCEDURES_FIELD, EnrichmentResult, FieldEnricher

logger = logging.getLogger(__name__)

Generate = Callable[[str, str], str]

MEDICATIONS_SYSTEM_PROMPT = (
    "Return valid JSON only. Extract medication NAMES ONLY. No effects. No dosing."
)
MEDICATIONS_USER_PROMPT = """From this text, list explicit medication names.
Return JSON: {{"medications":[]}}

TEXT:
<<<
{text}
>>>"""

PROCEDURES_SYSTEM_PROMPT = (
    "Return valid JSON only. Copy procedure names verbatim from the document. "
    "Do not invent procedures."
)
PROCEDURES_USER_PROMPT = """From this text, list the procedures that were performed.
Return JSON: {{"procedures":[]}}

TEXT:
<<<
{text}
>>>"""

CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def parse_json_response(text: str) -> Tuple[Dict[str, Any], bool]:
    """
    Extract a JSON object from a model reply.

    Returns:
        (parsed_object, json_was_repaired)

    Raises:
        EnrichmentError: no JSON object could be recovered
    """
    if not text or not text.strip():
        raise EnrichmentError("Empty enrichment response")

    fenced = CODE_FENCE_RE.search(text)
    candidate = fenced.group(1) if fenced else text

    # Try 1: Direct parse
    try:
        parsed = json.loads(candidate)
        if isinstance(parsed, dict):
            return parsed, False
    except json.JSONDecodeError:
        pass

    # Try 2: Use json_repair
    repaired = repair_json(candidate, return_objects=True)
    if isinstance(repaired, dict) and repaired:
        logger.warning(
            f"json_repair fixed enrichment response - potential data loss. "
            f"Original (first 200 chars): {candidate[:200]}"
        )
        return repaired, True

    raise EnrichmentError(f"Unparsable enrichment response: {text[:200]!r}")


def _string_items(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    items = []
    for value in values:
        if isinstance(value, str) and value.strip():
            items.append(value.strip())
        elif isinstance(value, dict) and isinstance(value.get("name"), str):
            items.append(value["name"].strip())
    return items


class JsonResponseEnricher(FieldEnricher):
    """
    Asks a language model for medications and procedures only.
    """

    def __init__(self, generate: Generate, max_chars: int = 4000):
        self.generate = generate
        self.max_chars = max_chars

    @property
    def name(self) -> str:
        return "enrichment"

    def fill(
        self,
        missing_fields: Sequence[str],
        raw_text: str,
        extraction: Optional[Extraction] = None
    ) -> EnrichmentResult:
        text = (raw_text or "")[:self.max_chars]
        medications: Tuple[Medication, ...] = ()
        procedures: Tuple[str, ...] = ()
        repaired = False

        if MEDICATIONS_FIELD in missing_fields:
            data, was_repaired = self._ask(MEDICATIONS_SYSTEM_PROMPT, MEDICATIONS_USER_PROMPT, text)
            repaired = repaired or was_repaired
            medications = tuple(normalize_medication(n) for n in _string_items(data.get("medications")))

        if PROCEDURES_FIELD in missing_fields:
            data, was_repaired = self._ask(PROCEDURES_SYSTEM_PROMPT, PROCEDURES_USER_PROMPT, text)
            repaired = repaired or was_repaired
            procedures = tuple(_string_items(data.get("procedures")))

        logger.info(
            f"Enrichment proposed {len(medications)} medications, {len(procedures)} procedures"
        )
        return EnrichmentResult(
            partial=PartialExtraction(procedures=procedures, medications=medications),
            source=self.name,
            repaired=repaired,
        )

    def _ask(self, system_prompt: str, user_template: str, text: str) -> Tuple[Dict[str, Any], bool]:
        try:
            reply = self.generate(system_prompt, user_template.format(text=text))
        except EnrichmentError:
            raise
        except Exception as e:
            raise EnrichmentError(f"Enrichment collaborator failed: {e}") from e
        return parse_json_response(reply)
