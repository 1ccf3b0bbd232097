# ============================================================================
# src/chart_extraction/extractors/section_slicer.py
# ============================================================================
"""
Section Slicer

Splits raw document text into named sections using the fixed clinical
header vocabulary. A line is a header only when it consists solely of the
header text (optionally followed by a colon), so header words inside prose
never start a section.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..constants.clinical_headers import CLINICAL_HEADERS

logger = logging.getLogger(__name__)


def _compile_headers(headers: Sequence[Tuple[str, str]]) -> Tuple[Tuple[re.Pattern, str], ...]:
    return tuple(
        (re.compile(rf"^\s*{re.escape(text)}[:\s]*$", re.IGNORECASE), key)
        for text, key in headers
    )


_DEFAULT_PATTERNS = _compile_headers(CLINICAL_HEADERS)


def match_header(line: str, patterns=_DEFAULT_PATTERNS) -> Optional[str]:
    """Return the canonical section key if `line` is a header line."""
    for pattern, key in patterns:
        if pattern.match(line):
            return key
    return None


def _trim_blank_lines(lines: List[str]) -> str:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(line.rstrip() for line in lines[start:end])


def slice_by_headers(
    text: str,
    headers: Optional[Sequence[Tuple[str, str]]] = None
) -> Dict[str, str]:
    """
    Slice text into sections by recognized header lines.

    Args:
        text: Raw document text
        headers: Optional (header text, canonical key) pairs replacing the
            built-in vocabulary

    Returns:
        Mapping of canonical key -> section body, in document order. A
        header seen twice keeps only its later body. Text before the first
        header belongs to no section.
    """
    if not text:
        return {}

    patterns = _DEFAULT_PATTERNS if headers is None else _compile_headers(headers)

    sections: Dict[str, str] = {}
    current_key: Optional[str] = None
    current_lines: List[str] = []

    def _close():
        if current_key is None:
            return
        if current_key in sections:
            # Most recent occurrence wins and takes the later position
            del sections[current_key]
        sections[current_key] = _trim_blank_lines(current_lines)

    for line in text.splitlines():
        key = match_header(line, patterns)
        if key is not None:
            _close()
            current_key = key
            current_lines = []
        elif current_key is not None:
            current_lines.append(line)

    _close()

    logger.debug(f"Sliced {len(sections)} sections: {list(sections)}")
    return sections
