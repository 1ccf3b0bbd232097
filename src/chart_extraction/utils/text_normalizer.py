# ============================================================================
# src/chart_extraction/utils/text_normalizer.py
# ============================================================================
"""
Text Normalization Utilities

Small, pure helpers shared by the extractors and validators:
- Whitespace collapsing and capitalization
- Identifier normalization (digits only)
- Date normalization to ISO form for comparison
- Token-overlap similarity for procedure names
"""

import re
from datetime import datetime
from typing import Optional, Sequence

# Date formats seen in surgical reports, tried in order
DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"\D")
_ORDINAL_RE = re.compile(r"(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)


def collapse_whitespace(text: str) -> str:
    """Replace runs of whitespace with a single space and strip."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def capitalize_first(text: str) -> str:
    """Upper-case the first character, leave the rest untouched."""
    if not text:
        return text
    return text[0].upper() + text[1:]


def digits_only(value: Optional[str]) -> str:
    """Strip every non-digit character (record numbers)."""
    if value is None:
        return ""
    return _NON_DIGIT_RE.sub("", str(value))


def truncate(text: Optional[str], length: int) -> Optional[str]:
    if text is None:
        return None
    return text if len(text) <= length else text[:length]


def normalize_date(value: Optional[str]) -> Optional[str]:
    """
    Normalize a date string to ISO (YYYY-MM-DD) when it can be parsed.

    Unparseable values come back stripped and lower-cased so two spellings of
    the same free-text date still compare equal.
    """
    if not value:
        return None

    cleaned = collapse_whitespace(value).rstrip(".")
    cleaned = _ORDINAL_RE.sub(r"\1", cleaned)

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date().isoformat()
        except ValueError:
            continue

    return cleaned.lower()


def tokenize(text: str) -> Sequence[str]:
    return [t for t in re.split(r"[^a-z0-9]+", (text or "").lower()) if t]


def token_overlap(first: str, second: str) -> float:
    """Share of common tokens relative to the longer token list."""
    tokens1 = tokenize(first)
    tokens2 = tokenize(second)
    if not tokens1 or not tokens2:
        return 0.0
    common = [t for t in tokens1 if t in tokens2]
    return len(common) / max(len(tokens1), len(tokens2))


def names_similar(first: str, second: str, threshold: float = 0.7) -> bool:
    """
    True when one name contains the other or their token overlap reaches
    the threshold.
    """
    a = collapse_whitespace(first).lower()
    b = collapse_whitespace(second).lower()
    if not a or not b:
        return False
    if a in b or b in a:
        return True
    return token_overlap(a, b) >= threshold
