# ============================================================================
# src/chart_extraction/extractors/list_extractor.py
# ============================================================================
"""
Numbered / bulleted list extraction.

Items start with "1.", "1)" or a bullet glyph. Unmarked lines never start
an item: a section body without any marker yields no items.
"""

import re
from typing import List, Optional

from ..utils.text_normalizer import collapse_whitespace

# "1.5 mg" is a dose, not item 1
NUMBERED_RE = re.compile(r"^(\d{1,3})[.)](?!\d)\s*(.+)$")
BULLET_RE = re.compile(r"^[●○•▪◦\-\*]\s*(.+)$")
CAPITALIZED_RE = re.compile(r"^[A-Z]")


def _indent(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def _is_indented(line: str) -> bool:
    return line.startswith("   ") or line.startswith("\t")


def extract_numbered_list(block: Optional[str], continuation_max_length: int = 60) -> List[str]:
    """
    Extract list items from a section body.

    Rules:
    - a numbered marker always starts a new item
    - a bullet starts a new item unless it sits under a numbered item or is
      nested deeper than the current bullet item, in which case it is a
      detail line and is dropped without ending the item
    - an indented line, or a short line not starting with a capital letter,
      continues the current item
    - any other unmarked line ends the current item

    Args:
        block: Section body text
        continuation_max_length: Longest unindented lowercase line still
            treated as a continuation

    Returns:
        Items in document order
    """
    if not block or not block.strip():
        return []

    items: List[str] = []
    current: Optional[List[str]] = None
    current_kind: Optional[str] = None
    current_indent = 0

    def _flush():
        if current:
            item = collapse_whitespace(" ".join(current))
            if item:
                items.append(item)

    for line in block.splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        numbered = NUMBERED_RE.match(stripped)
        if numbered:
            _flush()
            current = [numbered.group(2)]
            current_kind = "numbered"
            current_indent = _indent(line)
            continue

        bullet = BULLET_RE.match(stripped)
        if bullet:
            starts_item = current is None or (
                current_kind == "bullet" and _indent(line) <= current_indent
            )
            if starts_item:
                _flush()
                current = [bullet.group(1)]
                current_kind = "bullet"
                current_indent = _indent(line)
            # otherwise a sub-bullet detail
            continue

        if current is None:
            continue

        if _is_indented(line) or (
            not CAPITALIZED_RE.match(stripped) and len(stripped) < continuation_max_length
        ):
            current.append(stripped)
        else:
            _flush()
            current = None
            current_kind = None

    _flush()
    return items
