# ============================================================================
# src/chart_extraction/enrichers/base.py
# ============================================================================
"""
Base Enricher Interface

Enrichers are asked for fields the deterministic pipeline left empty.
They return proposed values only; the pipeline decides what to fill, and
never lets an enricher override a value it already extracted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

from ..core.context.extraction import Extraction, PartialExtraction

# Field names an enricher may be asked for
MEDICATIONS_FIELD = "medications"
PROCEDURES_FIELD = "procedures"


@dataclass(frozen=True)
class EnrichmentResult:
    """
    Values proposed by an enricher.
    """
    partial: PartialExtraction = field(default_factory=PartialExtraction)
    source: str = ""
    repaired: bool = False

    @property
    def is_empty(self) -> bool:
        return self.partial.is_empty()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "repaired": self.repaired,
            "procedures": list(self.partial.procedures),
            "medications": [m.to_dict() for m in self.partial.medications],
        }


class FieldEnricher(ABC):
    """
    Base class for missing-field enrichers.

    Implementations must be safe to call from concurrent pipeline
    invocations and should raise EnrichmentError on failure.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier recorded in the processing method."""
        pass

    @abstractmethod
    def fill(
        self,
        missing_fields: Sequence[str],
        raw_text: str,
        extraction: Optional[Extraction] = None
    ) -> EnrichmentResult:
        """
        Propose values for `missing_fields`.

        Args:
            missing_fields: Field names the deterministic pass left empty
            raw_text: Document text
            extraction: Deterministic extraction so far (read only)

        Returns:
            EnrichmentResult
        """
        pass


class NoOpEnricher(FieldEnricher):
    """Proposes nothing. Keeps the pipeline fully deterministic."""

    @property
    def name(self) -> str:
        return "none"

    def fill(self, missing_fields, raw_text, extraction=None) -> EnrichmentResult:
        return EnrichmentResult(source=self.name)
