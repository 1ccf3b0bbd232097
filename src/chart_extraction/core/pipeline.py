# ============================================================================
# src/chart_extraction/core/pipeline.py
# ============================================================================
"""
Safe Extraction Pipeline

One document, synchronously, to completion or failure:

    raw text -> sections -> Extraction -> (optional enrichment)
             -> invariants -> confidence -> chart facts -> conflicts
             -> merge decision

Nothing here writes to the chart. Any fault below the merge gate is caught
and reported as status `error` with whatever was computed so far, so a
caller can never mistake a failed run for a mergeable one.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..config.extraction_config import ExtractionSettings, extraction_settings
from ..config.thresholds_config import ThresholdSettings, threshold_settings
from ..constants.clinical_headers import PROCEDURES
from ..constants.medication_vocabulary import MedicationVocabulary, get_medication_vocabulary
from ..enrichers.base import MEDICATIONS_FIELD, PROCEDURES_FIELD, FieldEnricher, NoOpEnricher
from ..extractors.header_slice import METHOD, HeaderSliceExtractor
from ..utils.logging import DocumentLogAdapter, log_performance
from ..validators.conflict_detector import ConflictDetector
from ..validators.invariant_checker import InvariantChecker
from .chart_format import convert_to_chart_format
from .confidence import ConfidenceScorer
from .context.chart import ChartFacts, ProcessingRequest
from .context.enums import DocumentStatus
from .context.extraction import Extraction, fill_missing
from .context.results import (
    Confidence,
    ConflictReport,
    InvariantReport,
    MergeDecision,
    blocked_decision,
)
from .merge_gate import MergeGate, transition

logger = logging.getLogger(__name__)

ENRICHED_METHOD = "header-slice+enrichment"


@dataclass(frozen=True)
class ProcessingResult:
    """Everything computed for one document."""
    document_id: Optional[str]
    patient_id: Optional[str]
    status: DocumentStatus
    extraction: Optional[Extraction] = None
    confidence: Optional[Confidence] = None
    invariant_report: Optional[InvariantReport] = None
    conflicts: ConflictReport = field(default_factory=ConflictReport)
    merge_decision: Optional[MergeDecision] = None
    chart_facts: Optional[ChartFacts] = None
    sections_found: Tuple[str, ...] = ()
    method: str = METHOD
    enriched_fields: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def can_merge(self) -> bool:
        return bool(self.merge_decision and self.merge_decision.can_merge)

    @property
    def needs_review(self) -> bool:
        return self.merge_decision is None or self.merge_decision.needs_review

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "patient_id": self.patient_id,
            "status": self.status.value,
            "method": self.method,
            "sections_found": list(self.sections_found),
            "enriched_fields": list(self.enriched_fields),
            "extraction": self.extraction.to_dict() if self.extraction else None,
            "confidence": self.confidence.to_dict() if self.confidence else None,
            "invariant_report": self.invariant_report.to_dict() if self.invariant_report else None,
            "conflicts": self.conflicts.to_dict(),
            "merge_decision": self.merge_decision.to_dict() if self.merge_decision else None,
            "chart_facts": self.chart_facts.to_dict() if self.chart_facts else None,
            "error": self.error,
        }


class SafeExtractionPipeline:
    """
    Deterministic extraction and merge-safety engine.

    All collaborators are read-only after construction, so one pipeline
    instance can process documents for different patients concurrently.
    """

    def __init__(
        self,
        extraction_config: Optional[ExtractionSettings] = None,
        threshold_config: Optional[ThresholdSettings] = None,
        enricher: Optional[FieldEnricher] = None,
        vocabulary: Optional[MedicationVocabulary] = None
    ):
        self.extraction_config = extraction_config or extraction_settings
        self.threshold_config = threshold_config or threshold_settings
        self.vocabulary = vocabulary or get_medication_vocabulary(
            self.extraction_config.MEDICATION_VOCABULARY_PATH
        )
        self.enricher = enricher or NoOpEnricher()

        self.extractor = HeaderSliceExtractor(self.extraction_config, self.vocabulary)
        self.invariant_checker = InvariantChecker(self.extraction_config, self.vocabulary)
        self.scorer = ConfidenceScorer(self.threshold_config)
        self.conflict_detector = ConflictDetector(self.threshold_config)
        self.merge_gate = MergeGate(self.threshold_config)

    def process(self, request: Union[ProcessingRequest, Mapping[str, Any]]) -> ProcessingResult:
        """
        Process one document.

        Args:
            request: ProcessingRequest or a raw payload in the input contract
                shape (camelCase or snake_case keys)

        Returns:
            ProcessingResult. Faults during processing produce status
            `error`, never an exception.

        Raises:
            InvalidInputError: the payload itself is malformed
        """
        if not isinstance(request, ProcessingRequest):
            request = ProcessingRequest.from_payload(request)

        log = DocumentLogAdapter(logger, {"document_id": request.document_id})
        transition(DocumentStatus.UPLOADED, DocumentStatus.PROCESSING)
        return self._run(request, log)

    @log_performance(logger, "Document processing")
    def _run(self, request: ProcessingRequest, log: DocumentLogAdapter) -> ProcessingResult:
        # Partial state kept for the error result
        state: Dict[str, Any] = {}
        try:
            return self._process(request, log, state)
        except Exception as e:
            log.error(f"Processing failed: {e}", exc_info=True)
            return ProcessingResult(
                document_id=request.document_id,
                patient_id=request.patient_id,
                status=transition(DocumentStatus.PROCESSING, DocumentStatus.ERROR),
                extraction=state.get("extraction"),
                confidence=state.get("confidence"),
                invariant_report=state.get("invariant_report"),
                merge_decision=blocked_decision(
                    f"Processing error: {e}", status=DocumentStatus.ERROR
                ),
                sections_found=state.get("sections_found", ()),
                method=state.get("method", METHOD),
                error=str(e),
            )

    def _process(
        self,
        request: ProcessingRequest,
        log: DocumentLogAdapter,
        state: Dict[str, Any]
    ) -> ProcessingResult:
        text = request.raw_text

        # Step 1: Header-slice extraction
        sliced = self.extractor.extract(text)
        extraction = sliced.extraction
        state["extraction"] = extraction
        state["sections_found"] = sliced.sections_found
        log.info(f"Sections found: {list(sliced.sections_found)}")

        # Step 2: Optional enrichment of gaps
        extraction, enriched_fields = self._enrich(text, extraction, sliced.has_section(PROCEDURES), log)
        method = ENRICHED_METHOD if enriched_fields else METHOD
        state["extraction"] = extraction
        state["method"] = method

        # Step 3: Invariants (filters medications before scoring)
        extraction, report = self.invariant_checker.check(sliced.sections, extraction, text)
        state["extraction"] = extraction
        state["invariant_report"] = report

        # Step 4: Confidence
        confidence = self.scorer.score(extraction, report, text)
        state["confidence"] = confidence
        log.info(f"Confidence {confidence.score:.2f} ({confidence.level})")

        # Step 5: Conflicts against the stored chart
        facts = convert_to_chart_format(extraction, request.document_id)
        conflicts = self.conflict_detector.detect(facts, request.chart_snapshot, extraction.evidence)

        # Step 6: Merge decision
        text_length = len(text.strip())
        if text_length < self.extraction_config.MIN_TEXT_LENGTH:
            decision = self.merge_gate.insufficient_text(text_length)
        else:
            decision = self.merge_gate.decide(confidence, report, conflicts)

        status = transition(DocumentStatus.PROCESSING, decision.status)
        return ProcessingResult(
            document_id=request.document_id,
            patient_id=request.patient_id,
            status=status,
            extraction=extraction,
            confidence=confidence,
            invariant_report=report,
            conflicts=conflicts,
            merge_decision=decision,
            chart_facts=facts,
            sections_found=sliced.sections_found,
            method=method,
            enriched_fields=tuple(enriched_fields),
        )

    def _enrich(
        self,
        text: str,
        extraction: Extraction,
        has_procedures_header: bool,
        log: DocumentLogAdapter
    ) -> Tuple[Extraction, List[str]]:
        """Fill empty fields from the enricher; never override extracted values."""
        if not self.extraction_config.ENABLE_ENRICHMENT:
            return extraction, []

        missing: List[str] = []
        if not extraction.medications:
            missing.append(MEDICATIONS_FIELD)
        if has_procedures_header and not extraction.surgery.procedures:
            missing.append(PROCEDURES_FIELD)
        if not missing:
            return extraction, []

        try:
            result = self.enricher.fill(missing, text, extraction)
        except Exception as e:
            log.warning(f"Enrichment failed, using deterministic result: {e}")
            return extraction, []

        if result.is_empty:
            return extraction, []
        log.debug(f"Enrichment proposal: {result.to_dict()}")

        # Only the requested gaps may be filled
        enriched, filled = fill_missing(extraction, result.partial, requested=missing)
        if filled:
            log.info(f"Enrichment ({result.source}) filled: {filled}")
        return enriched, filled
