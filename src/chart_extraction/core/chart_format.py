# ============================================================================
# src/chart_extraction/core/chart_format.py
# ============================================================================
"""
Conversion from an Extraction to chart-format facts.
"""

from typing import Optional, Union

from .context.chart import ChartFacts, SurgeryRecord
from .context.extraction import Extraction


def convert_to_chart_format(
    extraction: Extraction,
    document_id: Optional[Union[str, int]] = None
) -> ChartFacts:
    """
    Express an extraction in the shape the patient chart stores.

    - one surgery record when the document describes a surgery
    - diagnoses: preop followed by postop, case-insensitive duplicates dropped
    - medications and allergies unchanged

    Args:
        extraction: Checked extraction
        document_id: Source document, stamped on the surgery record

    Returns:
        ChartFacts
    """
    source = str(document_id) if document_id is not None else None
    surgery = extraction.surgery

    surgeries = ()
    if surgery.has_surgery or surgery.procedures:
        surgeries = (SurgeryRecord(
            date=surgery.date,
            procedures=surgery.procedures,
            surgeon=surgery.surgeon or extraction.doc.provider,
            source_document_id=source,
        ),)

    return ChartFacts(
        surgeries=surgeries,
        diagnoses=extraction.diagnoses.all(),
        medications=extraction.medications,
        allergies=extraction.allergies,
        record_number=extraction.doc.record_number,
        summary=extraction.summary,
        source_document_id=source,
    )
