# ============================================================================
# src/chart_extraction/config/extraction_config.py
# ============================================================================
"""
Extraction Settings
- Minimum usable text length
- Medication filtering limits
- Summary / evidence snippet sizes
- Medication vocabulary override
- Enrichment toggle
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    MIN_TEXT_LENGTH: int = Field(
        default=50,
        ge=0,
        description="Documents with less stripped text than this go to review as insufficient text"
    )
    MAX_MEDICATION_WORDS: int = Field(
        default=6,
        ge=1,
        description="Medication entries longer than this are dropped as prose"
    )
    SUMMARY_LENGTH: int = Field(default=600, ge=0)
    EVIDENCE_SNIPPET_LENGTH: int = Field(default=200, ge=1)
    CONTINUATION_MAX_LENGTH: int = Field(
        default=60,
        ge=1,
        description="Unindented lowercase lines shorter than this continue the previous list item"
    )
    MEDICATION_VOCABULARY_PATH: Optional[Path] = Field(
        default=None,
        description="JSON file replacing the built-in medication vocabulary table"
    )
    ENABLE_ENRICHMENT: bool = Field(
        default=True,
        description="Call the configured FieldEnricher when deterministic extraction leaves gaps"
    )


extraction_settings = ExtractionSettings()
