# ============================================================================
# src/chart_extraction/config/thresholds_config.py
# ============================================================================
"""
Confidence Thresholds and Weights
- Merge eligibility thresholds
- Document-level confidence weights
- Invariant violation penalty
- Procedure overlap threshold for conflict detection

The weights are hand-tuned constants carried over unchanged; they are
flagged for calibration review rather than re-derived.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ThresholdSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    AUTO_MERGE_THRESHOLD: float = Field(
        default=0.80,
        ge=0.0, le=1.0,
        description="At or above this score a document may merge unattended"
    )
    REVIEW_THRESHOLD: float = Field(
        default=0.60,
        ge=0.0, le=1.0,
        description="At or above this score a document may merge but is flagged for review. Below it, merge is blocked."
    )
    INVARIANT_PENALTY: float = Field(
        default=0.15,
        ge=0.0, le=1.0,
        description="Subtracted once per header-present-but-list-empty violation"
    )

    WEIGHT_SURGERY_DATE: float = Field(default=0.25, ge=0.0, le=1.0)
    WEIGHT_PROCEDURES: float = Field(default=0.20, ge=0.0, le=1.0)
    WEIGHT_DIAGNOSES: float = Field(default=0.20, ge=0.0, le=1.0)
    WEIGHT_ALLERGIES: float = Field(default=0.10, ge=0.0, le=1.0)
    WEIGHT_MEDICATIONS: float = Field(default=0.10, ge=0.0, le=1.0)
    WEIGHT_METADATA: float = Field(
        default=0.10,
        ge=0.0, le=1.0,
        description="Added when surgeon/provider or facility is present"
    )
    WEIGHT_EVIDENCE: float = Field(
        default=0.05,
        ge=0.0, le=1.0,
        description="Added when at least one verbatim evidence snippet was captured"
    )

    PROCEDURE_OVERLAP_THRESHOLD: float = Field(
        default=0.70,
        ge=0.0, le=1.0,
        description="Token overlap at which two procedure names count as the same surgery"
    )

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.REVIEW_THRESHOLD > self.AUTO_MERGE_THRESHOLD:
            raise ValueError("REVIEW_THRESHOLD must not exceed AUTO_MERGE_THRESHOLD")
        if self.total_weight() > 1.0 + 1e-9:
            raise ValueError(f"Confidence weights sum to {self.total_weight():.2f}, above 1.0")
        return self

    def total_weight(self) -> float:
        return (
            self.WEIGHT_SURGERY_DATE
            + self.WEIGHT_PROCEDURES
            + self.WEIGHT_DIAGNOSES
            + self.WEIGHT_ALLERGIES
            + self.WEIGHT_MEDICATIONS
            + self.WEIGHT_METADATA
            + self.WEIGHT_EVIDENCE
        )


threshold_settings = ThresholdSettings()
