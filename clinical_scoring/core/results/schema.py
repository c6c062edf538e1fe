"""
Stored Result Record Schema

Pydantic model for a previously serialized ScoringResult. Accepts the
snake_case keys written by `ScoringResult.to_dict()`, their camelCase
equivalents, and the legacy record keys (`severity` / `eligibility`,
`treatmentRecommendation`, `cardiovascularRisk`).

Only the shape is checked here; enum labels and indicator ranges are
checked against the profile during reconstitution.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ScoringRecord(BaseModel):
    """Serialized scoring result as stored by a caller."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False, frozen=True)

    profile: Optional[str] = None
    indicators: Dict[str, Any]
    composite_score: float = Field(
        ge=0, le=100,
        validation_alias=AliasChoices("composite_score", "compositeScore"),
    )
    component_scores: Optional[Dict[str, float]] = Field(
        default=None,
        validation_alias=AliasChoices("component_scores", "componentScores"),
    )
    classification: str = Field(
        validation_alias=AliasChoices("classification", "severity", "eligibility"),
    )
    risk_level: str = Field(
        validation_alias=AliasChoices("risk_level", "riskLevel", "cardiovascularRisk"),
    )
    flags: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("flags", "riskFlags"),
    )
    contraindications: Optional[List[str]] = None
    recommendation: str = Field(
        validation_alias=AliasChoices("recommendation", "treatmentRecommendation"),
    )
    confidence: float = Field(ge=0, le=1)
    scored_at: datetime = Field(
        validation_alias=AliasChoices("scored_at", "scoredAt"),
    )
    algorithm_version: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("algorithm_version", "algorithmVersion"),
    )
    annotations: Optional[Dict[str, str]] = None

    @field_validator("scored_at", mode="before")
    @classmethod
    def timestamp_must_be_text_or_datetime(cls, value: Any) -> Any:
        # numbers would otherwise be read as epoch seconds
        if not isinstance(value, (str, datetime)):
            raise ValueError("scored_at must be an ISO-8601 string or a datetime")
        return value

    @field_validator("scored_at")
    @classmethod
    def timestamp_is_utc_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
