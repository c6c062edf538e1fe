"""
Parsing / Reconstitution Façade

`reconstitute` rebuilds a ScoringResult from a stored record and raises
ReconstitutionError on any defect. `parse` accepts anything and never
raises: it returns a ParseResult that either carries a result or the
error that prevented one.

Stored judgments (classification, risk level, recommendation, flags) are
taken from the record as-is so historical results survive later rule
changes; only fields missing from the record are recomputed.
"""
from __future__ import annotations

import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

import pydantic

from clinical_scoring.core.clinical.base import ClinicalProfile, RecommendationContext, RiskLevel
from clinical_scoring.core.clinical.flags import detect_flags
from clinical_scoring.core.results.schema import ScoringRecord
from clinical_scoring.core.results.scoring_result import ScoringResult
from clinical_scoring.core.scoring import compute_components
from clinical_scoring.core.validation import validate_indicators
from clinical_scoring.utils import ClinicalScoringError, ReconstitutionError, ValidationError, get_logger

if TYPE_CHECKING:
    from clinical_scoring.core.clinical.engine import ClinicalScorer

logger = get_logger(__name__)

# Presence of any of these next to "indicators" marks a stored record
_RECORD_KEYS = frozenset({
    "classification", "severity", "eligibility",
    "composite_score", "compositeScore",
    "recommendation", "treatmentRecommendation",
    "scored_at", "scoredAt",
})


@dataclass(frozen=True)
class ParseResult:
    """Outcome of `parse`: exactly one of `value` / `error` is set."""
    success: bool
    value: Optional[ScoringResult] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, value: ScoringResult) -> "ParseResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, exc: ClinicalScoringError) -> "ParseResult":
        return cls(success=False, error=exc.message, error_code=exc.code, details=dict(exc.details))


# ── Reconstitution ────────────────────────────────────────────────────────────

def _schema_error(exc: pydantic.ValidationError) -> ReconstitutionError:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "record"
    return ReconstitutionError(
        f"Invalid stored record: {location}: {first.get('msg', 'invalid value')}",
        field=location,
        value=first.get("input"),
        details={"error_count": exc.error_count()},
    )


def _label(enum_type: Type[Enum], label: str, field_name: str) -> Enum:
    try:
        return enum_type(label)
    except ValueError:
        raise ReconstitutionError(
            f"Unknown {field_name} label: {label!r}",
            field=field_name,
            value=label,
            details={"allowed": [member.value for member in enum_type]},
        ) from None


def reconstitute(profile: ClinicalProfile, dto: Any) -> ScoringResult:
    """
    Rebuild a result from a stored record.

    Raises:
        ReconstitutionError: missing keys, bad timestamp, unknown enum
            label, foreign profile or invalid stored indicators.
    """
    if not isinstance(dto, Mapping):
        raise ReconstitutionError(
            f"Stored record must be a mapping, got: {type(dto).__name__}",
            field="record", value=type(dto).__name__,
        )

    try:
        record = ScoringRecord.model_validate(dict(dto))
    except pydantic.ValidationError as exc:
        raise _schema_error(exc) from exc

    if record.profile is not None and record.profile != profile.name:
        raise ReconstitutionError(
            f"Record belongs to profile '{record.profile}', not '{profile.name}'",
            field="profile", value=record.profile,
        )

    try:
        indicators = validate_indicators(profile, record.indicators)
    except ValidationError as exc:
        raise ReconstitutionError(
            f"Stored indicators are invalid: {exc.message}",
            field=f"indicators.{exc.field}",
            value=exc.value,
            details={"valid_range": exc.details.get("valid_range")},
        ) from exc

    classification = _label(profile.classification_type, record.classification, "classification")
    risk_level = _label(RiskLevel, record.risk_level, "risk_level")
    recommendation = _label(profile.recommendation_type, record.recommendation, "recommendation")

    report = None
    if record.flags is None or record.contraindications is None:
        report = detect_flags(profile, indicators)

    if record.flags is None:
        flags = report.flags
    else:
        flags = frozenset(_label(profile.flag_type, label, "flags") for label in record.flags)

    contraindications = report.contraindications if record.contraindications is None else record.contraindications

    if record.component_scores is None:
        component_scores = compute_components(profile, indicators)
    else:
        component_scores = dict(record.component_scores)

    # stored annotations win; keys an older record lacks are derived
    context = RecommendationContext(classification, flags, indicators, risk_level)
    annotations = profile.annotate(context, recommendation)
    if record.annotations is not None:
        annotations.update(record.annotations)

    return ScoringResult(
        profile=profile,
        indicators=indicators,
        composite_score=record.composite_score,
        component_scores=component_scores,
        classification=classification,
        risk_level=risk_level,
        flags=flags,
        contraindications=tuple(contraindications),
        recommendation=recommendation,
        confidence=record.confidence,
        scored_at=record.scored_at,
        algorithm_version=record.algorithm_version or profile.algorithm_version,
        annotations=annotations,
    )


# ── Lenient parsing ───────────────────────────────────────────────────────────

def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _interpret(scorer: "ClinicalScorer", unknown: Any) -> ScoringResult:
    profile = scorer.profile

    if isinstance(unknown, ScoringResult):
        if unknown.profile.name != profile.name:
            raise ReconstitutionError(
                f"Result belongs to profile '{unknown.profile.name}', not '{profile.name}'",
                field="profile", value=unknown.profile.name,
            )
        return unknown

    if _is_number(unknown):
        return scorer.from_partial_signal(unknown)

    if not isinstance(unknown, Mapping):
        raise ValidationError(
            f"Cannot interpret {type(unknown).__name__} as {profile.name} input",
            field="input", value=type(unknown).__name__,
        )

    keys = set(unknown)
    if "indicators" in keys:
        if keys & _RECORD_KEYS:
            return reconstitute(profile, unknown)
        extra = keys - {"indicators", "confidence"}
        if extra:
            raise ValidationError(
                f"Unexpected keys next to indicators: {sorted(map(str, extra))}",
                field=str(sorted(map(str, extra))[0]), value=None,
            )
        return scorer.from_indicators(unknown["indicators"], confidence=unknown.get("confidence"))

    # unknown keys go to from_indicators, which rejects them by name
    unknown_keys = [
        key for key in keys
        if not isinstance(key, str) or profile.canonical_key(key) is None
    ]
    if unknown_keys:
        return scorer.from_indicators(unknown)

    # headline present but not a complete indicator set → screening estimate
    names = {profile.canonical_key(key): key for key in keys}
    headline_key = names.get(profile.headline_field)
    missing_required = [
        rule.name for rule in profile.fields
        if rule.required and rule.name not in names
    ]
    if headline_key is not None and missing_required:
        known = {key: value for key, value in unknown.items() if key != headline_key}
        return scorer.from_partial_signal(unknown[headline_key], **known)

    return scorer.from_indicators(unknown)


def parse(scorer: "ClinicalScorer", unknown: Any) -> ParseResult:
    """
    Interpret arbitrary input as a result for the scorer's profile.

    Order: existing result (same profile) → stored record →
    `{"indicators": ...}` → bare headline number or headline-led partial
    mapping → flat indicator mapping. Never raises for clinical input
    errors; they come back as a failed ParseResult.
    """
    try:
        return ParseResult.ok(_interpret(scorer, unknown))
    except ClinicalScoringError as exc:
        logger.debug(
            f"parse failed: {exc.message}",
            extra={"profile": scorer.profile.name, "error_code": exc.code},
        )
        return ParseResult.fail(exc)
