"""
Clinical Scoring Engine

Runs the generic pipeline for one registered profile:

    validate → composite → classify → flags → risk → recommendation → result

Usage:
    from clinical_scoring import get_scorer

    scorer = get_scorer("respiratory")
    result = scorer.from_indicators({"apnea_index": 12, ...})
    print(result.classification, result.recommendation)

Adding a new profile:
    1. Create  clinical_scoring/core/clinical/rules_<profile>.py
    2. Build a ClinicalProfile descriptor in it
    3. Register it in _PROFILES below.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

from .base import ClinicalProfile, IndicatorSet, RecommendationContext
from .classification import classify
from .flags import detect_flags
from .recommendation import resolve_recommendation
from .rules_implant import IMPLANT_PROFILE
from .rules_respiratory import RESPIRATORY_PROFILE
from clinical_scoring.core.results.parsing import ParseResult, parse, reconstitute
from clinical_scoring.core.results.scoring_result import ScoringResult, check_confidence
from clinical_scoring.core.scoring import compute_composite
from clinical_scoring.core.validation import check_field, normalize_keys, validate_indicators
from clinical_scoring.utils import UnknownProfileError, ValidationError, get_logger

logger = get_logger(__name__)

# ── Registry: profile name → descriptor ──────────────────────────────────────
_PROFILES: Dict[str, ClinicalProfile] = {
    RESPIRATORY_PROFILE.name: RESPIRATORY_PROFILE,
    IMPLANT_PROFILE.name:     IMPLANT_PROFILE,
}


def available_profiles() -> Tuple[str, ...]:
    """Names of the registered scoring profiles."""
    return tuple(_PROFILES)


def get_profile(name: str) -> ClinicalProfile:
    try:
        return _PROFILES[name]
    except (KeyError, TypeError):
        raise UnknownProfileError(str(name), available_profiles()) from None


class ClinicalScorer:
    """
    Scores indicator sets for one profile and builds ScoringResults.

    Stateless apart from the immutable profile, so one instance may be
    shared across threads.
    """

    def __init__(self, profile: Union[ClinicalProfile, str]):
        self.profile = get_profile(profile) if isinstance(profile, str) else profile

    def __repr__(self) -> str:
        return f"ClinicalScorer({self.profile.name!r})"

    # ── Pipeline ──────────────────────────────────────────────────────────
    def score(self, indicators: IndicatorSet, confidence: float) -> ScoringResult:
        """Run composite → classification → flags → recommendation on validated input."""
        profile = self.profile

        composite = compute_composite(profile, indicators)
        classification = classify(profile, composite.composite, indicators)
        report = detect_flags(profile, indicators)
        risk_level = profile.assess_risk(indicators)
        recommendation = resolve_recommendation(
            profile, classification, report.flags, indicators, risk_level,
        )
        context = RecommendationContext(classification, report.flags, indicators, risk_level)

        result = ScoringResult(
            profile=profile,
            indicators=indicators,
            composite_score=composite.composite,
            component_scores=composite.components,
            classification=classification,
            risk_level=risk_level,
            flags=report.flags,
            contraindications=report.contraindications,
            recommendation=recommendation,
            confidence=confidence,
            algorithm_version=profile.algorithm_version,
            annotations=profile.annotate(context, recommendation),
        )

        logger.debug(
            f"ClinicalScorer: {result.to_compact_string()} "
            f"risk={risk_level.value} rec={recommendation.value}"
            + (f" overrides={len(report.contraindications)}" if report.contraindications else ""),
            extra={"profile": profile.name, "classification": classification.value},
        )
        return result

    # ── Factories ─────────────────────────────────────────────────────────
    def from_indicators(self, raw: Any, confidence: Optional[float] = None) -> ScoringResult:
        """
        Validate a full indicator record and score it.

        Raises:
            ValidationError: out-of-range, wrong-typed, missing or
                inconsistent indicators, or confidence outside [0, 1].
        """
        confidence = self.profile.full_confidence if confidence is None else check_confidence(confidence)
        indicators = validate_indicators(self.profile, raw)
        return self.score(indicators, confidence)

    def from_partial_signal(self, value: Any, confidence: Optional[float] = None, **known: Any) -> ScoringResult:
        """
        Screening result from the profile's headline measurement.

        Missing indicators are estimated from the headline value; any
        indicator passed as a keyword overrides its estimate. Confidence
        defaults to the profile's (lower) screening confidence.
        """
        profile = self.profile
        confidence = profile.screening_confidence if confidence is None else check_confidence(confidence)

        headline = check_field(profile, profile.headline_field, value)
        overrides = normalize_keys(profile, known)
        if profile.headline_field in overrides:
            raise ValidationError(
                f"Indicator '{profile.headline_field}' supplied more than once",
                field=profile.headline_field, value=overrides[profile.headline_field],
            )

        estimated = profile.estimate_from_headline(headline, **overrides)
        logger.debug(
            f"ClinicalScorer: screening estimate from "
            f"{profile.headline_field}={headline} ({len(overrides)} known)",
            extra={"profile": profile.name},
        )
        return self.score(validate_indicators(profile, estimated), confidence)

    def reconstitute(self, dto: Any) -> ScoringResult:
        """Rebuild a stored result; raises ReconstitutionError."""
        return reconstitute(self.profile, dto)

    def parse(self, unknown: Any) -> ParseResult:
        """Best-effort interpretation of arbitrary input; never raises."""
        return parse(self, unknown)


def get_scorer(name: str) -> ClinicalScorer:
    return ClinicalScorer(get_profile(name))
