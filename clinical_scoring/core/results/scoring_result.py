"""
Scoring Result Value Object

Immutable outcome of one pipeline run: validated indicators, composite
and component scores, classification, risk level, flags,
contraindications, recommendation, confidence and provenance.

Instances are created by ClinicalScorer (from indicators, from a partial
signal, or by reconstitution). "Mutating" operations return new
instances; the original is never touched.
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from clinical_scoring.core.clinical.base import (
    CLINICAL_SLA_HOURS,
    ClinicalProfile,
    FollowUpUrgency,
    IndicatorSet,
    RiskLevel,
    TaskPriority,
)
from clinical_scoring.core.scoring import display_round
from clinical_scoring.core.validation import normalize_keys
from clinical_scoring.utils import ClinicalScoringError, ValidationError

CONFIDENCE_DECIMALS = 3


def check_confidence(value: Any) -> float:
    """Confidence must be a finite number in [0, 1]; rounded to 3 decimals."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise ValidationError(
            f"Confidence must be a finite number between 0 and 1, got: {value!r}",
            field="confidence", value=value, valid_range=(0.0, 1.0),
        )
    if value < 0 or value > 1:
        raise ValidationError(
            f"Confidence must be between 0 and 1, got: {value!r}",
            field="confidence", value=value, valid_range=(0.0, 1.0),
        )
    return round(float(value), CONFIDENCE_DECIMALS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=False)
class ScoringResult:
    """
    Complete, immutable scoring outcome for one profile.

    Equality and hashing cover the clinical content only (profile,
    indicators, composite, classification, risk, flags, recommendation);
    confidence and timestamp are provenance and do not participate.
    """
    profile: ClinicalProfile
    indicators: IndicatorSet
    composite_score: float                 # unrounded, 0-100
    component_scores: Mapping[str, float]
    classification: Enum
    risk_level: RiskLevel
    flags: FrozenSet[Enum]
    contraindications: Tuple[str, ...]
    recommendation: Enum
    confidence: float
    scored_at: datetime = field(default_factory=utc_now)
    algorithm_version: str = ""
    annotations: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "confidence", check_confidence(self.confidence))
        object.__setattr__(self, "flags", frozenset(self.flags))
        object.__setattr__(self, "contraindications", tuple(self.contraindications))
        object.__setattr__(self, "component_scores", MappingProxyType(dict(self.component_scores)))
        object.__setattr__(self, "annotations", MappingProxyType(dict(self.annotations)))
        if self.scored_at.tzinfo is None:
            object.__setattr__(self, "scored_at", self.scored_at.replace(tzinfo=timezone.utc))
        if not self.algorithm_version:
            object.__setattr__(self, "algorithm_version", self.profile.algorithm_version)

    # ── Identity ──────────────────────────────────────────────────────────
    def _identity(self) -> tuple:
        return (
            self.profile.name,
            self.indicators,
            self.composite_score,
            self.classification,
            self.risk_level,
            self.flags,
            self.recommendation,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScoringResult):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    # ── Queries ───────────────────────────────────────────────────────────
    @property
    def display_score(self) -> float:
        return display_round(self.composite_score)

    @property
    def severity_rank(self) -> int:
        return self.profile.severity_rank(self.classification)

    @property
    def is_overridden(self) -> bool:
        """True when an absolute override forced the worst tier."""
        return bool(self.contraindications)

    @property
    def is_best_tier(self) -> bool:
        return self.classification == self.profile.best_tier

    @property
    def is_worst_tier(self) -> bool:
        return self.classification == self.profile.worst_tier

    def has_flag(self, flag: Union[Enum, str]) -> bool:
        try:
            return self.profile.flag_type(flag) in self.flags
        except ValueError:
            return False

    @property
    def follow_up_urgency(self) -> FollowUpUrgency:
        return FollowUpUrgency(self.annotations.get("follow_up_urgency", FollowUpUrgency.ROUTINE.value))

    @property
    def clinical_review_sla_hours(self) -> int:
        return CLINICAL_SLA_HOURS[self.follow_up_urgency]

    def _annotated(self, key: str) -> bool:
        return self.annotations.get(key) == "yes"

    @property
    def task_priority(self) -> TaskPriority:
        return TaskPriority(self.annotations.get("task_priority", TaskPriority.LOW.value))

    @property
    def requires_specialist_consultation(self) -> bool:
        return self._annotated("specialist_consultation")

    @property
    def is_immediate_loading_feasible(self) -> bool:
        return self._annotated("immediate_loading")

    @property
    def can_proceed_immediately(self) -> bool:
        return self._annotated("proceed_immediately")

    @property
    def requires_urgent_intervention(self) -> bool:
        return self._annotated("urgent_intervention")

    @property
    def requires_cpap(self) -> bool:
        """True for CPAP and BiPAP recommendations."""
        return self._annotated("requires_cpap")

    @property
    def estimated_treatment_months(self) -> Optional[int]:
        """Treatment duration estimate; None for profiles that do not plan one."""
        months = self.annotations.get("treatment_months")
        return None if months is None else int(months)

    @property
    def risk_factors(self) -> Tuple[str, ...]:
        return self.profile.risk_factors(self.indicators)

    @property
    def clinical_summary(self) -> str:
        """One-line summary: tier, score, risk, then profile-specific details."""
        parts = [
            f"{self.classification.value} (score {self.display_score:.1f})",
            f"Risk: {self.risk_level.value}",
        ]
        parts.extend(self.profile.summary_details(self.indicators, self.annotations, self.recommendation))
        return " | ".join(parts)

    # ── Comparison ────────────────────────────────────────────────────────
    def severity_key(self) -> Tuple[int, float]:
        """Sort key, least severe first."""
        return (self.severity_rank, -self.composite_score)

    def compare_to(self, other: "ScoringResult") -> int:
        """
        Positive when `self` is more severe than `other`, negative when
        less severe, 0 when equivalent.

        Tier index decides first; within a tier the lower composite
        score is the more severe one.
        """
        if self.profile.name != other.profile.name:
            raise ClinicalScoringError(
                f"Cannot compare {self.profile.name} result with {other.profile.name} result",
                code="PROFILE_MISMATCH",
                details={"profiles": [self.profile.name, other.profile.name]},
            )
        if self.severity_rank != other.severity_rank:
            return 1 if self.severity_rank > other.severity_rank else -1
        if self.composite_score != other.composite_score:
            return 1 if self.composite_score < other.composite_score else -1
        return 0

    def is_worse_than(self, other: "ScoringResult") -> bool:
        return self.compare_to(other) > 0

    def is_better_than(self, other: "ScoringResult") -> bool:
        return self.compare_to(other) < 0

    # ── Copy-on-write ─────────────────────────────────────────────────────
    def with_updated_indicators(self, partial: Mapping[str, Any]) -> "ScoringResult":
        """
        Merge `partial` into the current indicators and re-run the full
        pipeline. Confidence is kept; a `None` value removes an optional
        indicator.
        """
        from clinical_scoring.core.clinical.engine import ClinicalScorer

        if not isinstance(partial, Mapping):
            raise ValidationError(
                f"Indicator update must be a mapping, got: {type(partial).__name__}",
                field="indicators", value=type(partial).__name__,
            )
        merged: Dict[str, Any] = self.indicators.to_dict()
        merged.update(normalize_keys(self.profile, partial))
        return ClinicalScorer(self.profile).from_indicators(merged, confidence=self.confidence)

    def with_confidence(self, confidence: float) -> "ScoringResult":
        return replace(self, confidence=check_confidence(confidence))

    # ── Serialization ─────────────────────────────────────────────────────
    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.name,
            "indicators": self.indicators.to_dict(),
            "composite_score": self.composite_score,
            "display_score": self.display_score,
            "component_scores": dict(self.component_scores),
            "classification": self.classification.value,
            "risk_level": self.risk_level.value,
            "flags": [flag.value for flag in self.profile.ordered_flags(self.flags)],
            "contraindications": list(self.contraindications),
            "recommendation": self.recommendation.value,
            "confidence": self.confidence,
            "scored_at": self.scored_at.isoformat(),
            "algorithm_version": self.algorithm_version,
            "annotations": dict(self.annotations),
        }

    def to_compact_string(self) -> str:
        return f"{self.profile.tag}[{self.classification.value}:{self.display_score:.1f}]"

    def __str__(self) -> str:
        text = (
            f"{self.profile.title}: {self.classification.value} "
            f"(score {self.display_score:.1f}/100, risk {self.risk_level.value}, "
            f"recommendation {self.recommendation.value}, confidence {self.confidence:.0%})"
        )
        if self.contraindications:
            text += f" - contraindications: {'; '.join(self.contraindications)}"
        return text

    def __repr__(self) -> str:
        return (
            f"ScoringResult(profile={self.profile.name!r}, "
            f"classification={self.classification.value}, "
            f"composite={self.composite_score:.3f}, risk={self.risk_level.value})"
        )
