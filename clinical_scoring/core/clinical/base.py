"""
Clinical Decision Layer — Base Types

Defines the data contracts every scoring profile is built from.
These are profile-agnostic and consumed by the generic pipeline
(validator → composite → classifier → flags → recommendation).

A profile is pure data plus small pure callables; adding a profile means
writing one `rules_<profile>.py` module and registering its descriptor.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterator, NamedTuple, Optional, Tuple, Type


class RiskLevel(str, Enum):
    """
    Ordered risk level shared by all profiles.

    LOW      – no action beyond the tier's standard pathway
    MODERATE – review risk factors at the next visit
    HIGH     – address risk factors before treatment
    CRITICAL – immediate clinical attention
    """
    LOW      = "LOW"
    MODERATE = "MODERATE"
    HIGH     = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RISK_ORDER[self]


_RISK_ORDER = {
    RiskLevel.LOW:      0,
    RiskLevel.MODERATE: 1,
    RiskLevel.HIGH:     2,
    RiskLevel.CRITICAL: 3,
}


class FollowUpUrgency(str, Enum):
    """How soon a clinician should review the result."""
    ROUTINE   = "routine"
    SOON      = "soon"
    URGENT    = "urgent"
    IMMEDIATE = "immediate"


class TaskPriority(str, Enum):
    """Work-queue priority for the clinical review task."""
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"


# SLA response times for clinical review (hours)
CLINICAL_SLA_HOURS = {
    FollowUpUrgency.IMMEDIATE: 4,
    FollowUpUrgency.URGENT:    24,
    FollowUpUrgency.SOON:      72,
    FollowUpUrgency.ROUTINE:   168,   # 1 week
}


# ── Indicator schema ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FieldRule:
    """Declared range and type of one clinical indicator."""
    name: str                    # snake_case key, e.g. "apnea_index"
    alias: str                   # camelCase key accepted on input, e.g. "apneaIndex"
    minimum: float = 0.0
    maximum: float = 0.0
    unit: str = ""
    description: str = ""
    required: bool = True
    integer: bool = False
    boolean: bool = False

    @property
    def valid_range(self) -> Optional[Tuple[float, float]]:
        if self.boolean:
            return None
        return (self.minimum, self.maximum)


@dataclass(frozen=True)
class CrossFieldRule:
    """`lower` must not exceed `upper` when both are present."""
    lower: str
    upper: str
    description: str = ""


@dataclass(frozen=True)
class IndicatorSet(Mapping):
    """
    Immutable, fully validated set of indicators for one profile.

    Only the validator constructs these. Iteration follows the profile's
    field order; absent optional fields are omitted.
    """
    profile: str
    entries: Tuple[Tuple[str, Any], ...]
    _lookup: Dict[str, Any] = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "_lookup", dict(self.entries))

    def __getitem__(self, key: str) -> Any:
        return self._lookup[key]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"IndicatorSet({self.profile}, {dict(self.entries)!r})"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.entries)


# ── Scoring / classification building blocks ─────────────────────────────────

@dataclass(frozen=True)
class ScoreComponent:
    """One weighted 0–100 sub-score (higher = better)."""
    name: str
    weight: float
    compute: Callable[[IndicatorSet], float]


@dataclass(frozen=True)
class ScoreTier:
    """Lower-inclusive score floor for a classification tier."""
    classification: Enum
    min_score: float


@dataclass(frozen=True)
class OverrideRule:
    """
    Absolute override: forces the worst tier when `predicate` is true.

    The same rule yields the contraindication `reason` and raises `flag`,
    so classifier and flag detector can never disagree.
    """
    flag: Enum
    reason: str
    predicate: Callable[[IndicatorSet], bool]


@dataclass(frozen=True)
class FlagRule:
    """Informational risk flag; never affects classification."""
    flag: Enum
    predicate: Callable[[IndicatorSet], bool]


class RecommendationContext(NamedTuple):
    classification: Enum
    flags: FrozenSet[Enum]
    indicators: IndicatorSet
    risk_level: RiskLevel


@dataclass(frozen=True)
class RecommendationRule:
    """One branch of the ordered recommendation decision tree."""
    recommendation: Enum
    predicate: Callable[[RecommendationContext], bool]
    description: str = ""


# ── Profile descriptor ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClinicalProfile:
    """
    Everything the generic pipeline needs to score one clinical domain.

    `tiers` are ordered best → worst; the last tier must have
    `min_score = -inf` so every score maps to a tier.
    """
    name: str
    title: str
    tag: str
    algorithm_version: str

    fields: Tuple[FieldRule, ...]
    cross_field_rules: Tuple[CrossFieldRule, ...]
    components: Tuple[ScoreComponent, ...]
    tiers: Tuple[ScoreTier, ...]
    overrides: Tuple[OverrideRule, ...]
    flag_rules: Tuple[FlagRule, ...]
    recommendation_rules: Tuple[RecommendationRule, ...]
    tier_recommendations: Tuple[Tuple[Enum, Enum], ...]

    classification_type: Type[Enum]
    recommendation_type: Type[Enum]
    flag_type: Type[Enum]

    assess_risk: Callable[[IndicatorSet], RiskLevel]
    annotate: Callable[[RecommendationContext, Enum], Dict[str, str]]
    risk_factors: Callable[[IndicatorSet], Tuple[str, ...]]
    summary_details: Callable[[IndicatorSet, Mapping, Enum], Tuple[str, ...]]

    headline_field: str
    estimate_from_headline: Callable[..., Dict[str, Any]]
    full_confidence: float = 0.9
    screening_confidence: float = 0.7

    def __post_init__(self):
        if not self.tiers or self.tiers[-1].min_score != -math.inf:
            raise ValueError(f"Profile '{self.name}': last tier must be open-ended (-inf)")
        total = sum(c.weight for c in self.components)
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Profile '{self.name}': component weights sum to {total}, expected 1.0")

    # ── Lookups ───────────────────────────────────────────────────────────
    def field_rule(self, name: str) -> Optional[FieldRule]:
        for rule in self.fields:
            if rule.name == name:
                return rule
        return None

    def canonical_key(self, key: str) -> Optional[str]:
        """Map a snake_case name or camelCase alias to the field name."""
        for rule in self.fields:
            if key == rule.name or key == rule.alias:
                return rule.name
        return None

    @property
    def best_tier(self) -> Enum:
        return self.tiers[0].classification

    @property
    def worst_tier(self) -> Enum:
        return self.tiers[-1].classification

    def severity_rank(self, classification: Enum) -> int:
        """0 for the best tier, increasing towards the worst."""
        for index, tier in enumerate(self.tiers):
            if tier.classification == classification:
                return index
        raise KeyError(f"{classification!r} is not a tier of profile '{self.name}'")

    def default_recommendation(self, classification: Enum) -> Enum:
        for tier_class, recommendation in self.tier_recommendations:
            if tier_class == classification:
                return recommendation
        raise KeyError(f"No default recommendation for {classification!r} in '{self.name}'")

    def ordered_flags(self, flags) -> Tuple[Enum, ...]:
        """Flags in enum declaration order (deterministic serialization)."""
        return tuple(flag for flag in self.flag_type if flag in flags)
