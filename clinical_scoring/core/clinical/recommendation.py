"""
Treatment Recommendation Resolver

Walks the profile's ordered decision rules (most specific first) and
returns the first recommendation whose predicate holds; if none does,
the default recommendation of the classification tier applies.
"""
from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional

from .base import (
    ClinicalProfile,
    IndicatorSet,
    RecommendationContext,
    RiskLevel,
)


def resolve_recommendation(
    profile: ClinicalProfile,
    classification: Enum,
    flags: FrozenSet[Enum],
    indicators: IndicatorSet,
    risk_level: Optional[RiskLevel] = None,
) -> Enum:
    """
    Resolve one recommendation for a classified indicator set.

    `risk_level` is derived from the indicators when not supplied.
    """
    if risk_level is None:
        risk_level = profile.assess_risk(indicators)

    context = RecommendationContext(
        classification=classification,
        flags=frozenset(flags),
        indicators=indicators,
        risk_level=risk_level,
    )

    for rule in profile.recommendation_rules:
        if rule.predicate(context):
            return rule.recommendation

    return profile.default_recommendation(classification)
