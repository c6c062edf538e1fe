"""
Classification Engine

Step 1 maps the composite score onto the profile's tiers (lower-inclusive
floors, best tier first). Step 2 evaluates the absolute-override rules in
order; if any fires, the worst tier is returned no matter how high the
score is. The override list, not the thresholds, is the safety mechanism.
"""
from __future__ import annotations

from enum import Enum
from typing import List

from .base import ClinicalProfile, IndicatorSet, OverrideRule


def tier_for_score(profile: ClinicalProfile, composite: float) -> Enum:
    """Score-only tier: first tier whose floor the score reaches."""
    for tier in profile.tiers:
        if composite >= tier.min_score:
            return tier.classification
    # unreachable while the last floor is -inf; NaN lands here
    return profile.worst_tier


def fired_overrides(profile: ClinicalProfile, indicators: IndicatorSet) -> List[OverrideRule]:
    """Override rules whose predicate holds, in declaration order."""
    return [rule for rule in profile.overrides if rule.predicate(indicators)]


def classify(profile: ClinicalProfile, composite: float, indicators: IndicatorSet) -> Enum:
    """
    Classify a composite score, honouring absolute overrides.

    Args:
        profile:    Scoring profile (tiers + override rules).
        composite:  Unrounded composite score (0-100).
        indicators: Validated indicators the overrides are evaluated on.
    """
    if fired_overrides(profile, indicators):
        return profile.worst_tier
    return tier_for_score(profile, composite)
