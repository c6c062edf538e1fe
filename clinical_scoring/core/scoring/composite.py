"""
Composite Score Calculator

Turns a validated IndicatorSet into a 0-100 composite score plus the
named component sub-scores it was built from.

Every component is 0-100 with higher = better (less severe / more
eligible). The composite is the weighted sum of the components, clipped
to [0, 100] and snapped to 9 decimals, so a sum that is exactly on a tier
floor (80, 60, 40) compares as such. Rounding to one decimal happens only
for display.

Pure and total over any validated indicator set: never raises.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import numpy as np

from clinical_scoring.core.clinical.base import ClinicalProfile, IndicatorSet

SCORE_MIN = 0.0
SCORE_MAX = 100.0
DISPLAY_DECIMALS = 1
# float noise from the weighted sum is dropped below this precision
COMPOSITE_DECIMALS = 9


@dataclass(frozen=True)
class CompositeResult:
    """Composite score with its component breakdown."""
    composite: float
    components: Mapping[str, float]

    @property
    def display_score(self) -> float:
        return display_round(self.composite)


def display_round(score: float) -> float:
    return round(score, DISPLAY_DECIMALS)


def clamp_score(value: float) -> float:
    """Clamp to [0, 100]; non-finite values collapse to 0."""
    if not np.isfinite(value):
        return SCORE_MIN
    return float(np.clip(value, SCORE_MIN, SCORE_MAX))


def compute_components(profile: ClinicalProfile, indicators: IndicatorSet) -> Mapping[str, float]:
    """Evaluate each component sub-score, independently bounded to [0, 100]."""
    return MappingProxyType({
        component.name: clamp_score(component.compute(indicators))
        for component in profile.components
    })


def compute_composite(profile: ClinicalProfile, indicators: IndicatorSet) -> CompositeResult:
    """
    Weighted composite of the profile's components.

    Returns:
        CompositeResult with the composite (snapped to COMPOSITE_DECIMALS,
        not display-rounded) and the component scores.
    """
    components = compute_components(profile, indicators)
    weights = np.array([c.weight for c in profile.components], dtype=float)
    values = np.array([components[c.name] for c in profile.components], dtype=float)

    # 0.35 * 96 + ... can land on 79.99999999999999 instead of 80
    composite = clamp_score(round(float(np.dot(weights, values)), COMPOSITE_DECIMALS))
    return CompositeResult(composite=composite, components=components)
