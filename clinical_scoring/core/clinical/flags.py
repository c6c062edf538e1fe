"""
Risk Flag / Contraindication Detector

Each flag comes from one independent boolean rule; flags accumulate into
a set. Contraindications are the reasons of the override rules that fire,
taken from the same OverrideRule tuple the classifier uses, so every
contraindication maps to exactly one override predicate.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Tuple

from .base import ClinicalProfile, IndicatorSet
from .classification import fired_overrides


@dataclass(frozen=True)
class FlagReport:
    flags: FrozenSet[Enum]
    contraindications: Tuple[str, ...]

    @property
    def has_contraindication(self) -> bool:
        return bool(self.contraindications)


def detect_flags(profile: ClinicalProfile, indicators: IndicatorSet) -> FlagReport:
    """Evaluate informational flag rules and override rules."""
    flags = {rule.flag for rule in profile.flag_rules if rule.predicate(indicators)}

    overrides = fired_overrides(profile, indicators)
    flags.update(rule.flag for rule in overrides)

    return FlagReport(
        flags=frozenset(flags),
        contraindications=tuple(rule.reason for rule in overrides),
    )
