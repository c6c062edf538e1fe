"""
Scoring Module

Weighted composite score over profile-specific component sub-scores.
"""
from .composite import CompositeResult, compute_composite, compute_components, clamp_score, display_round

__all__ = [
    "CompositeResult",
    "compute_composite",
    "compute_components",
    "clamp_score",
    "display_round",
]
