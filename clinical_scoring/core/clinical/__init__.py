"""
Clinical Decision Layer

Turns validated clinical indicators into a classified, flagged and
recommended ScoringResult.

Usage:
    from clinical_scoring.core.clinical import ClinicalScorer

    scorer = ClinicalScorer("implant")
    result = scorer.from_indicators(indicators)
"""
from .base import ClinicalProfile, IndicatorSet, RiskLevel, FollowUpUrgency, TaskPriority, CLINICAL_SLA_HOURS
from .engine import ClinicalScorer, available_profiles, get_profile, get_scorer
from .rules_respiratory import (
    RESPIRATORY_PROFILE,
    RespiratoryFlag,
    RespiratoryRecommendation,
    RespiratorySeverity,
)
from .rules_implant import (
    IMPLANT_PROFILE,
    ImplantEligibility,
    ImplantFlag,
    ImplantRecommendation,
    ProcedureType,
    TreatmentComplexity,
)

__all__ = [
    "ClinicalScorer",
    "available_profiles",
    "get_profile",
    "get_scorer",
    "ClinicalProfile",
    "IndicatorSet",
    "RiskLevel",
    "FollowUpUrgency",
    "TaskPriority",
    "CLINICAL_SLA_HOURS",
    "RESPIRATORY_PROFILE",
    "RespiratoryFlag",
    "RespiratoryRecommendation",
    "RespiratorySeverity",
    "IMPLANT_PROFILE",
    "ImplantEligibility",
    "ImplantFlag",
    "ImplantRecommendation",
    "ProcedureType",
    "TreatmentComplexity",
]
