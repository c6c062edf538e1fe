"""
Clinical Scoring

Deterministic decision-support scoring for sleep-study (respiratory) and
full-arch implant eligibility assessments.

    from clinical_scoring import get_scorer

    result = get_scorer("respiratory").from_indicators({
        "apnea_index": 45, "desaturation_index": 40,
        "oxygen_nadir": 70, "oxygen_average": 85,
        "sleep_efficiency": 60, "daytime_sleepiness_score": 20,
    })
    result.to_compact_string()   # 'OSA[SEVERE:...]'
"""
from clinical_scoring.core.clinical import (
    CLINICAL_SLA_HOURS,
    IMPLANT_PROFILE,
    RESPIRATORY_PROFILE,
    ClinicalProfile,
    ClinicalScorer,
    FollowUpUrgency,
    TaskPriority,
    ImplantEligibility,
    ImplantFlag,
    ImplantRecommendation,
    IndicatorSet,
    ProcedureType,
    RespiratoryFlag,
    RespiratoryRecommendation,
    RespiratorySeverity,
    RiskLevel,
    TreatmentComplexity,
    available_profiles,
    get_profile,
    get_scorer,
)
from clinical_scoring.core.results import ParseResult, ScoringResult
from clinical_scoring.utils import (
    ClinicalScoringError,
    ReconstitutionError,
    UnknownProfileError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    "ClinicalScorer",
    "ScoringResult",
    "ParseResult",
    "ClinicalProfile",
    "IndicatorSet",
    "RiskLevel",
    "FollowUpUrgency",
    "TaskPriority",
    "CLINICAL_SLA_HOURS",
    "RESPIRATORY_PROFILE",
    "RespiratorySeverity",
    "RespiratoryRecommendation",
    "RespiratoryFlag",
    "IMPLANT_PROFILE",
    "ImplantEligibility",
    "ImplantRecommendation",
    "ImplantFlag",
    "TreatmentComplexity",
    "ProcedureType",
    "available_profiles",
    "get_profile",
    "get_scorer",
    "ClinicalScoringError",
    "ValidationError",
    "ReconstitutionError",
    "UnknownProfileError",
]
