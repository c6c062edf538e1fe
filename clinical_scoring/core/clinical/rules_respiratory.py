"""
Respiratory (Sleep Apnea) Scoring Rules

Scores a polysomnography / home sleep study and produces a severity tier,
cardiovascular risk level and treatment recommendation.

Indicators consumed:
    apnea_index               (events/h) — apnea-hypopnea index (AHI), 0–150
    desaturation_index        (events/h) — oxygen desaturation index (ODI), 0–150
    oxygen_nadir              (%)        — lowest SpO2, 40–100
    oxygen_average            (%)        — mean SpO2, 60–100 (nadir ≤ average)
    sleep_efficiency          (%)        — time asleep / time in bed, 0–100
    daytime_sleepiness_score  (points)   — Epworth Sleepiness Scale, integer 0–24
    bmi, neck_circumference, total_sleep_time,
    rem_apnea_index, supine_apnea_index — optional

Components (higher = healthier):
    apnea 40 %, oxygenation 25 %, desaturation 20 %, sleepiness 15 %

Absolute overrides (force SEVERE):
    1. SpO2 nadir < 75 %          — severe nocturnal hypoxemia (strict)
    2. AHI ≥ 30 events/h          — AASM severe range (inclusive)

Thresholds follow the AASM scoring manual severity bands.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Tuple

from .base import (
    ClinicalProfile,
    CrossFieldRule,
    FieldRule,
    FlagRule,
    FollowUpUrgency,
    IndicatorSet,
    OverrideRule,
    RecommendationContext,
    RecommendationRule,
    RiskLevel,
    ScoreComponent,
    ScoreTier,
    TaskPriority,
)


class RespiratorySeverity(str, Enum):
    """Severity tier, best → worst."""
    NONE     = "NONE"
    MILD     = "MILD"
    MODERATE = "MODERATE"
    SEVERE   = "SEVERE"


class RespiratoryRecommendation(str, Enum):
    LIFESTYLE_MODIFICATION = "LIFESTYLE_MODIFICATION"
    POSITIONAL_THERAPY     = "POSITIONAL_THERAPY"
    ORAL_APPLIANCE         = "ORAL_APPLIANCE"
    CPAP_THERAPY           = "CPAP_THERAPY"
    BIPAP_THERAPY          = "BIPAP_THERAPY"


class RespiratoryFlag(str, Enum):
    SEVERE_HYPOXEMIA             = "SEVERE_HYPOXEMIA"
    SEVERE_APNEA                 = "SEVERE_APNEA"
    SIGNIFICANT_HYPOXEMIA        = "SIGNIFICANT_HYPOXEMIA"
    FREQUENT_DESATURATION        = "FREQUENT_DESATURATION"
    EXCESSIVE_DAYTIME_SLEEPINESS = "EXCESSIVE_DAYTIME_SLEEPINESS"
    POOR_SLEEP_EFFICIENCY        = "POOR_SLEEP_EFFICIENCY"
    POSITIONAL_DEPENDENCY        = "POSITIONAL_DEPENDENCY"
    REM_PREDOMINANT              = "REM_PREDOMINANT"
    OBESITY                      = "OBESITY"
    ENLARGED_NECK_CIRCUMFERENCE  = "ENLARGED_NECK_CIRCUMFERENCE"


# ── Thresholds ────────────────────────────────────────────────────────────────

# AHI (events/h), AASM bands
AHI_MILD          = 5
AHI_MODERATE      = 15
AHI_SEVERE        = 30

# ODI (events/h)
ODI_ELEVATED      = 10
ODI_FREQUENT      = 15

# SpO2 (%)
NADIR_SEVERE      = 75     # override: nadir strictly below
NADIR_SIGNIFICANT = 80
AVERAGE_SIGNIFICANT = 90

# Epworth Sleepiness Scale
ESS_EXCESSIVE     = 10
ESS_MAX           = 24

SLEEP_EFFICIENCY_NORMAL = 85   # %, flagged below

# Position / sleep-stage dependency: stage AHI more than 2× overall AHI
POSITIONAL_RATIO  = 2.0
REM_RATIO         = 2.0

BMI_OBESE         = 30
BMI_SURGICAL_MAX  = 35
NECK_ENLARGED_CM  = 40     # STOP-BANG neck criterion

# Normalization caps for the component formulas
AHI_NORMALIZATION_CAP = 60.0
ODI_NORMALIZATION_CAP = 60.0
NADIR_DEFICIT_SPAN    = 40.0   # 100 % → 0 deficit, 60 % → full deficit

# Composite tier floors (lower-inclusive)
TIER_NONE_MIN     = 80.0
TIER_MILD_MIN     = 60.0
TIER_MODERATE_MIN = 40.0

FULL_CONFIDENCE      = 0.9
SCREENING_CONFIDENCE = 0.7
ALGORITHM_VERSION    = "1.1.0"

PAP_RECOMMENDATIONS = frozenset({
    RespiratoryRecommendation.CPAP_THERAPY,
    RespiratoryRecommendation.BIPAP_THERAPY,
})


# ── Indicator schema ──────────────────────────────────────────────────────────

FIELDS = (
    FieldRule("apnea_index", "apneaIndex", 0, 150, "events/h", "AHI"),
    FieldRule("desaturation_index", "desaturationIndex", 0, 150, "events/h", "ODI"),
    FieldRule("oxygen_nadir", "oxygenNadir", 40, 100, "%", "SpO2 nadir"),
    FieldRule("oxygen_average", "oxygenAverage", 60, 100, "%", "SpO2 average"),
    FieldRule("sleep_efficiency", "sleepEfficiency", 0, 100, "%", "Sleep efficiency"),
    FieldRule("daytime_sleepiness_score", "daytimeSleepinessScore", 0, 24, "points", "ESS score", integer=True),
    FieldRule("bmi", "bmi", 10, 80, "kg/m2", "BMI", required=False),
    FieldRule("neck_circumference", "neckCircumference", 20, 80, "cm", "Neck circumference", required=False),
    FieldRule("total_sleep_time", "totalSleepTime", 0, 1440, "min", "Total sleep time", required=False),
    FieldRule("rem_apnea_index", "remApneaIndex", 0, 150, "events/h", "REM AHI", required=False),
    FieldRule("supine_apnea_index", "supineApneaIndex", 0, 150, "events/h", "Supine AHI", required=False),
)

CROSS_FIELD_RULES = (
    CrossFieldRule("oxygen_nadir", "oxygen_average", "SpO2 nadir"),
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _stage_ratio(ind: IndicatorSet, stage_field: str) -> float:
    """Stage-specific AHI divided by overall AHI (0 when unavailable)."""
    stage = ind.get(stage_field)
    if stage is None or ind["apnea_index"] <= 0:
        return 0.0
    return stage / ind["apnea_index"]


def is_positional(ind: IndicatorSet) -> bool:
    return _stage_ratio(ind, "supine_apnea_index") > POSITIONAL_RATIO


def is_rem_predominant(ind: IndicatorSet) -> bool:
    return _stage_ratio(ind, "rem_apnea_index") > REM_RATIO


def _at_least(ind: IndicatorSet, name: str, threshold: float) -> bool:
    value = ind.get(name)
    return value is not None and value >= threshold


# ── Components ────────────────────────────────────────────────────────────────

def apnea_component(ind: IndicatorSet) -> float:
    return 100.0 - min(ind["apnea_index"] / AHI_NORMALIZATION_CAP, 1.0) * 100.0


def oxygenation_component(ind: IndicatorSet) -> float:
    deficit = (100.0 - ind["oxygen_nadir"]) / NADIR_DEFICIT_SPAN
    return 100.0 - min(max(deficit, 0.0), 1.0) * 100.0


def desaturation_component(ind: IndicatorSet) -> float:
    return 100.0 - min(ind["desaturation_index"] / ODI_NORMALIZATION_CAP, 1.0) * 100.0


def sleepiness_component(ind: IndicatorSet) -> float:
    return 100.0 - (ind["daytime_sleepiness_score"] / ESS_MAX) * 100.0


COMPONENTS = (
    ScoreComponent("apnea", 0.40, apnea_component),
    ScoreComponent("oxygenation", 0.25, oxygenation_component),
    ScoreComponent("desaturation", 0.20, desaturation_component),
    ScoreComponent("sleepiness", 0.15, sleepiness_component),
)

TIERS = (
    ScoreTier(RespiratorySeverity.NONE, TIER_NONE_MIN),
    ScoreTier(RespiratorySeverity.MILD, TIER_MILD_MIN),
    ScoreTier(RespiratorySeverity.MODERATE, TIER_MODERATE_MIN),
    ScoreTier(RespiratorySeverity.SEVERE, float("-inf")),
)


# ── Overrides and flags ───────────────────────────────────────────────────────

# Evaluation order matters only for the order of contraindication reasons.
OVERRIDES = (
    OverrideRule(
        RespiratoryFlag.SEVERE_HYPOXEMIA,
        f"Severe nocturnal hypoxemia (SpO2 nadir < {NADIR_SEVERE}%)",
        lambda ind: ind["oxygen_nadir"] < NADIR_SEVERE,
    ),
    OverrideRule(
        RespiratoryFlag.SEVERE_APNEA,
        f"Severe sleep apnea (AHI >= {AHI_SEVERE} events/h)",
        lambda ind: ind["apnea_index"] >= AHI_SEVERE,
    ),
)

FLAG_RULES = (
    FlagRule(
        RespiratoryFlag.SIGNIFICANT_HYPOXEMIA,
        lambda ind: ind["oxygen_nadir"] < NADIR_SIGNIFICANT or ind["oxygen_average"] < AVERAGE_SIGNIFICANT,
    ),
    FlagRule(RespiratoryFlag.FREQUENT_DESATURATION, lambda ind: ind["desaturation_index"] >= ODI_FREQUENT),
    FlagRule(RespiratoryFlag.EXCESSIVE_DAYTIME_SLEEPINESS, lambda ind: ind["daytime_sleepiness_score"] >= ESS_EXCESSIVE),
    FlagRule(RespiratoryFlag.POOR_SLEEP_EFFICIENCY, lambda ind: ind["sleep_efficiency"] < SLEEP_EFFICIENCY_NORMAL),
    FlagRule(RespiratoryFlag.POSITIONAL_DEPENDENCY, is_positional),
    FlagRule(RespiratoryFlag.REM_PREDOMINANT, is_rem_predominant),
    FlagRule(RespiratoryFlag.OBESITY, lambda ind: _at_least(ind, "bmi", BMI_OBESE)),
    FlagRule(
        RespiratoryFlag.ENLARGED_NECK_CIRCUMFERENCE,
        lambda ind: _at_least(ind, "neck_circumference", NECK_ENLARGED_CM),
    ),
)


# ── Risk level ────────────────────────────────────────────────────────────────

def assess_risk(ind: IndicatorSet) -> RiskLevel:
    """Cardiovascular risk from apnea burden and desaturation depth."""
    ahi, nadir = ind["apnea_index"], ind["oxygen_nadir"]

    if ahi >= AHI_SEVERE and nadir < NADIR_SEVERE:
        return RiskLevel.CRITICAL
    if ahi >= AHI_MODERATE or nadir < NADIR_SIGNIFICANT:
        return RiskLevel.HIGH
    if ahi >= AHI_MILD or ind["desaturation_index"] >= ODI_ELEVATED:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


# ── Recommendation decision tree ──────────────────────────────────────────────

RECOMMENDATION_RULES = (
    RecommendationRule(
        RespiratoryRecommendation.BIPAP_THERAPY,
        lambda c: c.classification == RespiratorySeverity.SEVERE
        and c.indicators["oxygen_nadir"] < NADIR_SEVERE,
        "Severe apnea with severe hypoxemia needs bilevel pressure",
    ),
    RecommendationRule(
        RespiratoryRecommendation.POSITIONAL_THERAPY,
        lambda c: c.classification in (RespiratorySeverity.MILD, RespiratorySeverity.MODERATE)
        and RespiratoryFlag.POSITIONAL_DEPENDENCY in c.flags,
        "Supine-dominant events respond to positional therapy",
    ),
    RecommendationRule(
        RespiratoryRecommendation.LIFESTYLE_MODIFICATION,
        lambda c: c.classification == RespiratorySeverity.MILD
        and RespiratoryFlag.OBESITY in c.flags,
        "Mild disease with obesity: weight management first",
    ),
)

TIER_RECOMMENDATIONS = (
    (RespiratorySeverity.NONE, RespiratoryRecommendation.LIFESTYLE_MODIFICATION),
    (RespiratorySeverity.MILD, RespiratoryRecommendation.ORAL_APPLIANCE),
    (RespiratorySeverity.MODERATE, RespiratoryRecommendation.CPAP_THERAPY),
    (RespiratorySeverity.SEVERE, RespiratoryRecommendation.CPAP_THERAPY),
)


# ── Annotations ───────────────────────────────────────────────────────────────

def follow_up_urgency(context: RecommendationContext) -> FollowUpUrgency:
    if context.risk_level == RiskLevel.CRITICAL:
        return FollowUpUrgency.IMMEDIATE
    if context.classification == RespiratorySeverity.SEVERE:
        return FollowUpUrgency.URGENT
    if context.classification == RespiratorySeverity.MODERATE:
        return FollowUpUrgency.SOON
    return FollowUpUrgency.ROUTINE


def is_surgical_candidate(context: RecommendationContext) -> bool:
    """Moderate-or-worse disease with BMI recorded and below 35."""
    bmi = context.indicators.get("bmi")
    return (
        context.classification in (RespiratorySeverity.MODERATE, RespiratorySeverity.SEVERE)
        and bmi is not None
        and bmi < BMI_SURGICAL_MAX
    )


def requires_urgent_intervention(context: RecommendationContext) -> bool:
    return context.risk_level == RiskLevel.CRITICAL or context.classification == RespiratorySeverity.SEVERE


def task_priority(context: RecommendationContext) -> TaskPriority:
    if context.risk_level == RiskLevel.CRITICAL:
        return TaskPriority.CRITICAL
    if context.classification == RespiratorySeverity.SEVERE:
        return TaskPriority.HIGH
    if context.classification == RespiratorySeverity.MODERATE:
        return TaskPriority.MEDIUM
    return TaskPriority.LOW


def annotate(context: RecommendationContext, recommendation: Enum) -> Dict[str, str]:
    return {
        "follow_up_urgency": follow_up_urgency(context).value,
        "surgical_candidate": "yes" if is_surgical_candidate(context) else "no",
        "task_priority": task_priority(context).value,
        "urgent_intervention": "yes" if requires_urgent_intervention(context) else "no",
        "requires_cpap": "yes" if recommendation in PAP_RECOMMENDATIONS else "no",
    }


def risk_factors(ind: IndicatorSet) -> Tuple[str, ...]:
    factors = []
    if ind["oxygen_nadir"] < NADIR_SIGNIFICANT or ind["oxygen_average"] < AVERAGE_SIGNIFICANT:
        factors.append(f"Nocturnal hypoxemia (nadir: {ind['oxygen_nadir']:g}%)")
    if ind["daytime_sleepiness_score"] >= ESS_EXCESSIVE:
        factors.append(f"Excessive daytime sleepiness (ESS: {ind['daytime_sleepiness_score']})")
    if _at_least(ind, "bmi", BMI_OBESE):
        factors.append(f"Obesity (BMI: {ind['bmi']:g})")
    if _at_least(ind, "neck_circumference", NECK_ENLARGED_CM):
        factors.append(f"Enlarged neck ({ind['neck_circumference']:g} cm)")
    if is_positional(ind):
        factors.append("Supine-dependent events")
    if is_rem_predominant(ind):
        factors.append("REM-predominant events")
    return tuple(factors)


def summary_details(ind: IndicatorSet, annotations: Mapping, recommendation: Enum) -> Tuple[str, ...]:
    details = [f"AHI: {ind['apnea_index']:g}/h", f"Recommended: {recommendation.value.replace('_', ' ')}"]
    if annotations.get("surgical_candidate") == "yes":
        details.append("Surgical candidate")
    return tuple(details)


# ── Screening estimate ────────────────────────────────────────────────────────

def estimate_from_headline(ahi: float, **known: Any) -> Dict[str, Any]:
    """
    Plausible full indicator set from AHI alone (typical correlations).

    Keyword arguments override individual estimates.
    """
    indicators: Dict[str, Any] = {
        "apnea_index": ahi,
        "desaturation_index": ahi * 0.85,
        "oxygen_nadir": 75 if ahi >= AHI_SEVERE else 82 if ahi >= AHI_MODERATE else 88 if ahi >= AHI_MILD else 94,
        "oxygen_average": 89 if ahi >= AHI_SEVERE else 92 if ahi >= AHI_MODERATE else 95,
        "sleep_efficiency": 75,
        "daytime_sleepiness_score": 16 if ahi >= AHI_SEVERE else 12 if ahi >= AHI_MODERATE else 8 if ahi >= AHI_MILD else 4,
    }
    indicators.update(known)
    return indicators


RESPIRATORY_PROFILE = ClinicalProfile(
    name="respiratory",
    title="Respiratory sleep study",
    tag="OSA",
    algorithm_version=ALGORITHM_VERSION,
    fields=FIELDS,
    cross_field_rules=CROSS_FIELD_RULES,
    components=COMPONENTS,
    tiers=TIERS,
    overrides=OVERRIDES,
    flag_rules=FLAG_RULES,
    recommendation_rules=RECOMMENDATION_RULES,
    tier_recommendations=TIER_RECOMMENDATIONS,
    classification_type=RespiratorySeverity,
    recommendation_type=RespiratoryRecommendation,
    flag_type=RespiratoryFlag,
    assess_risk=assess_risk,
    annotate=annotate,
    risk_factors=risk_factors,
    summary_details=summary_details,
    headline_field="apnea_index",
    estimate_from_headline=estimate_from_headline,
    full_confidence=FULL_CONFIDENCE,
    screening_confidence=SCREENING_CONFIDENCE,
)
