"""
Implant Eligibility (Full-Arch / All-on-X) Scoring Rules

Scores a patient's candidacy for full-arch implant rehabilitation and
produces an eligibility tier, surgical risk level, complexity grade,
procedure variant and treatment recommendation.

Components (higher = more eligible):
    bone quality           35 %  — density class, target-arch height, width, sinus
    medical risk           30 %  — smoking, HbA1c, bisphosphonates, systemic disease
    oral health            20 %  — periodontal status, hygiene, bruxism, failures
    procedural complexity  10 %  — grafting, sinus lift, dual arch, extractions
    patient factors         5 %  — age, compliance, esthetic / functional demands

Absolute contraindications (force CONTRAINDICATED):
    1. Head/neck radiation history        — osteoradionecrosis risk
    2. Uncontrolled cardiovascular disease
    3. ASA classification ≥ 4
    4. HbA1c > 10 %                       — strict; exactly 10 % is not contraindicated
    5. Bisphosphonates for > 8 years      — MRONJ risk
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Tuple

from .base import (
    ClinicalProfile,
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


class ImplantEligibility(str, Enum):
    """Eligibility tier, best → worst."""
    IDEAL           = "IDEAL"
    SUITABLE        = "SUITABLE"
    CONDITIONAL     = "CONDITIONAL"
    CONTRAINDICATED = "CONTRAINDICATED"


class ImplantRecommendation(str, Enum):
    PROCEED_STANDARD           = "PROCEED_STANDARD"
    PROCEED_WITH_MODIFICATIONS = "PROCEED_WITH_MODIFICATIONS"
    BONE_AUGMENTATION_FIRST    = "BONE_AUGMENTATION_FIRST"
    STAGED_APPROACH            = "STAGED_APPROACH"
    MEDICAL_CLEARANCE_REQUIRED = "MEDICAL_CLEARANCE_REQUIRED"
    NOT_RECOMMENDED            = "NOT_RECOMMENDED"


class ImplantFlag(str, Enum):
    # contraindications
    RADIATION_HISTORY              = "RADIATION_HISTORY"
    CARDIOVASCULAR_RISK            = "CARDIOVASCULAR_RISK"
    SEVERE_SYSTEMIC_DISEASE        = "SEVERE_SYSTEMIC_DISEASE"
    SEVERELY_UNCONTROLLED_DIABETES = "SEVERELY_UNCONTROLLED_DIABETES"
    PROLONGED_BISPHOSPHONATES      = "PROLONGED_BISPHOSPHONATES"
    # informational
    HEAVY_SMOKER                   = "HEAVY_SMOKER"
    ACTIVE_SMOKER                  = "ACTIVE_SMOKER"
    UNCONTROLLED_DIABETES          = "UNCONTROLLED_DIABETES"
    BISPHOSPHONATE_THERAPY         = "BISPHOSPHONATE_THERAPY"
    LONG_TERM_BISPHOSPHONATES      = "LONG_TERM_BISPHOSPHONATES"
    OSTEOPOROSIS                   = "OSTEOPOROSIS"
    IMMUNOCOMPROMISED              = "IMMUNOCOMPROMISED"
    ANTICOAGULANT_THERAPY          = "ANTICOAGULANT_THERAPY"
    POOR_BONE_QUALITY              = "POOR_BONE_QUALITY"
    INSUFFICIENT_BONE              = "INSUFFICIENT_BONE"
    ACTIVE_PERIODONTAL_DISEASE     = "ACTIVE_PERIODONTAL_DISEASE"
    POOR_ORAL_HYGIENE              = "POOR_ORAL_HYGIENE"
    BRUXISM                        = "BRUXISM"
    PREVIOUS_IMPLANT_FAILURE       = "PREVIOUS_IMPLANT_FAILURE"
    GERIATRIC_PATIENT              = "GERIATRIC_PATIENT"
    HIGH_ASA_CLASS                 = "HIGH_ASA_CLASS"
    LOW_COMPLIANCE                 = "LOW_COMPLIANCE"
    BONE_AUGMENTATION_REQUIRED     = "BONE_AUGMENTATION_REQUIRED"
    SINUS_LIFT_REQUIRED            = "SINUS_LIFT_REQUIRED"
    DUAL_ARCH_COMPLEXITY           = "DUAL_ARCH_COMPLEXITY"
    HIGH_ESTHETIC_DEMANDS          = "HIGH_ESTHETIC_DEMANDS"


class TreatmentComplexity(str, Enum):
    STANDARD       = "STANDARD"
    MODERATE       = "MODERATE"
    COMPLEX        = "COMPLEX"
    HIGHLY_COMPLEX = "HIGHLY_COMPLEX"


class ProcedureType(str, Enum):
    ALL_ON_4        = "ALL_ON_4"
    ALL_ON_6        = "ALL_ON_6"
    ALL_ON_X_HYBRID = "ALL_ON_X_HYBRID"


# ── Thresholds ────────────────────────────────────────────────────────────────

# Target-arch bone height (mm)
BONE_HEIGHT_MINIMUM  = 8
BONE_HEIGHT_ADEQUATE = 10
BONE_HEIGHT_IDEAL    = 12

# Ridge width (mm)
BONE_WIDTH_MINIMUM   = 5
BONE_WIDTH_ADEQUATE  = 6
BONE_WIDTH_IDEAL     = 8

# HbA1c (%)
HBA1C_CONTROLLED            = 7.0
HBA1C_MODERATELY_CONTROLLED = 7.5
HBA1C_POORLY_CONTROLLED     = 9.0
HBA1C_CONTRAINDICATED       = 10.0   # strictly above

# Bisphosphonate therapy (years)
BISPHOSPHONATE_MODERATE_RISK   = 4
BISPHOSPHONATE_HIGH_RISK       = 6
BISPHOSPHONATE_CONTRAINDICATED = 8    # strictly above

# Age (years)
AGE_ELDERLY      = 70
AGE_VERY_ELDERLY = 80

ASA_HIGH            = 3
ASA_CONTRAINDICATED = 4

# Smoking status scale: 0 never, 1 former, 2 light, 3 moderate, 4 heavy
SMOKING_ACTIVE = 2
SMOKING_HEAVY  = 4

# Target arch: 1 maxilla, 2 mandible, 3 both
ARCH_MANDIBLE = 2
ARCH_BOTH     = 3

TIER_IDEAL_MIN       = 80.0
TIER_SUITABLE_MIN    = 60.0
TIER_CONDITIONAL_MIN = 40.0

FULL_CONFIDENCE      = 0.9
SCREENING_CONFIDENCE = 0.6
ALGORITHM_VERSION    = "2.0.0"

# Treatment planning
IMMEDIATE_LOADING_MIN = 3
TREATMENT_BASE_MONTHS = 4
PROCEED_RECOMMENDATIONS = frozenset({
    ImplantRecommendation.PROCEED_STANDARD,
    ImplantRecommendation.PROCEED_WITH_MODIFICATIONS,
})


# ── Indicator schema ──────────────────────────────────────────────────────────

def _flag(name: str, alias: str, description: str) -> FieldRule:
    return FieldRule(name, alias, description=description, required=False, boolean=True)


FIELDS = (
    # bone
    FieldRule("bone_density_class", "boneDensityClass", 1, 4, "", "Bone density class (D1-D4)", integer=True),
    FieldRule("maxilla_bone_height", "maxillaBoneHeight", 0, 30, "mm", "Maxilla bone height"),
    FieldRule("mandible_bone_height", "mandibleBoneHeight", 0, 30, "mm", "Mandible bone height"),
    FieldRule("bone_width", "boneWidth", 0, 15, "mm", "Bone width"),
    FieldRule("sinus_pneumatization", "sinusPneumatization", 1, 5, "", "Sinus pneumatization grade",
              required=False, integer=True),
    # medical
    FieldRule("hba1c", "hba1c", 4, 15, "%", "HbA1c", required=False),
    FieldRule("smoking_status", "smokingStatus", 0, 4, "", "Smoking status", integer=True),
    FieldRule("years_since_quit_smoking", "yearsSinceQuitSmoking", 0, 50, "years", "Years since quitting smoking",
              required=False),
    _flag("on_bisphosphonates", "onBisphosphonates", "Bisphosphonate therapy"),
    FieldRule("bisphosphonate_years", "bisphosphonateYears", 0, 30, "years", "Bisphosphonate therapy duration",
              required=False),
    _flag("on_anticoagulants", "onAnticoagulants", "Anticoagulant therapy"),
    _flag("has_osteoporosis", "hasOsteoporosis", "Osteoporosis"),
    _flag("has_radiation_history", "hasRadiationHistory", "Head/neck radiation history"),
    _flag("has_uncontrolled_cardiovascular", "hasUncontrolledCardiovascular", "Uncontrolled cardiovascular disease"),
    _flag("is_immunocompromised", "isImmunocompromised", "Immunocompromised"),
    # oral
    FieldRule("remaining_teeth", "remainingTeeth", 0, 32, "", "Remaining teeth", integer=True),
    FieldRule("periodontal_disease", "periodontalDisease", 0, 3, "", "Periodontal disease stage", integer=True),
    FieldRule("oral_hygiene_score", "oralHygieneScore", 1, 4, "", "Oral hygiene score", integer=True),
    _flag("has_bruxism", "hasBruxism", "Bruxism"),
    FieldRule("previous_failed_implants", "previousFailedImplants", 0, 20, "", "Previous failed implants",
              required=False, integer=True),
    # procedural
    FieldRule("target_arch", "targetArch", 1, 3, "", "Target arch", integer=True),
    FieldRule("extractions_needed", "extractionsNeeded", 0, 32, "", "Extractions needed", integer=True),
    _flag("needs_bone_grafting", "needsBoneGrafting", "Bone grafting needed"),
    _flag("needs_sinus_lift", "needsSinusLift", "Sinus lift needed"),
    FieldRule("immediate_loading_feasibility", "immediateLoadingFeasibility", 1, 5, "",
              "Immediate loading feasibility", integer=True),
    # patient
    FieldRule("patient_age", "patientAge", 18, 100, "years", "Patient age", integer=True),
    FieldRule("asa_classification", "asaClassification", 1, 5, "", "ASA classification", integer=True),
    FieldRule("compliance_score", "complianceScore", 1, 5, "", "Compliance score", integer=True),
    FieldRule("esthetic_demands", "estheticDemands", 1, 5, "", "Esthetic demands", integer=True),
    FieldRule("functional_demands", "functionalDemands", 1, 5, "", "Functional demands", integer=True),
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def target_bone_height(ind: IndicatorSet) -> float:
    """Mandible height for mandibular cases, maxilla height otherwise."""
    if ind["target_arch"] == ARCH_MANDIBLE:
        return ind["mandible_bone_height"]
    return ind["maxilla_bone_height"]


def needs_augmentation(ind: IndicatorSet) -> bool:
    return ind["needs_bone_grafting"] or ind["needs_sinus_lift"]


def _hba1c_above(ind: IndicatorSet, threshold: float) -> bool:
    hba1c = ind.get("hba1c")
    return hba1c is not None and hba1c > threshold


def _bisphosphonate_years_at_least(ind: IndicatorSet, years: float) -> bool:
    duration = ind.get("bisphosphonate_years")
    return ind["on_bisphosphonates"] and duration is not None and duration >= years


# ── Components ────────────────────────────────────────────────────────────────

def bone_quality_component(ind: IndicatorSet) -> float:
    score = 100.0 - (ind["bone_density_class"] - 1) * 10

    height = target_bone_height(ind)
    if height < BONE_HEIGHT_MINIMUM:
        score -= 30
    elif height < BONE_HEIGHT_ADEQUATE:
        score -= 15
    elif height < BONE_HEIGHT_IDEAL:
        score -= 5

    width = ind["bone_width"]
    if width < BONE_WIDTH_MINIMUM:
        score -= 25
    elif width < BONE_WIDTH_ADEQUATE:
        score -= 12
    elif width < BONE_WIDTH_IDEAL:
        score -= 4

    # sinus only matters when the maxilla is treated
    sinus = ind.get("sinus_pneumatization")
    if ind["target_arch"] != ARCH_MANDIBLE and sinus is not None:
        score -= (sinus - 1) * 4

    return score


def medical_risk_component(ind: IndicatorSet) -> float:
    score = 100.0 - ind["smoking_status"] * 8

    quit_years = ind.get("years_since_quit_smoking")
    if ind["smoking_status"] == 1 and quit_years is not None:
        score += min(quit_years, 5) * 1.5

    hba1c = ind.get("hba1c")
    if hba1c is not None:
        if hba1c > HBA1C_POORLY_CONTROLLED:
            score -= 35
        elif hba1c > HBA1C_MODERATELY_CONTROLLED:
            score -= 20
        elif hba1c > HBA1C_CONTROLLED:
            score -= 10

    if ind["on_bisphosphonates"]:
        years = ind.get("bisphosphonate_years")
        years = 1 if years is None else years
        if years >= BISPHOSPHONATE_HIGH_RISK:
            score -= 40
        elif years >= BISPHOSPHONATE_MODERATE_RISK:
            score -= 25
        else:
            score -= 15

    if ind["has_osteoporosis"]:
        score -= 15
    if ind["has_radiation_history"]:
        score -= 50
    if ind["has_uncontrolled_cardiovascular"]:
        score -= 40
    if ind["is_immunocompromised"]:
        score -= 30
    if ind["on_anticoagulants"]:
        score -= 10

    # ASA 5 carries at least the ASA 4 penalty
    if ind["asa_classification"] >= ASA_CONTRAINDICATED:
        score -= 35
    elif ind["asa_classification"] == ASA_HIGH:
        score -= 20

    return score


def oral_health_component(ind: IndicatorSet) -> float:
    score = 100.0 - ind["periodontal_disease"] * 12
    score += (ind["oral_hygiene_score"] - 2) * 8

    if ind["has_bruxism"]:
        score -= 15

    failed = ind.get("previous_failed_implants")
    if failed is not None:
        score -= min(failed * 8, 25)

    return score


def procedural_complexity_component(ind: IndicatorSet) -> float:
    score = 100.0
    if ind["needs_bone_grafting"]:
        score -= 20
    if ind["needs_sinus_lift"]:
        score -= 25
    if ind["target_arch"] == ARCH_BOTH:
        score -= 20

    if ind["extractions_needed"] > 15:
        score -= 15
    elif ind["extractions_needed"] > 10:
        score -= 8

    score += (ind["immediate_loading_feasibility"] - 3) * 6
    return score


def patient_factors_component(ind: IndicatorSet) -> float:
    score = 100.0
    if ind["patient_age"] >= AGE_VERY_ELDERLY:
        score -= 20
    elif ind["patient_age"] >= AGE_ELDERLY:
        score -= 10

    score += (ind["compliance_score"] - 3) * 8

    if ind["esthetic_demands"] >= 5:
        score -= 10
    if ind["functional_demands"] >= 5:
        score -= 5
    return score


COMPONENTS = (
    ScoreComponent("bone_quality", 0.35, bone_quality_component),
    ScoreComponent("medical_risk", 0.30, medical_risk_component),
    ScoreComponent("oral_health", 0.20, oral_health_component),
    ScoreComponent("procedural_complexity", 0.10, procedural_complexity_component),
    ScoreComponent("patient_factors", 0.05, patient_factors_component),
)

TIERS = (
    ScoreTier(ImplantEligibility.IDEAL, TIER_IDEAL_MIN),
    ScoreTier(ImplantEligibility.SUITABLE, TIER_SUITABLE_MIN),
    ScoreTier(ImplantEligibility.CONDITIONAL, TIER_CONDITIONAL_MIN),
    ScoreTier(ImplantEligibility.CONTRAINDICATED, float("-inf")),
)


# ── Contraindications and flags ───────────────────────────────────────────────

OVERRIDES = (
    OverrideRule(
        ImplantFlag.RADIATION_HISTORY,
        "History of head/neck radiation - high risk of osteoradionecrosis",
        lambda ind: ind["has_radiation_history"],
    ),
    OverrideRule(
        ImplantFlag.CARDIOVASCULAR_RISK,
        "Uncontrolled cardiovascular disease - medical clearance required",
        lambda ind: ind["has_uncontrolled_cardiovascular"],
    ),
    OverrideRule(
        ImplantFlag.SEVERE_SYSTEMIC_DISEASE,
        "ASA IV or higher - significant systemic risk for elective surgery",
        lambda ind: ind["asa_classification"] >= ASA_CONTRAINDICATED,
    ),
    OverrideRule(
        ImplantFlag.SEVERELY_UNCONTROLLED_DIABETES,
        f"Severely uncontrolled diabetes (HbA1c > {HBA1C_CONTRAINDICATED:g}%) - optimize before procedure",
        lambda ind: _hba1c_above(ind, HBA1C_CONTRAINDICATED),
    ),
    OverrideRule(
        ImplantFlag.PROLONGED_BISPHOSPHONATES,
        f"Bisphosphonate therapy > {BISPHOSPHONATE_CONTRAINDICATED} years - very high MRONJ risk",
        lambda ind: ind["on_bisphosphonates"]
        and ind.get("bisphosphonate_years") is not None
        and ind["bisphosphonate_years"] > BISPHOSPHONATE_CONTRAINDICATED,
    ),
)

FLAG_RULES = (
    FlagRule(ImplantFlag.HEAVY_SMOKER, lambda ind: ind["smoking_status"] >= SMOKING_HEAVY),
    FlagRule(
        ImplantFlag.ACTIVE_SMOKER,
        lambda ind: SMOKING_ACTIVE <= ind["smoking_status"] < SMOKING_HEAVY,
    ),
    FlagRule(ImplantFlag.UNCONTROLLED_DIABETES, lambda ind: _hba1c_above(ind, HBA1C_POORLY_CONTROLLED)),
    FlagRule(ImplantFlag.BISPHOSPHONATE_THERAPY, lambda ind: ind["on_bisphosphonates"]),
    FlagRule(
        ImplantFlag.LONG_TERM_BISPHOSPHONATES,
        lambda ind: _bisphosphonate_years_at_least(ind, BISPHOSPHONATE_HIGH_RISK),
    ),
    FlagRule(ImplantFlag.OSTEOPOROSIS, lambda ind: ind["has_osteoporosis"]),
    FlagRule(ImplantFlag.IMMUNOCOMPROMISED, lambda ind: ind["is_immunocompromised"]),
    FlagRule(ImplantFlag.ANTICOAGULANT_THERAPY, lambda ind: ind["on_anticoagulants"]),
    FlagRule(ImplantFlag.POOR_BONE_QUALITY, lambda ind: ind["bone_density_class"] >= 4),
    FlagRule(
        ImplantFlag.INSUFFICIENT_BONE,
        lambda ind: target_bone_height(ind) < BONE_HEIGHT_MINIMUM or ind["bone_width"] < BONE_WIDTH_MINIMUM,
    ),
    FlagRule(ImplantFlag.ACTIVE_PERIODONTAL_DISEASE, lambda ind: ind["periodontal_disease"] >= 2),
    FlagRule(ImplantFlag.POOR_ORAL_HYGIENE, lambda ind: ind["oral_hygiene_score"] <= 1),
    FlagRule(ImplantFlag.BRUXISM, lambda ind: ind["has_bruxism"]),
    FlagRule(
        ImplantFlag.PREVIOUS_IMPLANT_FAILURE,
        lambda ind: (ind.get("previous_failed_implants") or 0) > 0,
    ),
    FlagRule(ImplantFlag.GERIATRIC_PATIENT, lambda ind: ind["patient_age"] >= AGE_ELDERLY),
    FlagRule(ImplantFlag.HIGH_ASA_CLASS, lambda ind: ind["asa_classification"] >= ASA_HIGH),
    FlagRule(ImplantFlag.LOW_COMPLIANCE, lambda ind: ind["compliance_score"] <= 2),
    FlagRule(ImplantFlag.BONE_AUGMENTATION_REQUIRED, lambda ind: ind["needs_bone_grafting"]),
    FlagRule(ImplantFlag.SINUS_LIFT_REQUIRED, lambda ind: ind["needs_sinus_lift"]),
    FlagRule(ImplantFlag.DUAL_ARCH_COMPLEXITY, lambda ind: ind["target_arch"] == ARCH_BOTH),
    FlagRule(ImplantFlag.HIGH_ESTHETIC_DEMANDS, lambda ind: ind["esthetic_demands"] >= 5),
)


# ── Risk level ────────────────────────────────────────────────────────────────

def risk_points(ind: IndicatorSet) -> int:
    """Additive surgical risk points."""
    points = 0

    if ind["smoking_status"] >= 3:
        points += 20
    elif ind["smoking_status"] >= SMOKING_ACTIVE:
        points += 10

    if _hba1c_above(ind, HBA1C_POORLY_CONTROLLED):
        points += 25
    elif _hba1c_above(ind, HBA1C_MODERATELY_CONTROLLED):
        points += 15

    if ind["on_bisphosphonates"]:
        points += 20
    if ind["has_osteoporosis"]:
        points += 10
    if ind["is_immunocompromised"]:
        points += 15
    if ind["on_anticoagulants"]:
        points += 10
    if ind["asa_classification"] >= ASA_HIGH:
        points += 15

    if ind["bone_density_class"] >= 4:
        points += 15
    if ind["bone_width"] < BONE_WIDTH_MINIMUM:
        points += 15

    if ind["periodontal_disease"] >= 2:
        points += 10
    if ind["has_bruxism"]:
        points += 10
    if ind["oral_hygiene_score"] <= 1:
        points += 15

    return points


def assess_risk(ind: IndicatorSet) -> RiskLevel:
    points = risk_points(ind)
    if points >= 60:
        return RiskLevel.CRITICAL
    if points >= 40:
        return RiskLevel.HIGH
    if points >= 20:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


# ── Complexity and procedure ──────────────────────────────────────────────────

def assess_complexity(ind: IndicatorSet) -> TreatmentComplexity:
    points = 0
    if ind["needs_bone_grafting"]:
        points += 15
    if ind["needs_sinus_lift"]:
        points += 20
    if ind["target_arch"] == ARCH_BOTH:
        points += 20
    if ind["bone_density_class"] >= 4:
        points += 10
    if ind["bone_width"] < BONE_WIDTH_ADEQUATE:
        points += 10
    if target_bone_height(ind) < BONE_HEIGHT_ADEQUATE:
        points += 15
    if ind["extractions_needed"] > 15:
        points += 10
    if ind["immediate_loading_feasibility"] <= 2:
        points += 15
    if ind["esthetic_demands"] >= 5:
        points += 10

    if points >= 60:
        return TreatmentComplexity.HIGHLY_COMPLEX
    if points >= 40:
        return TreatmentComplexity.COMPLEX
    if points >= 20:
        return TreatmentComplexity.MODERATE
    return TreatmentComplexity.STANDARD


def recommend_procedure(ind: IndicatorSet) -> ProcedureType:
    height, width = target_bone_height(ind), ind["bone_width"]

    if (
        height >= BONE_HEIGHT_IDEAL
        and width >= 7
        and ind["bone_density_class"] <= 2
        and ind["esthetic_demands"] >= 4
    ):
        return ProcedureType.ALL_ON_6
    if height >= BONE_HEIGHT_MINIMUM and width >= BONE_WIDTH_MINIMUM:
        return ProcedureType.ALL_ON_4
    return ProcedureType.ALL_ON_X_HYBRID


def _is_highly_complex(context: RecommendationContext) -> bool:
    return assess_complexity(context.indicators) == TreatmentComplexity.HIGHLY_COMPLEX


# ── Recommendation decision tree ──────────────────────────────────────────────

RECOMMENDATION_RULES = (
    RecommendationRule(
        ImplantRecommendation.NOT_RECOMMENDED,
        lambda c: c.classification == ImplantEligibility.CONTRAINDICATED,
        "Contraindicated patients are never scheduled",
    ),
    RecommendationRule(
        ImplantRecommendation.MEDICAL_CLEARANCE_REQUIRED,
        lambda c: c.risk_level == RiskLevel.CRITICAL
        or ImplantFlag.HIGH_ASA_CLASS in c.flags
        or ImplantFlag.CARDIOVASCULAR_RISK in c.flags,
        "Critical risk or ASA III+ needs physician clearance",
    ),
    RecommendationRule(
        ImplantRecommendation.STAGED_APPROACH,
        lambda c: needs_augmentation(c.indicators) and _is_highly_complex(c),
        "Augmentation in a highly complex case is staged",
    ),
    RecommendationRule(
        ImplantRecommendation.BONE_AUGMENTATION_FIRST,
        lambda c: needs_augmentation(c.indicators),
        "Grafting / sinus lift before implant placement",
    ),
    RecommendationRule(
        ImplantRecommendation.PROCEED_WITH_MODIFICATIONS,
        lambda c: c.classification == ImplantEligibility.CONDITIONAL or c.risk_level == RiskLevel.HIGH,
        "Conditional eligibility or high risk",
    ),
    RecommendationRule(
        ImplantRecommendation.STAGED_APPROACH,
        _is_highly_complex,
        "Highly complex case without augmentation",
    ),
)

TIER_RECOMMENDATIONS = (
    (ImplantEligibility.IDEAL, ImplantRecommendation.PROCEED_STANDARD),
    (ImplantEligibility.SUITABLE, ImplantRecommendation.PROCEED_STANDARD),
    (ImplantEligibility.CONDITIONAL, ImplantRecommendation.PROCEED_WITH_MODIFICATIONS),
    (ImplantEligibility.CONTRAINDICATED, ImplantRecommendation.NOT_RECOMMENDED),
)


# ── Annotations ───────────────────────────────────────────────────────────────

def follow_up_urgency(context: RecommendationContext, recommendation: Enum) -> FollowUpUrgency:
    if context.risk_level == RiskLevel.CRITICAL:
        return FollowUpUrgency.IMMEDIATE
    if (
        context.classification == ImplantEligibility.IDEAL
        and assess_complexity(context.indicators) == TreatmentComplexity.STANDARD
    ):
        return FollowUpUrgency.SOON
    if recommendation == ImplantRecommendation.MEDICAL_CLEARANCE_REQUIRED:
        return FollowUpUrgency.URGENT
    return FollowUpUrgency.ROUTINE


def requires_bone_augmentation(ind: IndicatorSet, recommendation: Enum) -> bool:
    return recommendation == ImplantRecommendation.BONE_AUGMENTATION_FIRST or needs_augmentation(ind)


def is_immediate_loading_feasible(ind: IndicatorSet) -> bool:
    return ind["immediate_loading_feasibility"] >= IMMEDIATE_LOADING_MIN


def requires_specialist_consultation(context: RecommendationContext) -> bool:
    return (
        assess_complexity(context.indicators) == TreatmentComplexity.HIGHLY_COMPLEX
        or context.risk_level == RiskLevel.CRITICAL
        or context.indicators["has_radiation_history"]
    )


def task_priority(context: RecommendationContext) -> TaskPriority:
    if context.risk_level == RiskLevel.CRITICAL:
        return TaskPriority.CRITICAL
    if context.classification == ImplantEligibility.IDEAL:
        return TaskPriority.HIGH
    if context.risk_level == RiskLevel.HIGH:
        return TaskPriority.MEDIUM
    return TaskPriority.LOW


def estimated_treatment_months(ind: IndicatorSet, recommendation: Enum) -> int:
    """Placement-to-final-prosthesis estimate, in months."""
    months = TREATMENT_BASE_MONTHS
    if recommendation == ImplantRecommendation.STAGED_APPROACH:
        months += 6
    if requires_bone_augmentation(ind, recommendation):
        months += 4
    if ind["target_arch"] == ARCH_BOTH:
        months += 2
    if not is_immediate_loading_feasible(ind):
        months += 3
    return months


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def annotate(context: RecommendationContext, recommendation: Enum) -> Dict[str, str]:
    ind = context.indicators
    return {
        "follow_up_urgency": follow_up_urgency(context, recommendation).value,
        "complexity": assess_complexity(ind).value,
        "recommended_procedure": recommend_procedure(ind).value,
        "task_priority": task_priority(context).value,
        "treatment_months": str(estimated_treatment_months(ind, recommendation)),
        "specialist_consultation": _yes_no(requires_specialist_consultation(context)),
        "immediate_loading": _yes_no(is_immediate_loading_feasible(ind)),
        "proceed_immediately": _yes_no(recommendation in PROCEED_RECOMMENDATIONS),
    }


def risk_factors(ind: IndicatorSet) -> Tuple[str, ...]:
    """Human-readable list of the patient's implant risk factors."""
    factors = []
    if ind["smoking_status"] >= SMOKING_ACTIVE:
        factors.append(f"Smoking (status: {ind['smoking_status']})")
    if _hba1c_above(ind, HBA1C_CONTROLLED):
        factors.append(f"Diabetes (HbA1c: {ind['hba1c']:g}%)")
    if ind["on_bisphosphonates"]:
        years = ind.get("bisphosphonate_years")
        factors.append(f"Bisphosphonate therapy ({'unknown' if years is None else f'{years:g}'} years)")
    if ind["has_osteoporosis"]:
        factors.append("Osteoporosis")
    if ind["periodontal_disease"] >= 2:
        factors.append(f"Periodontal disease (severity: {ind['periodontal_disease']})")
    if ind["has_bruxism"]:
        factors.append("Bruxism/clenching")
    if ind["bone_density_class"] >= 4:
        factors.append("Poor bone density (D4)")
    if ind["oral_hygiene_score"] <= 1:
        factors.append("Poor oral hygiene")
    return tuple(factors)


def summary_details(ind: IndicatorSet, annotations: Mapping, recommendation: Enum) -> Tuple[str, ...]:
    details = []
    if "complexity" in annotations:
        details.append(f"Complexity: {annotations['complexity']}")
    if "recommended_procedure" in annotations:
        details.append(f"Recommended: {annotations['recommended_procedure'].replace('_', ' ')}")
    if requires_bone_augmentation(ind, recommendation):
        details.append("Bone augmentation needed")
    return tuple(details)


# ── Screening estimate ────────────────────────────────────────────────────────

def estimate_from_headline(bone_density_class: int, **known: Any) -> Dict[str, Any]:
    """
    Conservative screening indicator set around a bone density class.

    Unknown values take typical mid-range defaults; keyword arguments
    (e.g. `maxilla_bone_height`, `smoking_status`, `hba1c`) override them.
    """
    indicators: Dict[str, Any] = {
        "bone_density_class": bone_density_class,
        "maxilla_bone_height": 10,
        "mandible_bone_height": 10,
        "bone_width": 8,
        "smoking_status": 0,
        "remaining_teeth": 10,
        "periodontal_disease": 1,
        "oral_hygiene_score": 3,
        "target_arch": 1,
        "extractions_needed": 10,
        "immediate_loading_feasibility": 3,
        "patient_age": 55,
        "asa_classification": 2,
        "compliance_score": 3,
        "esthetic_demands": 3,
        "functional_demands": 3,
    }
    indicators.update(known)
    return indicators


IMPLANT_PROFILE = ClinicalProfile(
    name="implant",
    title="Full-arch implant eligibility",
    tag="ALLONX",
    algorithm_version=ALGORITHM_VERSION,
    fields=FIELDS,
    cross_field_rules=(),
    components=COMPONENTS,
    tiers=TIERS,
    overrides=OVERRIDES,
    flag_rules=FLAG_RULES,
    recommendation_rules=RECOMMENDATION_RULES,
    tier_recommendations=TIER_RECOMMENDATIONS,
    classification_type=ImplantEligibility,
    recommendation_type=ImplantRecommendation,
    flag_type=ImplantFlag,
    assess_risk=assess_risk,
    annotate=annotate,
    risk_factors=risk_factors,
    summary_details=summary_details,
    headline_field="bone_density_class",
    estimate_from_headline=estimate_from_headline,
    full_confidence=FULL_CONFIDENCE,
    screening_confidence=SCREENING_CONFIDENCE,
)
