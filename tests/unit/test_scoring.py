"""
Unit Tests for the Scoring Pipeline

Composite calculator, classification engine (thresholds + absolute
overrides), flag detector, risk level and recommendation resolver.
"""
import pytest

from clinical_scoring import (
    IMPLANT_PROFILE,
    RESPIRATORY_PROFILE,
    ImplantEligibility,
    ImplantFlag,
    ImplantRecommendation,
    RespiratoryFlag,
    RespiratoryRecommendation,
    RespiratorySeverity,
    RiskLevel,
)
from clinical_scoring.core.clinical.classification import classify, fired_overrides, tier_for_score
from clinical_scoring.core.clinical.flags import detect_flags
from clinical_scoring.core.clinical.recommendation import resolve_recommendation
from clinical_scoring.core.scoring import clamp_score, compute_components, compute_composite, display_round
from clinical_scoring.core.validation import validate_indicators


def _respiratory(raw):
    return validate_indicators(RESPIRATORY_PROFILE, raw)


def _implant(raw):
    return validate_indicators(IMPLANT_PROFILE, raw)


class TestCompositeScore:
    """Weighted composite over component sub-scores."""

    def test_healthy_study_composite(self, healthy_sleep_study):
        result = compute_composite(RESPIRATORY_PROFILE, _respiratory(healthy_sleep_study))

        assert result.components["apnea"] == pytest.approx(100.0)
        assert result.components["oxygenation"] == pytest.approx(90.0)
        assert result.components["desaturation"] == pytest.approx(100.0)
        assert result.components["sleepiness"] == pytest.approx(100.0)
        assert result.composite == pytest.approx(97.5)

    def test_severe_study_composite(self, severe_sleep_study):
        result = compute_composite(RESPIRATORY_PROFILE, _respiratory(severe_sleep_study))
        assert result.composite == pytest.approx(25.41667, abs=1e-4)
        assert result.display_score == 25.4

    def test_components_are_read_only(self, healthy_sleep_study):
        components = compute_components(RESPIRATORY_PROFILE, _respiratory(healthy_sleep_study))
        with pytest.raises(TypeError):
            components["apnea"] = 0

    def test_ideal_implant_composite(self, ideal_implant_candidate):
        result = compute_composite(IMPLANT_PROFILE, _implant(ideal_implant_candidate))

        assert result.components["bone_quality"] == pytest.approx(90.0)
        assert result.components["medical_risk"] == pytest.approx(100.0)
        # hygiene and loading bonuses are capped at 100
        assert result.components["oral_health"] == pytest.approx(100.0)
        assert result.components["procedural_complexity"] == pytest.approx(100.0)
        assert result.composite == pytest.approx(96.5)

    def test_implant_component_floor(self, ideal_implant_candidate):
        """Stacked penalties never drive a component below zero."""
        ideal_implant_candidate.update({
            "smoking_status": 4,
            "hba1c": 12.0,
            "on_bisphosphonates": True,
            "bisphosphonate_years": 10,
            "has_radiation_history": True,
            "has_uncontrolled_cardiovascular": True,
            "asa_classification": 4,
        })
        result = compute_composite(IMPLANT_PROFILE, _implant(ideal_implant_candidate))
        assert result.components["medical_risk"] == 0.0
        assert 0.0 <= result.composite <= 100.0

    def test_asa_five_not_better_than_asa_four(self, ideal_implant_candidate):
        ideal_implant_candidate["asa_classification"] = 4
        asa4 = compute_components(IMPLANT_PROFILE, _implant(ideal_implant_candidate))
        ideal_implant_candidate["asa_classification"] = 5
        asa5 = compute_components(IMPLANT_PROFILE, _implant(ideal_implant_candidate))
        assert asa5["medical_risk"] <= asa4["medical_risk"]

    def test_mandibular_case_uses_mandible_height(self, ideal_implant_candidate):
        ideal_implant_candidate.update({"target_arch": 2, "mandible_bone_height": 7})
        components = compute_components(IMPLANT_PROFILE, _implant(ideal_implant_candidate))
        assert components["bone_quality"] == pytest.approx(60.0)

    @pytest.mark.parametrize("value, expected", [
        (-5.0, 0.0), (105.0, 100.0), (42.0, 42.0), (float("nan"), 0.0), (float("inf"), 0.0),
    ])
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected

    def test_display_round(self):
        assert display_round(79.94) == 79.9
        assert display_round(79.96) == 80.0


class TestThresholds:
    """Lower-inclusive tier floors at 80 / 60 / 40."""

    @pytest.mark.parametrize("score, expected", [
        (100.0, RespiratorySeverity.NONE),
        (80.0, RespiratorySeverity.NONE),
        (79.9, RespiratorySeverity.MILD),
        (60.0, RespiratorySeverity.MILD),
        (59.9, RespiratorySeverity.MODERATE),
        (40.0, RespiratorySeverity.MODERATE),
        (39.9, RespiratorySeverity.SEVERE),
        (0.0, RespiratorySeverity.SEVERE),
    ])
    def test_respiratory_tiers(self, score, expected):
        assert tier_for_score(RESPIRATORY_PROFILE, score) == expected

    @pytest.mark.parametrize("score, expected", [
        (80.0, ImplantEligibility.IDEAL),
        (79.9, ImplantEligibility.SUITABLE),
        (60.0, ImplantEligibility.SUITABLE),
        (59.9, ImplantEligibility.CONDITIONAL),
        (40.0, ImplantEligibility.CONDITIONAL),
        (39.9, ImplantEligibility.CONTRAINDICATED),
    ])
    def test_implant_tiers(self, score, expected):
        assert tier_for_score(IMPLANT_PROFILE, score) == expected

    def test_unrounded_value_is_classified(self):
        """79.96 displays as 80.0 but is still below the floor."""
        assert tier_for_score(RESPIRATORY_PROFILE, 79.96) == RespiratorySeverity.MILD

    def test_weighted_sum_exactly_on_ideal_floor(self, implant_scorer):
        """33.6 + 21 + 14.4 + 6 + 5 is exactly 80 and must reach IDEAL."""
        result = implant_scorer.from_indicators({
            "bone_density_class": 1, "maxilla_bone_height": 30, "mandible_bone_height": 15,
            "bone_width": 6, "target_arch": 1,
            "smoking_status": 0, "on_anticoagulants": True, "asa_classification": 3,
            "remaining_teeth": 10, "periodontal_disease": 3, "oral_hygiene_score": 3,
            "needs_bone_grafting": True, "extractions_needed": 12, "immediate_loading_feasibility": 1,
            "patient_age": 50, "compliance_score": 3, "esthetic_demands": 3, "functional_demands": 3,
        })

        assert dict(result.component_scores) == {
            "bone_quality": 96.0, "medical_risk": 70.0, "oral_health": 72.0,
            "procedural_complexity": 60.0, "patient_factors": 100.0,
        }
        assert result.composite_score == 80.0
        assert result.classification == ImplantEligibility.IDEAL
        assert result.to_compact_string() == "ALLONX[IDEAL:80.0]"

    def test_weighted_sum_exactly_on_suitable_floor(self, implant_scorer):
        """21 + 18 + 12 + 4 + 5 is exactly 60 and must reach SUITABLE."""
        result = implant_scorer.from_indicators({
            "bone_density_class": 2, "maxilla_bone_height": 7, "mandible_bone_height": 15,
            "bone_width": 8, "target_arch": 1,
            "smoking_status": 0, "is_immunocompromised": True, "on_anticoagulants": True,
            "asa_classification": 1,
            "remaining_teeth": 10, "periodontal_disease": 2, "oral_hygiene_score": 2,
            "previous_failed_implants": 2,
            "needs_bone_grafting": True, "needs_sinus_lift": True, "extractions_needed": 16,
            "immediate_loading_feasibility": 3,
            "patient_age": 50, "compliance_score": 3, "esthetic_demands": 3, "functional_demands": 3,
        })

        assert result.composite_score == 60.0
        assert result.classification == ImplantEligibility.SUITABLE


class TestRespiratoryOverrides:
    """Absolute overrides force SEVERE regardless of score."""

    def test_nadir_below_75_overrides_high_score(self, healthy_sleep_study):
        healthy_sleep_study["oxygen_nadir"] = 74
        indicators = _respiratory(healthy_sleep_study)
        composite = compute_composite(RESPIRATORY_PROFILE, indicators).composite

        assert composite >= 80
        assert tier_for_score(RESPIRATORY_PROFILE, composite) == RespiratorySeverity.NONE
        assert classify(RESPIRATORY_PROFILE, composite, indicators) == RespiratorySeverity.SEVERE

    def test_nadir_exactly_75_does_not_override(self, healthy_sleep_study):
        """The hypoxemia override is strict."""
        healthy_sleep_study["oxygen_nadir"] = 75
        indicators = _respiratory(healthy_sleep_study)
        assert fired_overrides(RESPIRATORY_PROFILE, indicators) == []

    def test_ahi_exactly_30_overrides(self, healthy_sleep_study):
        """The apnea override is inclusive."""
        healthy_sleep_study["apnea_index"] = 30
        indicators = _respiratory(healthy_sleep_study)
        composite = compute_composite(RESPIRATORY_PROFILE, indicators).composite

        assert composite == pytest.approx(77.5)
        assert classify(RESPIRATORY_PROFILE, composite, indicators) == RespiratorySeverity.SEVERE

    def test_ahi_just_below_30(self, healthy_sleep_study):
        healthy_sleep_study["apnea_index"] = 29.9
        indicators = _respiratory(healthy_sleep_study)
        composite = compute_composite(RESPIRATORY_PROFILE, indicators).composite
        assert classify(RESPIRATORY_PROFILE, composite, indicators) == RespiratorySeverity.MILD


class TestImplantOverrides:
    """Contraindications force CONTRAINDICATED regardless of score."""

    @pytest.mark.parametrize("changes, flag", [
        ({"has_radiation_history": True}, ImplantFlag.RADIATION_HISTORY),
        ({"has_uncontrolled_cardiovascular": True}, ImplantFlag.CARDIOVASCULAR_RISK),
        ({"asa_classification": 4}, ImplantFlag.SEVERE_SYSTEMIC_DISEASE),
        ({"asa_classification": 5}, ImplantFlag.SEVERE_SYSTEMIC_DISEASE),
        ({"hba1c": 10.1}, ImplantFlag.SEVERELY_UNCONTROLLED_DIABETES),
        ({"on_bisphosphonates": True, "bisphosphonate_years": 9}, ImplantFlag.PROLONGED_BISPHOSPHONATES),
    ])
    def test_each_contraindication(self, ideal_implant_candidate, changes, flag):
        ideal_implant_candidate.update(changes)
        indicators = _implant(ideal_implant_candidate)
        composite = compute_composite(IMPLANT_PROFILE, indicators).composite
        report = detect_flags(IMPLANT_PROFILE, indicators)

        assert classify(IMPLANT_PROFILE, composite, indicators) == ImplantEligibility.CONTRAINDICATED
        assert flag in report.flags
        assert len(report.contraindications) == 1

    def test_radiation_history_overrides_ideal_score(self, ideal_implant_candidate):
        ideal_implant_candidate["has_radiation_history"] = True
        indicators = _implant(ideal_implant_candidate)
        composite = compute_composite(IMPLANT_PROFILE, indicators).composite

        assert composite == pytest.approx(81.5)
        assert classify(IMPLANT_PROFILE, composite, indicators) == ImplantEligibility.CONTRAINDICATED

    def test_hba1c_exactly_10_is_not_contraindicated(self, ideal_implant_candidate):
        """HbA1c contraindication is strict (> 10), unlike the inclusive AHI override."""
        ideal_implant_candidate["hba1c"] = 10.0
        indicators = _implant(ideal_implant_candidate)
        composite = compute_composite(IMPLANT_PROFILE, indicators).composite

        assert fired_overrides(IMPLANT_PROFILE, indicators) == []
        assert classify(IMPLANT_PROFILE, composite, indicators) == ImplantEligibility.IDEAL

    def test_bisphosphonates_exactly_8_years(self, ideal_implant_candidate):
        ideal_implant_candidate.update({"on_bisphosphonates": True, "bisphosphonate_years": 8})
        assert fired_overrides(IMPLANT_PROFILE, _implant(ideal_implant_candidate)) == []

    def test_multiple_contraindications_in_rule_order(self, ideal_implant_candidate):
        ideal_implant_candidate.update({"asa_classification": 4, "has_radiation_history": True})
        report = detect_flags(IMPLANT_PROFILE, _implant(ideal_implant_candidate))

        assert len(report.contraindications) == 2
        assert "radiation" in report.contraindications[0]
        assert "ASA" in report.contraindications[1]


class TestFlags:
    """Informational flags accumulate independently of classification."""

    def test_healthy_study_has_no_flags(self, healthy_sleep_study):
        report = detect_flags(RESPIRATORY_PROFILE, _respiratory(healthy_sleep_study))
        assert report.flags == frozenset()
        assert not report.has_contraindication

    def test_severe_study_flags(self, severe_sleep_study):
        report = detect_flags(RESPIRATORY_PROFILE, _respiratory(severe_sleep_study))

        assert report.flags == {
            RespiratoryFlag.SEVERE_HYPOXEMIA,
            RespiratoryFlag.SEVERE_APNEA,
            RespiratoryFlag.SIGNIFICANT_HYPOXEMIA,
            RespiratoryFlag.FREQUENT_DESATURATION,
            RespiratoryFlag.EXCESSIVE_DAYTIME_SLEEPINESS,
            RespiratoryFlag.POOR_SLEEP_EFFICIENCY,
        }
        assert len(report.contraindications) == 2

    def test_positional_dependency(self, mild_sleep_study):
        mild_sleep_study["supine_apnea_index"] = 45
        report = detect_flags(RESPIRATORY_PROFILE, _respiratory(mild_sleep_study))
        assert RespiratoryFlag.POSITIONAL_DEPENDENCY in report.flags

    def test_positional_ratio_is_strict(self, mild_sleep_study):
        mild_sleep_study["supine_apnea_index"] = 40
        report = detect_flags(RESPIRATORY_PROFILE, _respiratory(mild_sleep_study))
        assert RespiratoryFlag.POSITIONAL_DEPENDENCY not in report.flags

    def test_stage_ratio_with_zero_ahi(self, healthy_sleep_study):
        healthy_sleep_study.update({"supine_apnea_index": 5, "rem_apnea_index": 5})
        report = detect_flags(RESPIRATORY_PROFILE, _respiratory(healthy_sleep_study))
        assert RespiratoryFlag.POSITIONAL_DEPENDENCY not in report.flags
        assert RespiratoryFlag.REM_PREDOMINANT not in report.flags

    def test_anthropometric_flags(self, healthy_sleep_study):
        healthy_sleep_study.update({"bmi": 30, "neck_circumference": 43})
        report = detect_flags(RESPIRATORY_PROFILE, _respiratory(healthy_sleep_study))
        assert RespiratoryFlag.OBESITY in report.flags
        assert RespiratoryFlag.ENLARGED_NECK_CIRCUMFERENCE in report.flags

    def test_implant_smoking_flags(self, ideal_implant_candidate):
        ideal_implant_candidate["smoking_status"] = 4
        heavy = detect_flags(IMPLANT_PROFILE, _implant(ideal_implant_candidate)).flags
        ideal_implant_candidate["smoking_status"] = 2
        active = detect_flags(IMPLANT_PROFILE, _implant(ideal_implant_candidate)).flags

        assert ImplantFlag.HEAVY_SMOKER in heavy and ImplantFlag.ACTIVE_SMOKER not in heavy
        assert ImplantFlag.ACTIVE_SMOKER in active

    def test_flags_do_not_change_classification(self, ideal_implant_candidate):
        """Bruxism and geriatric age are informational only."""
        ideal_implant_candidate.update({"has_bruxism": True, "patient_age": 72})
        indicators = _implant(ideal_implant_candidate)
        report = detect_flags(IMPLANT_PROFILE, indicators)
        composite = compute_composite(IMPLANT_PROFILE, indicators).composite

        assert {ImplantFlag.BRUXISM, ImplantFlag.GERIATRIC_PATIENT} <= report.flags
        assert classify(IMPLANT_PROFILE, composite, indicators) == tier_for_score(IMPLANT_PROFILE, composite)


class TestRiskLevel:

    @pytest.mark.parametrize("changes, expected", [
        ({}, RiskLevel.LOW),
        ({"desaturation_index": 10}, RiskLevel.MODERATE),
        ({"apnea_index": 5}, RiskLevel.MODERATE),
        ({"apnea_index": 15}, RiskLevel.HIGH),
        ({"oxygen_nadir": 79}, RiskLevel.HIGH),
        ({"apnea_index": 30, "oxygen_nadir": 74}, RiskLevel.CRITICAL),
        ({"apnea_index": 30}, RiskLevel.HIGH),
    ])
    def test_respiratory_risk(self, healthy_sleep_study, changes, expected):
        healthy_sleep_study.update(changes)
        assert RESPIRATORY_PROFILE.assess_risk(_respiratory(healthy_sleep_study)) == expected

    def test_implant_risk_points(self, ideal_implant_candidate):
        assert IMPLANT_PROFILE.assess_risk(_implant(ideal_implant_candidate)) == RiskLevel.LOW

        ideal_implant_candidate.update({"smoking_status": 3, "hba1c": 9.5})
        assert IMPLANT_PROFILE.assess_risk(_implant(ideal_implant_candidate)) == RiskLevel.HIGH

        ideal_implant_candidate.update({"has_osteoporosis": True, "has_bruxism": True})
        assert IMPLANT_PROFILE.assess_risk(_implant(ideal_implant_candidate)) == RiskLevel.CRITICAL

    def test_risk_ordering(self):
        ranks = [level.rank for level in (RiskLevel.LOW, RiskLevel.MODERATE, RiskLevel.HIGH, RiskLevel.CRITICAL)]
        assert ranks == sorted(ranks)


class TestRespiratoryRecommendation:
    """First matching rule wins; tier default otherwise."""

    def _resolve(self, raw):
        indicators = _respiratory(raw)
        composite = compute_composite(RESPIRATORY_PROFILE, indicators).composite
        classification = classify(RESPIRATORY_PROFILE, composite, indicators)
        flags = detect_flags(RESPIRATORY_PROFILE, indicators).flags
        return classification, resolve_recommendation(RESPIRATORY_PROFILE, classification, flags, indicators)

    def test_severe_with_hypoxemia_gets_bipap(self, severe_sleep_study):
        assert self._resolve(severe_sleep_study) == (
            RespiratorySeverity.SEVERE, RespiratoryRecommendation.BIPAP_THERAPY,
        )

    def test_severe_without_hypoxemia_gets_cpap(self, healthy_sleep_study):
        healthy_sleep_study["apnea_index"] = 35
        assert self._resolve(healthy_sleep_study) == (
            RespiratorySeverity.SEVERE, RespiratoryRecommendation.CPAP_THERAPY,
        )

    def test_moderate_gets_cpap(self, moderate_sleep_study):
        assert self._resolve(moderate_sleep_study) == (
            RespiratorySeverity.MODERATE, RespiratoryRecommendation.CPAP_THERAPY,
        )

    def test_mild_gets_oral_appliance(self, mild_sleep_study):
        assert self._resolve(mild_sleep_study) == (
            RespiratorySeverity.MILD, RespiratoryRecommendation.ORAL_APPLIANCE,
        )

    def test_mild_positional(self, mild_sleep_study):
        mild_sleep_study["supine_apnea_index"] = 45
        assert self._resolve(mild_sleep_study)[1] == RespiratoryRecommendation.POSITIONAL_THERAPY

    def test_mild_obese(self, mild_sleep_study):
        mild_sleep_study["bmi"] = 32
        assert self._resolve(mild_sleep_study)[1] == RespiratoryRecommendation.LIFESTYLE_MODIFICATION

    def test_positional_wins_over_obesity(self, mild_sleep_study):
        mild_sleep_study.update({"supine_apnea_index": 45, "bmi": 32})
        assert self._resolve(mild_sleep_study)[1] == RespiratoryRecommendation.POSITIONAL_THERAPY

    def test_healthy_gets_lifestyle(self, healthy_sleep_study):
        assert self._resolve(healthy_sleep_study) == (
            RespiratorySeverity.NONE, RespiratoryRecommendation.LIFESTYLE_MODIFICATION,
        )


class TestImplantRecommendation:

    def _resolve(self, raw):
        indicators = _implant(raw)
        composite = compute_composite(IMPLANT_PROFILE, indicators).composite
        classification = classify(IMPLANT_PROFILE, composite, indicators)
        flags = detect_flags(IMPLANT_PROFILE, indicators).flags
        return resolve_recommendation(IMPLANT_PROFILE, classification, flags, indicators)

    def test_ideal_proceeds_standard(self, ideal_implant_candidate):
        assert self._resolve(ideal_implant_candidate) == ImplantRecommendation.PROCEED_STANDARD

    def test_contraindicated_not_recommended(self, ideal_implant_candidate):
        ideal_implant_candidate["has_radiation_history"] = True
        assert self._resolve(ideal_implant_candidate) == ImplantRecommendation.NOT_RECOMMENDED

    def test_asa_three_needs_clearance(self, ideal_implant_candidate):
        ideal_implant_candidate["asa_classification"] = 3
        assert self._resolve(ideal_implant_candidate) == ImplantRecommendation.MEDICAL_CLEARANCE_REQUIRED

    def test_grafting_first(self, ideal_implant_candidate):
        ideal_implant_candidate["needs_bone_grafting"] = True
        assert self._resolve(ideal_implant_candidate) == ImplantRecommendation.BONE_AUGMENTATION_FIRST

    def test_highly_complex_augmentation_is_staged(self, ideal_implant_candidate):
        ideal_implant_candidate.update({
            "needs_bone_grafting": True,
            "needs_sinus_lift": True,
            "target_arch": 3,
            "immediate_loading_feasibility": 2,
        })
        assert self._resolve(ideal_implant_candidate) == ImplantRecommendation.STAGED_APPROACH

    def test_high_risk_proceeds_with_modifications(self, ideal_implant_candidate):
        ideal_implant_candidate.update({"smoking_status": 3, "hba1c": 9.5})
        assert self._resolve(ideal_implant_candidate) == ImplantRecommendation.PROCEED_WITH_MODIFICATIONS
