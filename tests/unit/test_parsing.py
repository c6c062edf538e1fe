"""
Unit Tests for Reconstitution and Lenient Parsing
"""
from datetime import datetime, timezone

import pytest

from clinical_scoring import (
    ImplantFlag,
    ParseResult,
    ReconstitutionError,
    RespiratoryFlag,
    RespiratoryRecommendation,
    RespiratorySeverity,
    RiskLevel,
)
from clinical_scoring.core.results import ScoringRecord


@pytest.fixture
def legacy_record(severe_sleep_study) -> dict:
    """Stored record using the legacy camelCase / domain keys."""
    return {
        "indicators": severe_sleep_study,
        "compositeScore": 25.4,
        "severity": "SEVERE",
        "cardiovascularRisk": "CRITICAL",
        "treatmentRecommendation": "BIPAP_THERAPY",
        "confidence": 0.9,
        "scoredAt": "2024-03-01T08:30:00Z",
    }


class TestReconstitute:
    """Strict rebuild from stored records."""

    def test_round_trip(self, respiratory_scorer, severe_sleep_study):
        original = respiratory_scorer.from_indicators(severe_sleep_study, confidence=0.85)
        rebuilt = respiratory_scorer.reconstitute(original.to_dict())

        assert rebuilt == original
        assert rebuilt.confidence == original.confidence
        assert rebuilt.scored_at == original.scored_at
        assert rebuilt.annotations == original.annotations
        assert rebuilt.to_dict() == original.to_dict()

    def test_implant_round_trip(self, implant_scorer, ideal_implant_candidate):
        ideal_implant_candidate.update({"has_bruxism": True, "hba1c": 7.2})
        original = implant_scorer.from_indicators(ideal_implant_candidate)
        rebuilt = implant_scorer.reconstitute(original.to_dict())

        assert rebuilt == original
        assert rebuilt.has_flag(ImplantFlag.BRUXISM)

    def test_legacy_keys(self, respiratory_scorer, legacy_record):
        result = respiratory_scorer.reconstitute(legacy_record)

        assert result.classification == RespiratorySeverity.SEVERE
        assert result.risk_level == RiskLevel.CRITICAL
        assert result.recommendation == RespiratoryRecommendation.BIPAP_THERAPY
        assert result.scored_at == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)
        # absent from the record, so derived from the indicators
        assert result.has_flag(RespiratoryFlag.SEVERE_HYPOXEMIA)
        assert len(result.contraindications) == 2
        assert set(result.component_scores) == {"apnea", "oxygenation", "desaturation", "sleepiness"}
        assert result.follow_up_urgency.value == "immediate"

    def test_stored_judgment_kept(self, respiratory_scorer, legacy_record):
        """Stored classification is not recomputed."""
        legacy_record["treatmentRecommendation"] = "CPAP_THERAPY"
        legacy_record["flags"] = ["SEVERE_APNEA"]
        result = respiratory_scorer.reconstitute(legacy_record)

        assert result.recommendation == RespiratoryRecommendation.CPAP_THERAPY
        assert result.flags == {RespiratoryFlag.SEVERE_APNEA}

    def test_naive_timestamp_treated_as_utc(self, respiratory_scorer, legacy_record):
        legacy_record["scoredAt"] = datetime(2024, 3, 1, 8, 30)
        result = respiratory_scorer.reconstitute(legacy_record)
        assert result.scored_at.tzinfo is not None

    @pytest.mark.parametrize("missing", ["indicators", "severity", "scoredAt", "confidence", "compositeScore"])
    def test_missing_key(self, respiratory_scorer, legacy_record, missing):
        del legacy_record[missing]
        with pytest.raises(ReconstitutionError) as excinfo:
            respiratory_scorer.reconstitute(legacy_record)
        assert excinfo.value.code == "RECONSTITUTION_ERROR"

    @pytest.mark.parametrize("timestamp", ["yesterday", 1709281800, None, ["2024-03-01"]])
    def test_bad_timestamp(self, respiratory_scorer, legacy_record, timestamp):
        legacy_record["scoredAt"] = timestamp
        with pytest.raises(ReconstitutionError) as excinfo:
            respiratory_scorer.reconstitute(legacy_record)
        assert "scored" in excinfo.value.field

    @pytest.mark.parametrize("key, label", [
        ("severity", "CATASTROPHIC"),
        ("cardiovascularRisk", "EXTREME"),
        ("treatmentRecommendation", "SURGERY"),
    ])
    def test_unknown_labels(self, respiratory_scorer, legacy_record, key, label):
        legacy_record[key] = label
        with pytest.raises(ReconstitutionError):
            respiratory_scorer.reconstitute(legacy_record)

    def test_unknown_flag_label(self, respiratory_scorer, legacy_record):
        legacy_record["flags"] = ["RADIATION_HISTORY"]
        with pytest.raises(ReconstitutionError) as excinfo:
            respiratory_scorer.reconstitute(legacy_record)
        assert excinfo.value.field == "flags"

    def test_implant_label_in_respiratory_record(self, respiratory_scorer, legacy_record):
        legacy_record["severity"] = "IDEAL"
        with pytest.raises(ReconstitutionError) as excinfo:
            respiratory_scorer.reconstitute(legacy_record)
        assert excinfo.value.field == "classification"

    def test_wrong_profile(self, implant_scorer, respiratory_scorer, severe_sleep_study):
        record = respiratory_scorer.from_indicators(severe_sleep_study).to_dict()
        with pytest.raises(ReconstitutionError) as excinfo:
            implant_scorer.reconstitute(record)
        assert excinfo.value.field == "profile"

    def test_invalid_stored_indicators(self, respiratory_scorer, legacy_record):
        legacy_record["indicators"]["apnea_index"] = 500
        with pytest.raises(ReconstitutionError) as excinfo:
            respiratory_scorer.reconstitute(legacy_record)
        assert excinfo.value.field == "indicators.apnea_index"

    @pytest.mark.parametrize("score", [-1, 101, float("nan")])
    def test_composite_out_of_range(self, respiratory_scorer, legacy_record, score):
        legacy_record["compositeScore"] = score
        with pytest.raises(ReconstitutionError):
            respiratory_scorer.reconstitute(legacy_record)

    def test_confidence_out_of_range(self, respiratory_scorer, legacy_record):
        legacy_record["confidence"] = 1.2
        with pytest.raises(ReconstitutionError):
            respiratory_scorer.reconstitute(legacy_record)

    @pytest.mark.parametrize("dto", [None, "record", 42, ["indicators"]])
    def test_non_mapping(self, respiratory_scorer, dto):
        with pytest.raises(ReconstitutionError):
            respiratory_scorer.reconstitute(dto)


class TestScoringRecord:

    def test_snake_and_camel_keys(self, legacy_record):
        record = ScoringRecord.model_validate(legacy_record)
        assert record.classification == "SEVERE"
        assert record.risk_level == "CRITICAL"
        assert record.recommendation == "BIPAP_THERAPY"
        assert record.flags is None

    def test_eligibility_alias(self, ideal_implant_candidate):
        record = ScoringRecord.model_validate({
            "indicators": ideal_implant_candidate,
            "composite_score": 96.5,
            "eligibility": "IDEAL",
            "risk_level": "LOW",
            "recommendation": "PROCEED_STANDARD",
            "confidence": 0.9,
            "scored_at": "2024-03-01T08:30:00+00:00",
        })
        assert record.classification == "IDEAL"


class TestParse:
    """parse never raises; it reports failure instead."""

    def test_existing_result_passes_through(self, respiratory_scorer, severe_sleep_study):
        result = respiratory_scorer.from_indicators(severe_sleep_study)
        parsed = respiratory_scorer.parse(result)

        assert parsed.success
        assert parsed.value is result

    def test_foreign_result_rejected(self, respiratory_scorer, implant_scorer, ideal_implant_candidate):
        parsed = respiratory_scorer.parse(implant_scorer.from_indicators(ideal_implant_candidate))
        assert not parsed.success
        assert parsed.error_code == "RECONSTITUTION_ERROR"

    def test_full_record(self, respiratory_scorer, legacy_record):
        parsed = respiratory_scorer.parse(legacy_record)
        assert parsed.success
        assert parsed.value.classification == RespiratorySeverity.SEVERE

    def test_indicators_wrapper(self, respiratory_scorer, mild_sleep_study):
        parsed = respiratory_scorer.parse({"indicators": mild_sleep_study, "confidence": 0.8})
        assert parsed.success
        assert parsed.value.confidence == 0.8
        assert parsed.value.classification == RespiratorySeverity.MILD

    def test_indicators_wrapper_with_unexpected_key(self, respiratory_scorer, mild_sleep_study):
        parsed = respiratory_scorer.parse({"indicators": mild_sleep_study, "notes": "x"})
        assert not parsed.success
        assert parsed.error_code == "VALIDATION_ERROR"

    def test_bare_headline_number(self, respiratory_scorer):
        parsed = respiratory_scorer.parse(45)
        assert parsed.success
        assert parsed.value.confidence == 0.7
        assert parsed.value.classification == RespiratorySeverity.SEVERE

    def test_headline_mapping(self, implant_scorer):
        parsed = implant_scorer.parse({"boneDensityClass": 2, "smokingStatus": 1})
        assert parsed.success
        assert parsed.value.confidence == 0.6
        assert parsed.value.indicators["smoking_status"] == 1

    def test_flat_indicators(self, implant_scorer, ideal_implant_candidate):
        parsed = implant_scorer.parse(ideal_implant_candidate)
        assert parsed.success
        assert parsed.value.confidence == 0.9

    def test_serialized_result(self, respiratory_scorer, moderate_sleep_study):
        original = respiratory_scorer.from_indicators(moderate_sleep_study)
        parsed = respiratory_scorer.parse(original.to_dict())
        assert parsed.success
        assert parsed.value == original

    @pytest.mark.parametrize("unknown", [None, True, "45", [45], float("nan"), 500, object()])
    def test_failures_are_reported(self, respiratory_scorer, unknown):
        parsed = respiratory_scorer.parse(unknown)

        assert isinstance(parsed, ParseResult)
        assert not parsed.success
        assert parsed.value is None
        assert parsed.error
        assert parsed.error_code in ("VALIDATION_ERROR", "RECONSTITUTION_ERROR")

    @pytest.mark.parametrize("stray", ["value", "self", "confidence", "heart_rate"])
    def test_headline_with_stray_key(self, respiratory_scorer, stray):
        """A stray key next to the headline is reported, not forwarded as a keyword."""
        parsed = respiratory_scorer.parse({"apnea_index": 10, stray: 3})

        assert not parsed.success
        assert parsed.error_code == "VALIDATION_ERROR"
        assert parsed.details["field"] == stray

    def test_headline_with_non_string_key(self, implant_scorer):
        parsed = implant_scorer.parse({"boneDensityClass": 2, 7: "x"})
        assert not parsed.success
        assert parsed.details["field"] == "7"

    def test_headline_in_both_spellings(self, respiratory_scorer):
        parsed = respiratory_scorer.parse({"apnea_index": 10, "apneaIndex": 12})
        assert not parsed.success
        assert parsed.details["field"] == "apnea_index"

    def test_invalid_flat_indicators(self, respiratory_scorer, healthy_sleep_study):
        healthy_sleep_study["oxygen_nadir"] = 99
        parsed = respiratory_scorer.parse(healthy_sleep_study)
        assert not parsed.success
        assert parsed.details["field"] == "oxygen_nadir"

    def test_invalid_record(self, respiratory_scorer, legacy_record):
        legacy_record["severity"] = "UNKNOWN"
        parsed = respiratory_scorer.parse(legacy_record)
        assert not parsed.success
        assert parsed.error_code == "RECONSTITUTION_ERROR"
