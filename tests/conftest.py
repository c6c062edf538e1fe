"""
Pytest Configuration and Fixtures

Shared fixtures for clinical scoring tests.
"""
import pytest
from pathlib import Path
import sys

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinical_scoring import ClinicalScorer, IMPLANT_PROFILE, RESPIRATORY_PROFILE


@pytest.fixture
def respiratory_scorer() -> ClinicalScorer:
    return ClinicalScorer(RESPIRATORY_PROFILE)


@pytest.fixture
def implant_scorer() -> ClinicalScorer:
    return ClinicalScorer(IMPLANT_PROFILE)


@pytest.fixture
def healthy_sleep_study() -> dict:
    """Normal study: every component near its best value (composite 97.5)."""
    return {
        "apnea_index": 0,
        "desaturation_index": 0,
        "oxygen_nadir": 96,
        "oxygen_average": 97,
        "sleep_efficiency": 95,
        "daytime_sleepiness_score": 0,
    }


@pytest.fixture
def severe_sleep_study() -> dict:
    """Severe apnea with severe nocturnal hypoxemia."""
    return {
        "apnea_index": 45,
        "desaturation_index": 40,
        "oxygen_nadir": 70,
        "oxygen_average": 85,
        "sleep_efficiency": 60,
        "daytime_sleepiness_score": 20,
    }


@pytest.fixture
def mild_sleep_study() -> dict:
    """Composite ~66.0, no override: scores MILD."""
    return {
        "apnea_index": 20,
        "desaturation_index": 15,
        "oxygen_nadir": 85,
        "oxygen_average": 93,
        "sleep_efficiency": 85,
        "daytime_sleepiness_score": 10,
    }


@pytest.fixture
def moderate_sleep_study() -> dict:
    """Composite ~52.1, no override: scores MODERATE."""
    return {
        "apnea_index": 25,
        "desaturation_index": 30,
        "oxygen_nadir": 80,
        "oxygen_average": 91,
        "sleep_efficiency": 80,
        "daytime_sleepiness_score": 14,
    }


@pytest.fixture
def ideal_implant_candidate() -> dict:
    """D2 bone, ample dimensions, no systemic risk (composite 96.5)."""
    return {
        "bone_density_class": 2,
        "maxilla_bone_height": 14,
        "mandible_bone_height": 15,
        "bone_width": 9,
        "smoking_status": 0,
        "remaining_teeth": 10,
        "periodontal_disease": 0,
        "oral_hygiene_score": 4,
        "target_arch": 1,
        "extractions_needed": 5,
        "immediate_loading_feasibility": 4,
        "patient_age": 50,
        "asa_classification": 1,
        "compliance_score": 4,
        "esthetic_demands": 3,
        "functional_demands": 3,
    }
