"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    ClinicalScoringError,
    ValidationError,
    ReconstitutionError,
    UnknownProfileError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ClinicalScoringError",
    "ValidationError",
    "ReconstitutionError",
    "UnknownProfileError",
]
