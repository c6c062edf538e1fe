"""
Custom Exception Hierarchy

Provides specific exception types for the scoring pipeline with
structured, field-attributable error information.
"""
from typing import Optional, Dict, Any, Tuple


class ClinicalScoringError(Exception):
    """Base exception for all clinical scoring errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ClinicalScoringError):
    """New indicator input is out of range, wrong-typed, missing or inconsistent."""

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        value: Any = None,
        valid_range: Optional[Tuple[float, float]] = None,
        unit: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "value": value,
                "valid_range": list(valid_range) if valid_range is not None else None,
                "unit": unit,
                **(details or {}),
            }
        )
        self.field = field
        self.value = value
        self.valid_range = valid_range
        self.unit = unit


class ReconstitutionError(ClinicalScoringError):
    """A stored/serialized result record is incomplete or corrupt."""

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        value: Any = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="RECONSTITUTION_ERROR",
            details={"field": field, "value": value, **(details or {})}
        )
        self.field = field
        self.value = value


class UnknownProfileError(ClinicalScoringError):
    """Requested scoring profile is not registered."""

    def __init__(self, profile: str, available: Tuple[str, ...] = ()):
        super().__init__(
            message=f"Unknown scoring profile '{profile}'",
            code="UNKNOWN_PROFILE",
            details={"profile": profile, "available": list(available)}
        )
        self.profile = profile
