"""
Validation Module

Range/type/consistency gate in front of every scoring pipeline run.
"""
from .indicator_validator import validate_indicators, normalize_keys, check_field

__all__ = [
    "validate_indicators",
    "normalize_keys",
    "check_field",
]
