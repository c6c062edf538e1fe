"""
Results Module

Immutable scoring results plus their stored-record schema and the
lenient parsing / strict reconstitution entry points.
"""
from .scoring_result import ScoringResult, check_confidence
from .schema import ScoringRecord
from .parsing import ParseResult, parse, reconstitute

__all__ = [
    "ScoringResult",
    "check_confidence",
    "ScoringRecord",
    "ParseResult",
    "parse",
    "reconstitute",
]
