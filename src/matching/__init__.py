"""Matching module for generating Secret Santa assignments."""

from src.matching.engine import (
    InfeasibleMatchingError,
    InsufficientParticipantsError,
    MatchingEngine,
    MatchingError,
    MatchOutcome,
    MatchStrategy,
    attempt_generate,
    generate,
    is_complete_bijection,
    is_forbidden,
    is_recent_repeat,
)

__all__ = [
    "InfeasibleMatchingError",
    "InsufficientParticipantsError",
    "MatchingEngine",
    "MatchingError",
    "MatchOutcome",
    "MatchStrategy",
    "attempt_generate",
    "generate",
    "is_complete_bijection",
    "is_forbidden",
    "is_recent_repeat",
]
