"""Core module for feedcanon."""

from core.models import (
    CandidateAttempt,
    CanonicalizeMethod,
    CanonicalizeReason,
    CanonicalizeResult,
    CanonicalizeState,
    EquivalentResult,
    FetchErrorCode,
    FetchLog,
    FetchResponse,
    MatchOutcome,
    Tier,
)
from core.config import CanonConfig
from core.errors import ConfigurationError, FatalFetchError, FeedcanonError, FetchFailed

__all__ = [
    "CandidateAttempt",
    "CanonicalizeMethod",
    "CanonicalizeReason",
    "CanonicalizeResult",
    "CanonicalizeState",
    "EquivalentResult",
    "FetchErrorCode",
    "FetchLog",
    "FetchResponse",
    "MatchOutcome",
    "Tier",
    "CanonConfig",
    "ConfigurationError",
    "FatalFetchError",
    "FeedcanonError",
    "FetchFailed",
]
