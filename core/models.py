"""
Core Pydantic models for feedcanon.

Design principles:
- Tiers and results are immutable values built fresh for every run
- Signatures are opaque: the engine only compares them for equality
- Every tested URL leaves a trace entry (outcome + detail) in the result
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class CanonicalizeState(str, Enum):
    """Where is the orchestrator in its run?"""
    INIT = "INIT"
    FETCH_ORIGIN = "FETCH_ORIGIN"
    EXTRACT_SELF = "EXTRACT_SELF"
    VALIDATE_SELF = "VALIDATE_SELF"
    GENERATE_CANDIDATES = "GENERATE_CANDIDATES"
    TEST_CANDIDATES = "TEST_CANDIDATES"
    UPGRADE_PROTOCOL = "UPGRADE_PROTOCOL"
    DONE = "DONE"
    FAILED = "FAILED"


class CanonicalizeMethod(str, Enum):
    """How was the selected URL obtained?"""
    SELF_URL_VALIDATED = "self_url_validated"
    CANDIDATE_MATCH = "candidate_match"
    EXISTENCE_CHECK_HIT = "existence_check_hit"
    PROTOCOL_UPGRADE = "protocol_upgrade"
    FALLBACK = "fallback"


class CanonicalizeReason(str, Enum):
    """Machine-readable reason attached to a result or a fatal error."""
    CONTENT_MATCHED = "content_matched"  # candidate fetched and matched
    ORIGIN_RESPONSE = "origin_response"  # candidate equals the origin's final URL
    SELF_URL_MATCHED = "self_url_matched"
    KNOWN_URL = "known_url"  # existence check returned data
    HTTPS_MATCHED = "https_matched"
    NO_CANDIDATE_MATCHED = "no_candidate_matched"
    INVALID_URL = "invalid_url"
    ORIGIN_UNREACHABLE = "origin_unreachable"
    ORIGIN_BAD_STATUS = "origin_bad_status"
    ORIGIN_UNPARSABLE = "origin_unparsable"


class MatchOutcome(str, Enum):
    """Result of testing one URL against the reference signature."""
    MATCH = "match"
    NO_MATCH = "no_match"
    FETCH_ERROR = "fetch_error"
    PARSE_ERROR = "parse_error"


class FetchErrorCode(str, Enum):
    """Why did a fetch fail?"""
    TIMEOUT = "TIMEOUT"
    SECURITY_BLOCKED = "SECURITY_BLOCKED"  # SSRF, IP blocklist, etc.
    FETCH_ERROR = "FETCH_ERROR"  # Network error
    BODY_TOO_LARGE = "BODY_TOO_LARGE"
    REDIRECT_LIMIT = "REDIRECT_LIMIT"


# ============================================================================
# Normalization tiers
# ============================================================================

class Tier(BaseModel):
    """
    One named set of URL-cleanup toggles.

    A caller passes tiers ordered from cleanest (most aggressive stripping)
    to least clean (closest to the original URL). Every toggle defaults to off,
    so `Tier()` only applies the always-on cleanup (lowercase host, default
    port removal).
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "custom"

    strip_protocol: bool = False  # http and https compare equal (keys only)
    strip_auth: bool = False  # user:pass@
    strip_www: bool = False
    strip_trailing_slash: bool = False  # /feed/ -> /feed
    strip_root_slash: bool = False  # example.com/ -> example.com
    collapse_slashes: bool = False  # /// -> /
    strip_hash: bool = False
    strip_text_fragment: bool = False  # #:~:text=...
    sort_query_params: bool = False
    strip_query_params: Tuple[str, ...] = ()
    strip_query: bool = False
    strip_empty_query: bool = False  # /feed? -> /feed
    normalize_encoding: bool = False  # %7E -> ~, %2f -> %2F
    normalize_unicode: bool = False  # NFC
    convert_to_punycode: bool = False

    @field_validator("strip_query_params", mode="before")
    @classmethod
    def coerce_param_names(cls, v: Any) -> Any:
        """Accept any iterable of names (JSON files give lists)."""
        if isinstance(v, str):
            return (v,)
        if isinstance(v, (list, set, frozenset)):
            return tuple(v)
        return v


# ============================================================================
# Fetch collaborator payloads
# ============================================================================

class FetchResponse(BaseModel):
    """
    Response returned by a fetch collaborator.

    `url` is the final URL after redirects.
    """
    url: str
    status: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class FetchLog(BaseModel):
    """
    Log entry for a single fetch operation.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    url: str
    method: str = "GET"

    status_code: Optional[int] = None  # HTTP status
    final_url: Optional[str] = None
    latency_ms: Optional[int] = None  # Time to response
    bytes_received: Optional[int] = None

    error_code: Optional[FetchErrorCode] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# Run trace + result
# ============================================================================

class CandidateAttempt(BaseModel):
    """
    One URL tested during a run (self URL, candidate or https twin).

    Failures on non-origin URLs are recorded here rather than raised.
    """
    url: str
    phase: CanonicalizeState
    outcome: MatchOutcome
    status_code: Optional[int] = None
    final_url: Optional[str] = None
    detail: Optional[str] = None


class CanonicalizeResult(BaseModel):
    """
    Final answer of one canonicalization run.

    Example:
      origin_url = "http://www.feeds.kottke.org///main/?"
      url = "https://feeds.kottke.org/main"
      method = "protocol_upgrade"
      reason = "https_matched"
    """
    model_config = ConfigDict(frozen=True)

    url: str
    method: CanonicalizeMethod
    reason: CanonicalizeReason

    origin_url: str
    run_id: str

    candidates: List[str] = Field(default_factory=list)
    attempts: List[CandidateAttempt] = Field(default_factory=list)

    # Whatever the existence check returned (only for existence_check_hit).
    existing: Optional[Any] = None


class EquivalentResult(BaseModel):
    """Answer of a two-URL equivalence check."""
    equivalent: bool
    method: Optional[str] = None  # normalize | redirects | response_hash | signature | None
