"""
feedcanon: find the canonical URL of a feed.

    import asyncio
    from feedcanon import canonicalize

    result = asyncio.run(canonicalize("http://www.feeds.kottke.org///main/?"))
    result.url  # "https://feeds.kottke.org/main"
"""

from core.canonicalize import Canonicalizer, canonicalize
from core.config import CanonConfig, load_tiers, parse_tiers
from core.defaults import COMPARISON_TIER, DEFAULT_STRIPPED_PARAMS, DEFAULT_TIERS, FEED_PROTOCOLS
from core.equivalent import are_equivalent
from core.errors import ConfigurationError, FatalFetchError, FeedcanonError, FetchFailed
from core.interfaces import ExistsEvent, FetchEvent, MatchEvent
from core.models import (
    CandidateAttempt,
    CanonicalizeMethod,
    CanonicalizeReason,
    CanonicalizeResult,
    CanonicalizeState,
    EquivalentResult,
    FetchResponse,
    MatchOutcome,
    Tier,
)
from quality.candidates import generate_candidates
from quality.urlnorm import (
    add_missing_protocol,
    is_similar_url,
    normalize_url,
    resolve_feed_protocol,
    resolve_url,
    url_key,
)
from rules import DEFAULT_PLATFORMS, DEFAULT_PROBES, DEFAULT_REWRITES

__version__ = "0.1.0"

__all__ = [
    "Canonicalizer",
    "canonicalize",
    "CanonConfig",
    "load_tiers",
    "parse_tiers",
    "COMPARISON_TIER",
    "DEFAULT_STRIPPED_PARAMS",
    "DEFAULT_TIERS",
    "FEED_PROTOCOLS",
    "are_equivalent",
    "ConfigurationError",
    "FatalFetchError",
    "FeedcanonError",
    "FetchFailed",
    "ExistsEvent",
    "FetchEvent",
    "MatchEvent",
    "CandidateAttempt",
    "CanonicalizeMethod",
    "CanonicalizeReason",
    "CanonicalizeResult",
    "CanonicalizeState",
    "EquivalentResult",
    "FetchResponse",
    "MatchOutcome",
    "Tier",
    "generate_candidates",
    "add_missing_protocol",
    "is_similar_url",
    "normalize_url",
    "resolve_feed_protocol",
    "resolve_url",
    "url_key",
    "DEFAULT_PLATFORMS",
    "DEFAULT_PROBES",
    "DEFAULT_REWRITES",
]
