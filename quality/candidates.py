"""Candidate generation: tiers x platform rules x probes, cleanest first."""

from __future__ import annotations

from typing import Iterable, Sequence

from core.defaults import DEFAULT_STRIPPED_PARAMS, DEFAULT_TIERS
from core.errors import ConfigurationError
from core.models import Tier
from quality.urlnorm import is_http_url, normalize_url
from rules import DEFAULT_PLATFORMS, DEFAULT_PROBES, DEFAULT_REWRITES
from rules.base import PlatformHandler, Probe, Rewrite, apply_rules, probe_candidates


def generate_candidates(
    origin_url: str,
    tiers: Sequence[Tier] = DEFAULT_TIERS,
    platforms: Sequence[PlatformHandler] = DEFAULT_PLATFORMS,
    rewrites: Sequence[Rewrite] = DEFAULT_REWRITES,
    probes: Sequence[Probe] = DEFAULT_PROBES,
    strip_params: Iterable[str] = DEFAULT_STRIPPED_PARAMS,
) -> list[str]:
    """
    Build the ordered, deduplicated candidate list for one origin URL.

    Per tier, in caller order:
    1. platform handler + rewrites on the origin
    2. normalize with the tier (plus the global strip list)
    3. candidates of every probe matching the normalized URL
    4. the normalized URL itself

    The first occurrence of a URL fixes its position, so the cleanest tier
    that reaches a URL claims it. Probe output does not go through platform
    rules a second time.

    Raises:
        ConfigurationError: origin is not an absolute http(s) URL, or a rule
            produced an invalid URL.
    """
    if not is_http_url(origin_url):
        raise ConfigurationError(f"candidate origin must be an absolute http(s) URL: {origin_url!r}")
    if not tiers:
        raise ConfigurationError("at least one normalization tier is required")

    strip_params = tuple(strip_params)
    platformized = apply_rules(origin_url, platforms, rewrites)

    candidates: list[str] = []
    seen: set[str] = set()

    def _add(url: str) -> None:
        if url not in seen:
            seen.add(url)
            candidates.append(url)

    for tier in tiers:
        normalized = normalize_url(platformized, tier, strip_params)
        for candidate in probe_candidates(normalized, probes):
            _add(candidate)
        _add(normalized)

    return candidates
