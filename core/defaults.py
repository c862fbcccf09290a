"""Process-wide defaults: normalization tiers and noise query parameters."""

from __future__ import annotations

from core.models import Tier


# Feed-reader schemes that stand in for http(s).
FEED_PROTOCOLS: tuple[str, ...] = ("feed:", "rss:", "pcast:", "itpc:")

# Tracking and cache-busting params that never select different feed content.
DEFAULT_STRIPPED_PARAMS: tuple[str, ...] = (
    # Google Analytics / Urchin
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
    "utm_name",
    "utm_reader",
    "utm_referrer",
    "utm_social",
    "utm_social-type",
    "utm_brand",
    "_ga",
    "_gl",
    # Ad click identifiers
    "gclid",
    "dclid",
    "fbclid",
    "msclkid",
    "yclid",
    "igshid",
    "twclid",
    # Mailing tools
    "mc_cid",
    "mc_eid",
    "_hsenc",
    "_hsmi",
    "mkt_tok",
    "vero_id",
    # Matomo / Piwik
    "pk_campaign",
    "pk_kwd",
    "piwik_campaign",
    # WordPress cron trigger appended by some hosts on redirect
    "doing_wp_cron",
)

_CLEAN = dict(
    strip_protocol=True,
    strip_auth=True,
    strip_trailing_slash=True,
    collapse_slashes=True,
    strip_hash=True,
    strip_text_fragment=True,
    strip_empty_query=True,
    normalize_encoding=True,
    normalize_unicode=True,
    convert_to_punycode=True,
)

# Cleanest first. Candidates reachable from an earlier tier are claimed by it.
DEFAULT_TIERS: tuple[Tier, ...] = (
    Tier(name="clean", strip_www=True, strip_query=True, **_CLEAN),
    Tier(name="clean-query", strip_www=True, sort_query_params=True, **_CLEAN),
    Tier(name="keep-www", **_CLEAN),
    Tier(name="original", strip_hash=True, strip_text_fragment=True),
)

# Cleanup applied when resolving a URL to its canonical href.
HREF_TIER = Tier(name="href")

# Used by is_similar_url / are_equivalent when the caller passes no tier.
COMPARISON_TIER = Tier(name="comparison", strip_www=True, sort_query_params=True, **_CLEAN)
