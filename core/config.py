"""
Default configuration for feedcanon.

Fetch-layer settings are read-only class attributes, validated once at import
time. Everything a caller may tune per run (tiers, rules, collaborators) is
passed to the Canonicalizer instead of living here.

Tier definitions can also be loaded from a JSON file; the file is validated
against TIERS_SCHEMA before any Tier is built.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Set

import jsonschema
from pydantic import ValidationError

from core.errors import ConfigurationError
from core.models import Tier


class CanonConfig:
    """
    Read-only fetch settings used by the default HTTP collaborator.
    """

    # ========================================================================
    # Fetch-Layer Constraints
    # ========================================================================

    # Protocol whitelist: only http(s), no file://, gopher, etc.
    ALLOWED_PROTOCOLS: Set[str] = {"http", "https"}
    """Only HTTP(S) allowed."""

    # IP blocklist: private/internal IPs cannot be fetched (SSRF prevention)
    BLOCKED_IP_RANGES: list[str] = [
        # IPv4 private
        "127.0.0.1/8",          # Loopback
        "10.0.0.0/8",           # Private
        "172.16.0.0/12",        # Private
        "192.168.0.0/16",       # Private
        "169.254.0.0/16",       # Link-local
        "224.0.0.0/4",          # Multicast
        "0.0.0.0/8",            # This network
        # IPv6 private/link-local
        "::1/128",              # Loopback
        "fe80::/10",            # Link-local
        "fc00::/7",             # Unique local addresses (ULA)
    ]
    """IP ranges that cannot be fetched (SSRF prevention)."""

    # Feed hosts redirect a lot (http -> https -> www -> FeedBurner).
    MAX_REDIRECTS: int = 5
    """Maximum redirect hops per fetch."""

    FETCH_TIMEOUT_SECONDS: int = 15
    """Maximum time to wait for a single fetch (seconds)."""

    MAX_BODY_BYTES_BY_TYPE: dict[str, int] = {
        "application/xml": 10_000_000,
        "text/xml": 10_000_000,
        "application/atom+xml": 10_000_000,
        "application/rss+xml": 10_000_000,
        "application/rdf+xml": 10_000_000,
        "application/feed+json": 5_000_000,
        "application/json": 5_000_000,
        "text/html": 2_000_000,  # Non-feed pages only need to fail parsing
        "application/pdf": 0,
    }
    """Max body bytes per content-type. Unlisted types use MAX_BODY_BYTES_DEFAULT."""

    MAX_BODY_BYTES_DEFAULT: int = 5_000_000
    """Fallback max body size for unknown content-types."""

    USER_AGENT: str = "feedcanon/0.1 (+https://pypi.org/project/feedcanon/)"
    """User-Agent header (must be descriptive)."""

    ACCEPT_HEADER: str = (
        "application/feed+json, application/atom+xml, application/rss+xml, "
        "application/rdf+xml, application/xml;q=0.9, text/xml;q=0.9, */*;q=0.8"
    )

    @classmethod
    def validate(cls) -> None:
        """
        Validate configuration at startup.

        Raises:
            ConfigurationError: If any constraint is violated.
        """
        if not cls.ALLOWED_PROTOCOLS <= {"http", "https"}:
            raise ConfigurationError("ALLOWED_PROTOCOLS may only contain http/https")
        if cls.MAX_REDIRECTS < 0:
            raise ConfigurationError("MAX_REDIRECTS must be >= 0")
        if cls.FETCH_TIMEOUT_SECONDS <= 0:
            raise ConfigurationError("FETCH_TIMEOUT_SECONDS must be > 0")
        if cls.MAX_BODY_BYTES_DEFAULT <= 0:
            raise ConfigurationError("MAX_BODY_BYTES_DEFAULT must be > 0")
        if any(limit < 0 for limit in cls.MAX_BODY_BYTES_BY_TYPE.values()):
            raise ConfigurationError("All MAX_BODY_BYTES_BY_TYPE values must be >= 0")


# Validate at module import time
CanonConfig.validate()


# ============================================================================
# Tier files
# ============================================================================

_TIER_FLAGS = [
    name
    for name, field in Tier.model_fields.items()
    if field.annotation is bool
]

TIERS_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "tiers": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "strip_query_params": {
                        "type": "array",
                        "items": {"type": "string", "minLength": 1},
                    },
                    **{flag: {"type": "boolean"} for flag in _TIER_FLAGS},
                },
                "additionalProperties": False,
            },
        },
    },
    "required": ["tiers"],
    "additionalProperties": False,
}


def parse_tiers(data: Any) -> tuple[Tier, ...]:
    """Validate a decoded tier document and build Tier values in file order."""
    try:
        jsonschema.validate(instance=data, schema=TIERS_SCHEMA)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise ConfigurationError(f"invalid tier definition at {location}: {exc.message}") from exc

    tiers: list[Tier] = []
    for index, item in enumerate(data["tiers"]):
        payload = dict(item)
        payload.setdefault("name", f"tier-{index + 1}")
        try:
            tiers.append(Tier(**payload))
        except ValidationError as exc:
            raise ConfigurationError(f"invalid tier #{index + 1}: {exc}") from exc

    names = [tier.name for tier in tiers]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"duplicate tier names: {', '.join(duplicates)}")
    return tuple(tiers)


def load_tiers(path: str | Path) -> tuple[Tier, ...]:
    """Load an ordered tier list from a JSON file."""
    tier_path = Path(path)
    if not tier_path.exists():
        raise ConfigurationError(f"Tier file not found: {tier_path}")
    try:
        data = json.loads(tier_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{tier_path.name} is not valid JSON: {exc}") from exc
    return parse_tiers(data)
