"""Quality utilities: URL normalization, comparison keys, and candidate generation."""

from quality.urlnorm import (
    add_missing_protocol,
    is_similar_url,
    normalize_url,
    resolve_feed_protocol,
    resolve_url,
    url_key,
)

__all__ = [
    "add_missing_protocol",
    "is_similar_url",
    "normalize_url",
    "resolve_feed_protocol",
    "resolve_url",
    "url_key",
]
