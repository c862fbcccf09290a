"""WordPress: `?feed=<type>` query addressing versus `/feed/` paths."""

from __future__ import annotations

from urllib.parse import urlsplit

from rules.base import hostname_of, query_value, replace_parts, without_query_params


# feed= value -> path segment(s) WordPress serves the same feed under.
FEED_PATHS = {
    "atom": "/feed/atom",
    "rss2": "/feed",
    "rss": "/feed",
    "rdf": "/feed",
    "comments-atom": "/comments/feed/atom",
    "comments-rss2": "/comments/feed",
    "comments-rss": "/comments/feed",
    "comments-rdf": "/comments/feed",
}


def feed_path_for(url: str) -> str | None:
    """Idiomatic path suffix for the URL's feed= param, if it names a known type."""
    value = query_value(url, "feed")
    if not value:
        return None
    return FEED_PATHS.get(value.lower())


def idiomatic_feed_path(url: str, suffix: str) -> str:
    """Path that encodes the feed type, reusing the current path when it already does."""
    path = urlsplit(url).path
    base = path[:-1] if path.endswith("/") else path
    if base.endswith(suffix):
        return base
    return base + suffix


class WordPressProbe:
    """Probe proposing `/feed` path forms for `?feed=` URLs."""

    name = "wordpress"

    def match(self, url: str) -> bool:
        return feed_path_for(url) is not None

    def get_candidates(self, url: str) -> list[str]:
        suffix = feed_path_for(url)
        if suffix is None:
            return []

        target = idiomatic_feed_path(url, suffix)
        stripped = without_query_params(url, ["feed"])

        # Slash presence cannot be inferred, so offer both.
        return [
            replace_parts(stripped, path=target),
            replace_parts(stripped, path=f"{target}/"),
        ]


class WordPressComRewrite:
    """Rewrite for *.wordpress.com blogs: legacy `?feed=` to the `/feed/` path."""

    name = "wordpress.com"

    def match(self, url: str) -> bool:
        host = hostname_of(url)
        return host.endswith(".wordpress.com") and host != "public-api.wordpress.com"

    def normalize(self, url: str) -> str:
        normalized = replace_parts(url, scheme="https")
        suffix = feed_path_for(normalized)
        if suffix is None:
            return normalized

        target = idiomatic_feed_path(normalized, suffix)
        stripped = without_query_params(normalized, ["feed"])
        return replace_parts(stripped, path=f"{target}/")


wordpress_probe = WordPressProbe()
wordpress_com_rewrite = WordPressComRewrite()
