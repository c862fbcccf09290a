"""FeedBurner: collapse host aliases, drop tracking query."""

from __future__ import annotations

from rules.base import hostname_of, replace_parts


class FeedBurnerHandler:
    """Platform handler for FeedBurner and its Google proxy aliases."""

    name = "feedburner"
    hosts = frozenset({"feeds.feedburner.com", "feeds2.feedburner.com", "feedproxy.google.com"})
    canonical_host = "feeds.feedburner.com"

    def match(self, url: str) -> bool:
        return hostname_of(url) in self.hosts

    def normalize(self, url: str) -> str:
        # FeedBurner only uses query params for tracking and format hints.
        return replace_parts(url, netloc=self.canonical_host, query="")


feedburner_handler = FeedBurnerHandler()
