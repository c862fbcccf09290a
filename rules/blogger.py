"""Blogger: feeds served from blogger.com itself."""

from __future__ import annotations

from rules.base import hostname_of, replace_parts, without_query_params


# Feed readers subscribe to full feeds, not filtered or paginated views.
FILTER_PARAMS = (
    "redirect",
    "max-results",
    "start-index",
    "published-min",
    "published-max",
    "updated-min",
    "updated-max",
    "orderby",
)


def strip_blogger_params(url: str) -> str:
    """Drop redirect/pagination/date-range params and the redundant alt=atom."""
    return without_query_params(url, FILTER_PARAMS, only_values={"alt": "atom"})


class BloggerHandler:
    """Platform handler for blogger.com hosted feeds."""

    name = "blogger"
    hosts = frozenset({"blogger.com", "www.blogger.com"})

    def match(self, url: str) -> bool:
        return hostname_of(url) in self.hosts

    def normalize(self, url: str) -> str:
        # Blogger rewrites internal links based on protocol, and non-www
        # redirects to www.
        normalized = replace_parts(url, scheme="https", netloc="www.blogger.com")
        return strip_blogger_params(normalized)


blogger_handler = BloggerHandler()
