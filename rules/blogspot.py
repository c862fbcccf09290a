"""Blogspot: regional TLD aliases and legacy feed paths."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from rules.base import hostname_of, replace_parts, with_query_param
from rules.blogger import strip_blogger_params


# *.blogspot.com plus country variants like *.blogspot.co.uk, *.blogspot.de.
BLOGSPOT_PATTERN = re.compile(r"\.blogspot\.[a-z]{2,3}(\.[a-z]{2})?$", re.IGNORECASE)

_LEGACY_PATHS = {
    "/atom.xml": None,
    "/rss.xml": "rss",
}


class BlogspotRewrite:
    """Rewrite for the *.blogspot.<tld> host family."""

    name = "blogspot"

    def match(self, url: str) -> bool:
        return bool(BLOGSPOT_PATTERN.search(hostname_of(url)))

    def normalize(self, url: str) -> str:
        host = BLOGSPOT_PATTERN.sub(".blogspot.com", hostname_of(url))
        normalized = replace_parts(url, scheme="https", netloc=host)

        # atom.xml and rss.xml still work but are undocumented.
        path = urlsplit(normalized).path or "/"
        if path in _LEGACY_PATHS:
            normalized = replace_parts(normalized, path="/feeds/posts/default")
            alt = _LEGACY_PATHS[path]
            if alt:
                normalized = with_query_param(normalized, "alt", alt)

        return strip_blogger_params(normalized)


blogspot_rewrite = BlogspotRewrite()
