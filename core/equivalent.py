"""Two-URL equivalence check: do both URLs serve the same feed?"""

from __future__ import annotations

from typing import Optional

from core.interfaces import FetchFn, OnFetchFn, ParserAdapter, VerifyFn
from core.matching import body_digest, fetch_and_notify
from core.models import EquivalentResult, FetchResponse, Tier
from quality.urlnorm import is_http_url, is_similar_url


NOT_EQUIVALENT = EquivalentResult(equivalent=False, method=None)


def _signature(parser: ParserAdapter, response: FetchResponse):
    try:
        feed = parser.parse(response.body)
        if feed is None:
            return None
        return parser.get_signature(feed, response.url)
    except Exception:
        return None


async def are_equivalent(
    url1: str,
    url2: str,
    fetch: Optional[FetchFn] = None,
    parser: Optional[ParserAdapter] = None,
    tier: Optional[Tier] = None,
    verify: VerifyFn = is_http_url,
    on_fetch: Optional[OnFetchFn] = None,
) -> EquivalentResult:
    """
    Decide whether two feed URLs are interchangeable.

    Methods, cheapest first:
    - normalize: the comparison keys are equal, no network involved
    - redirects: both URLs end up at the same final URL
    - response_hash: both bodies are byte-identical
    - signature: both bodies parse to the same feed signature

    URLs rejected by `verify` are never fetched. Fetch errors, non-2xx answers
    and unparsable bodies make the pair not equivalent (method None).
    """
    if is_similar_url(url1, url2, tier):
        return EquivalentResult(equivalent=True, method="normalize")

    if not (verify(url1) and verify(url2)):
        return NOT_EQUIVALENT

    if fetch is None:
        from fetcher.http import HttpFetcher

        fetch = HttpFetcher()
    if parser is None:
        from parser.feed import FeedParserAdapter

        parser = FeedParserAdapter()

    response1, _ = await fetch_and_notify(fetch, url1, on_fetch)
    if response1 is None or not response1.ok:
        return NOT_EQUIVALENT
    response2, _ = await fetch_and_notify(fetch, url2, on_fetch)
    if response2 is None or not response2.ok:
        return NOT_EQUIVALENT

    if is_similar_url(response1.url, response2.url, tier):
        return EquivalentResult(equivalent=True, method="redirects")

    if body_digest(response1.body) == body_digest(response2.body):
        return EquivalentResult(equivalent=True, method="response_hash")

    signature1 = _signature(parser, response1)
    signature2 = _signature(parser, response2)
    if signature1 is not None and signature1 == signature2:
        return EquivalentResult(equivalent=True, method="signature")

    return NOT_EQUIVALENT
