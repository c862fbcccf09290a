"""Signature matching: fetch a URL and compare its content to the reference."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Hashable, Optional

from core.interfaces import FetchEvent, FetchFn, MatchEvent, OnFetchFn, OnMatchFn, ParserAdapter
from core.models import FetchResponse, MatchOutcome


def body_digest(body: str) -> str:
    """SHA-256 of a response body, used for the byte-identical fast path."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Reference:
    """Content established by the origin request; every later fetch is compared to it."""

    url: str
    response: FetchResponse
    feed: Any
    signature: Hashable
    digest: str


@dataclass(frozen=True)
class MatchResult:
    """Outcome of testing one URL."""

    url: str
    outcome: MatchOutcome
    response: Optional[FetchResponse] = None
    feed: Any = None
    detail: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.outcome == MatchOutcome.MATCH


async def fetch_and_notify(
    fetch: FetchFn,
    url: str,
    on_fetch: Optional[OnFetchFn] = None,
) -> tuple[Optional[FetchResponse], Optional[str]]:
    """
    Fetch once and notify the fetch observer whatever happens.

    Returns (response, None) or (None, error description). The observer runs
    outside the error handling, so an exception it raises reaches the caller.
    """
    error: Optional[str] = None
    response: Optional[FetchResponse] = None
    try:
        response = await fetch(url)
    except Exception as exc:
        error = f"{type(exc).__name__}: {exc}"
    if on_fetch:
        on_fetch(FetchEvent(url=url, response=response, error=error))
    return response, error


class SignatureMatcher:
    """
    Test candidate URLs against one reference.

    Candidate failures are reported as outcomes, never raised: an exception
    from the fetch collaborator becomes FETCH_ERROR, a non-2xx answer too,
    and an unparsable body becomes PARSE_ERROR. Exceptions raised by the
    observers themselves propagate.
    """

    def __init__(
        self,
        fetch: FetchFn,
        parser: ParserAdapter,
        reference: Reference,
        on_fetch: Optional[OnFetchFn] = None,
        on_match: Optional[OnMatchFn] = None,
    ) -> None:
        self.fetch = fetch
        self.parser = parser
        self.reference = reference
        self.on_fetch = on_fetch
        self.on_match = on_match

    def compare(self, url: str, response: FetchResponse) -> MatchResult:
        """Compare an already fetched response with the reference."""

        if response.body and body_digest(response.body) == self.reference.digest:
            try:
                feed = self.parser.parse(response.body)
            except Exception:
                feed = None
            return MatchResult(
                url=url,
                outcome=MatchOutcome.MATCH,
                response=response,
                feed=feed if feed is not None else self.reference.feed,
                detail="identical body",
            )

        try:
            feed = self.parser.parse(response.body)
        except Exception as exc:
            return MatchResult(url=url, outcome=MatchOutcome.PARSE_ERROR, response=response, detail=str(exc))
        if feed is None:
            return MatchResult(url=url, outcome=MatchOutcome.PARSE_ERROR, response=response, detail="not a feed")

        try:
            signature = self.parser.get_signature(feed, response.url)
        except Exception as exc:
            return MatchResult(url=url, outcome=MatchOutcome.PARSE_ERROR, response=response, detail=str(exc))

        if signature == self.reference.signature:
            return MatchResult(url=url, outcome=MatchOutcome.MATCH, response=response, feed=feed, detail="signature")
        return MatchResult(url=url, outcome=MatchOutcome.NO_MATCH, response=response, feed=feed)

    async def test(self, url: str) -> MatchResult:
        """Fetch `url` and report match / no_match / fetch_error / parse_error."""
        response, error = await fetch_and_notify(self.fetch, url, self.on_fetch)
        if response is None:
            return MatchResult(url=url, outcome=MatchOutcome.FETCH_ERROR, detail=error)

        if not response.ok:
            return MatchResult(
                url=url,
                outcome=MatchOutcome.FETCH_ERROR,
                response=response,
                detail=f"HTTP {response.status}",
            )

        result = self.compare(url, response)
        if result.matched and self.on_match:
            self.on_match(MatchEvent(url=url, response=response, feed=result.feed))
        return result
