"""
Collaborator contracts consumed by the canonicalization engine.

The engine owns no transport, parser or store of its own: it talks to them
through the callables and protocols below. Default implementations live in
`fetcher.http`, `parser.feed` and `storage.sqlite`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, Protocol, TypeVar

from core.models import FetchResponse


T = TypeVar("T")


class FetchFn(Protocol):
    """
    Fetch one URL, following redirects.

    Returns a FetchResponse whose `url` is the final URL. Raising is allowed:
    it is fatal for the origin request and a negative result anywhere else.
    Timeouts and retries are the implementation's business.
    """

    def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
    ) -> Awaitable[FetchResponse]: ...


class ParserAdapter(Protocol[T]):
    """
    Turn a body into a parsed feed and derive comparable facts from it.

    parse() returns None for anything that is not a feed; it may also raise,
    which the engine treats the same way.
    """

    def parse(self, body: str) -> Optional[T]: ...

    def get_self_url(self, parsed: T) -> Optional[str]: ...

    def get_signature(self, parsed: T, url: str) -> Hashable: ...


ExistsFn = Callable[[str], Awaitable[Any]]
"""Return data when the URL is already known to an external store. Any falsy value (None, False, {}) means unknown."""

VerifyFn = Callable[[str], bool]
"""Gate deciding whether a URL may be requested or selected at all."""


# ============================================================================
# Observer events
# ============================================================================

@dataclass(frozen=True)
class FetchEvent:
    """Emitted after every fetch, successful or not."""

    url: str
    response: Optional[FetchResponse]
    error: Optional[str] = None


@dataclass(frozen=True)
class MatchEvent(Generic[T]):
    """Emitted when a fetched URL matches the reference content."""

    url: str
    response: FetchResponse
    feed: T


@dataclass(frozen=True)
class ExistsEvent:
    """Emitted when the existence check knows a candidate URL."""

    url: str
    data: Any


OnFetchFn = Callable[[FetchEvent], None]
OnMatchFn = Callable[[MatchEvent], None]
OnExistsFn = Callable[[ExistsEvent], None]
