"""Error taxonomy for canonicalization runs."""

from __future__ import annotations


class FeedcanonError(Exception):
    """Base class for all feedcanon errors."""


class FatalFetchError(FeedcanonError):
    """
    No reference content could be established for the origin URL.

    Raised when the input URL is invalid, unreachable, answers with a non-2xx
    status, or does not parse as a feed. Aborts the whole run.
    """

    def __init__(self, url: str, reason: str, state: str, detail: str | None = None) -> None:
        self.url = url
        self.reason = reason
        self.state = state
        self.detail = detail
        message = f"{reason} for {url} during {state}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConfigurationError(FeedcanonError):
    """A tier, rewrite, platform handler or probe definition is malformed."""


class FetchFailed(FeedcanonError):
    """Raised by the default HTTP fetcher when a request cannot complete."""

    def __init__(self, url: str, error_code: str, detail: str | None = None) -> None:
        self.url = url
        self.error_code = error_code
        self.detail = detail
        super().__init__(f"{error_code}: {url}" + (f" ({detail})" if detail else ""))
