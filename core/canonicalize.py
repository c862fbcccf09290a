"""
Canonicalization orchestrator.

One run walks a fixed sequence of states:

  INIT → FETCH_ORIGIN → EXTRACT_SELF → VALIDATE_SELF
       → GENERATE_CANDIDATES → TEST_CANDIDATES → UPGRADE_PROTOCOL → DONE

Only the origin request may abort a run (FatalFetchError). Every other URL
is a probe: its failure is recorded in the attempt trace and the run moves on.
Fetches are awaited one at a time, in candidate order.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence
from uuid import uuid4

from core.defaults import DEFAULT_STRIPPED_PARAMS, DEFAULT_TIERS
from core.errors import FatalFetchError
from core.interfaces import (
    ExistsEvent,
    ExistsFn,
    FetchFn,
    MatchEvent,
    OnExistsFn,
    OnFetchFn,
    OnMatchFn,
    ParserAdapter,
    VerifyFn,
)
from core.matching import MatchResult, Reference, SignatureMatcher, body_digest, fetch_and_notify
from core.models import (
    CandidateAttempt,
    CanonicalizeMethod,
    CanonicalizeReason,
    CanonicalizeResult,
    CanonicalizeState,
    MatchOutcome,
    Tier,
)
from core.structured_logging import EventLogger, default_event_logger
from quality.candidates import generate_candidates
from quality.urlnorm import resolve_url
from rules import DEFAULT_PLATFORMS, DEFAULT_PROBES, DEFAULT_REWRITES
from rules.base import PlatformHandler, Probe, Rewrite, apply_rules, replace_parts


def other_protocol(url: str) -> Optional[str]:
    """http ↔ https twin of an absolute URL, None for anything else."""
    lowered = url.lower()
    if lowered.startswith("https://"):
        return replace_parts(url, scheme="http")
    if lowered.startswith("http://"):
        return replace_parts(url, scheme="https")
    return None


class _Run:
    """Mutable bookkeeping of one canonicalize() call."""

    def __init__(self, origin_url: str, run_id: str) -> None:
        self.origin_url = origin_url
        self.run_id = run_id
        self.state = CanonicalizeState.INIT
        self.candidates: list[str] = []
        self.attempts: list[CandidateAttempt] = []

    def record(self, result: MatchResult) -> CandidateAttempt:
        response = result.response
        attempt = CandidateAttempt(
            url=result.url,
            phase=self.state,
            outcome=result.outcome,
            status_code=response.status if response else None,
            final_url=response.url if response else None,
            detail=result.detail,
        )
        self.attempts.append(attempt)
        return attempt

    def result(
        self,
        url: str,
        method: CanonicalizeMethod,
        reason: CanonicalizeReason,
        existing: Any = None,
    ) -> CanonicalizeResult:
        self.state = CanonicalizeState.DONE
        return CanonicalizeResult(
            url=url,
            method=method,
            reason=reason,
            origin_url=self.origin_url,
            run_id=self.run_id,
            candidates=list(self.candidates),
            attempts=list(self.attempts),
            existing=existing,
        )


class Canonicalizer:
    """
    Find the cleanest URL that serves the same feed as a given one.

    Usage:
        canonicalizer = Canonicalizer(fetch=my_fetch, exists=store.exists)
        result = await canonicalizer.canonicalize("http://www.example.com/feed/")

    Collaborators left as None get the defaults: `fetcher.http.HttpFetcher`
    and `parser.feed.FeedParserAdapter`; without `exists` there is no
    existence check. `verify` gates every URL the run would request or
    select (input, response URL, self URL, candidates, https twin).

    Registries and tiers are read-only and may be shared between instances
    and concurrent runs; the default HttpFetcher opens one session per request.
    """

    def __init__(
        self,
        fetch: Optional[FetchFn] = None,
        parser: Optional[ParserAdapter] = None,
        exists: Optional[ExistsFn] = None,
        verify: Optional[VerifyFn] = None,
        tiers: Sequence[Tier] = DEFAULT_TIERS,
        platforms: Sequence[PlatformHandler] = DEFAULT_PLATFORMS,
        rewrites: Sequence[Rewrite] = DEFAULT_REWRITES,
        probes: Sequence[Probe] = DEFAULT_PROBES,
        strip_params: Iterable[str] = DEFAULT_STRIPPED_PARAMS,
        on_fetch: Optional[OnFetchFn] = None,
        on_match: Optional[OnMatchFn] = None,
        on_exists: Optional[OnExistsFn] = None,
        event_logger: Optional[EventLogger] = None,
    ) -> None:
        if fetch is None:
            from fetcher.http import HttpFetcher

            fetch = HttpFetcher()
        if parser is None:
            from parser.feed import FeedParserAdapter

            parser = FeedParserAdapter()

        self.fetch = fetch
        self.parser = parser
        self.exists = exists
        self.verify = verify
        self.tiers = tuple(tiers)
        self.platforms = tuple(platforms)
        self.rewrites = tuple(rewrites)
        self.probes = tuple(probes)
        self.strip_params = tuple(strip_params)
        self.on_fetch = on_fetch
        self.on_match = on_match
        self.on_exists = on_exists
        self.event_logger = event_logger or default_event_logger

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit(self, event_type: str, run: _Run, level: str = "info", **payload: Any) -> None:
        self.event_logger(
            event_type,
            {
                "run_id": run.run_id,
                "level": level,
                "component": "canonicalizer",
                "origin_url": run.origin_url,
                **payload,
            },
        )

    def _platformize(self, url: str, base: Optional[str] = None) -> Optional[str]:
        """resolve_url + platform handler + rewrites; None when unusable."""
        resolved = resolve_url(url, base)
        if resolved is None:
            return None
        return apply_rules(resolved, self.platforms, self.rewrites)

    def _allowed(self, url: str) -> bool:
        return self.verify is None or bool(self.verify(url))

    def _prepare(self, url: str, base: Optional[str] = None) -> Optional[str]:
        """_platformize + the verify gate."""
        platformized = self._platformize(url, base)
        if platformized is None or not self._allowed(platformized):
            return None
        return platformized

    def _fail(self, run: _Run, url: str, reason: CanonicalizeReason, detail: Optional[str] = None) -> FatalFetchError:
        state = run.state
        run.state = CanonicalizeState.FAILED
        self._emit(
            "canonicalize_failed",
            run,
            level="error",
            url=url,
            state=state.value,
            reason=reason.value,
            detail=detail,
        )
        return FatalFetchError(url=url, reason=reason.value, state=state.value, detail=detail)

    async def _test(self, matcher: SignatureMatcher, run: _Run, url: str) -> MatchResult:
        result = await matcher.test(url)
        attempt = run.record(result)
        self._emit(
            "candidate_tested",
            run,
            url=url,
            phase=attempt.phase.value,
            outcome=attempt.outcome.value,
            status_code=attempt.status_code,
            detail=attempt.detail,
        )
        return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _fetch_origin(self, run: _Run, url: str) -> Reference:
        """Establish the reference content; any failure here is fatal."""
        run.state = CanonicalizeState.FETCH_ORIGIN
        response, error = await fetch_and_notify(self.fetch, url, self.on_fetch)
        if response is None:
            raise self._fail(run, url, CanonicalizeReason.ORIGIN_UNREACHABLE, error)

        if not response.ok:
            raise self._fail(run, url, CanonicalizeReason.ORIGIN_BAD_STATUS, f"HTTP {response.status}")

        try:
            feed = self.parser.parse(response.body)
            signature = self.parser.get_signature(feed, response.url) if feed is not None else None
        except Exception as exc:
            raise self._fail(run, url, CanonicalizeReason.ORIGIN_UNPARSABLE, str(exc)) from exc
        if feed is None:
            raise self._fail(run, url, CanonicalizeReason.ORIGIN_UNPARSABLE, "not a feed")

        response_url = self._platformize(response.url) or url
        if not self._allowed(response_url):
            raise self._fail(run, url, CanonicalizeReason.INVALID_URL, f"response URL rejected: {response_url}")

        reference = Reference(
            url=response_url,
            response=response,
            feed=feed,
            signature=signature,
            digest=body_digest(response.body),
        )
        if self.on_match:
            self.on_match(MatchEvent(url=url, response=response, feed=feed))
        return reference

    async def _validate_self(self, run: _Run, matcher: SignatureMatcher, reference: Reference) -> Optional[str]:
        """Return the confirmed self URL (post-redirect form), or None when discarded."""
        run.state = CanonicalizeState.EXTRACT_SELF
        raw_self_url = self.parser.get_self_url(reference.feed)
        if not raw_self_url:
            return None

        self_url = self._platformize(raw_self_url, base=reference.response.url)
        if self_url is None:
            self._emit("self_url_discarded", run, url=raw_self_url, detail="invalid URL")
            return None
        if not self._allowed(self_url):
            self._emit("self_url_discarded", run, url=self_url, detail="rejected")
            return None
        if self_url == reference.url:
            return None

        run.state = CanonicalizeState.VALIDATE_SELF
        tried: list[str] = []
        for variant in (self_url, other_protocol(self_url)):
            if variant is None or variant == reference.url or not self._allowed(variant):
                continue
            tried.append(variant)
            result = await self._test(matcher, run, variant)
            if result.matched:
                final_url = result.response.url if result.response else variant
                confirmed = self._prepare(final_url) or variant
                return None if confirmed == reference.url else confirmed

        self._emit("self_url_discarded", run, url=self_url, tried=tried, detail="no match")
        return None

    async def _test_candidates(
        self,
        run: _Run,
        matcher: SignatureMatcher,
        reference: Reference,
        confirmed_url: str,
        self_validated: bool,
    ) -> CanonicalizeResult | tuple[str, CanonicalizeMethod, CanonicalizeReason]:
        """Walk the candidates in order; an existence hit ends the whole run."""
        run.state = CanonicalizeState.TEST_CANDIDATES
        for candidate in run.candidates:
            if self.exists is not None:
                existing = await self.exists(candidate)
                if existing:
                    if self.on_exists:
                        self.on_exists(ExistsEvent(url=candidate, data=existing))
                    self._emit("existence_check_hit", run, url=candidate)
                    return run.result(
                        candidate,
                        CanonicalizeMethod.EXISTENCE_CHECK_HIT,
                        CanonicalizeReason.KNOWN_URL,
                        existing=existing,
                    )

            if candidate == confirmed_url:
                if self_validated:
                    return candidate, CanonicalizeMethod.SELF_URL_VALIDATED, CanonicalizeReason.SELF_URL_MATCHED
                return candidate, CanonicalizeMethod.CANDIDATE_MATCH, CanonicalizeReason.ORIGIN_RESPONSE
            if candidate == reference.url:
                return candidate, CanonicalizeMethod.CANDIDATE_MATCH, CanonicalizeReason.ORIGIN_RESPONSE

            result = await self._test(matcher, run, candidate)
            if result.matched:
                return candidate, CanonicalizeMethod.CANDIDATE_MATCH, CanonicalizeReason.CONTENT_MATCHED

        return confirmed_url, CanonicalizeMethod.FALLBACK, CanonicalizeReason.NO_CANDIDATE_MATCHED

    async def _upgrade_protocol(
        self,
        run: _Run,
        matcher: SignatureMatcher,
        reference: Reference,
        selected: str,
        confirmed_url: str,
    ) -> Optional[str]:
        """https twin of an http selection when it serves the same feed."""
        run.state = CanonicalizeState.UPGRADE_PROTOCOL
        if not selected.lower().startswith("http://"):
            return None
        secure = other_protocol(selected)
        if secure is None:
            return None
        if not self._allowed(secure):
            return None
        if secure in (reference.url, confirmed_url):
            return secure

        result = await self._test(matcher, run, secure)
        return secure if result.matched else None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def canonicalize(self, url: str, run_id: Optional[str] = None) -> CanonicalizeResult:
        """
        Canonicalize one feed URL.

        Args:
            url: Feed URL as found in the wild (relative forms and feed://
                style protocols are accepted; a missing scheme becomes https)
            run_id: Identifier attached to events and the result

        Returns:
            CanonicalizeResult with the selected URL, method and reason

        Raises:
            FatalFetchError: input invalid, origin unreachable, non-2xx or
                not a feed
            ConfigurationError: a rule produced an invalid URL
        """
        run = _Run(origin_url=url, run_id=run_id or str(uuid4()))
        self._emit("canonicalize_started", run, url=url)

        # INIT
        initial_url = self._platformize(url) if isinstance(url, str) else None
        if initial_url is None:
            raise self._fail(run, str(url), CanonicalizeReason.INVALID_URL, "not an absolute http(s) URL")
        if not self._allowed(initial_url):
            raise self._fail(run, url, CanonicalizeReason.INVALID_URL, f"rejected: {initial_url}")

        # FETCH_ORIGIN
        reference = await self._fetch_origin(run, initial_url)
        matcher = SignatureMatcher(
            fetch=self.fetch,
            parser=self.parser,
            reference=reference,
            on_fetch=self.on_fetch,
            on_match=self.on_match,
        )

        # EXTRACT_SELF + VALIDATE_SELF
        confirmed_self = await self._validate_self(run, matcher, reference)
        confirmed_url = confirmed_self or reference.url

        # GENERATE_CANDIDATES
        run.state = CanonicalizeState.GENERATE_CANDIDATES
        generated = generate_candidates(
            confirmed_url,
            tiers=self.tiers,
            platforms=self.platforms,
            rewrites=self.rewrites,
            probes=self.probes,
            strip_params=self.strip_params,
        )
        run.candidates = [candidate for candidate in generated if self._allowed(candidate)]

        # TEST_CANDIDATES
        outcome = await self._test_candidates(
            run,
            matcher,
            reference,
            confirmed_url,
            self_validated=confirmed_self is not None,
        )
        if isinstance(outcome, CanonicalizeResult):
            self._completed(run, outcome)
            return outcome
        selected, method, reason = outcome

        # UPGRADE_PROTOCOL
        upgraded = await self._upgrade_protocol(run, matcher, reference, selected, confirmed_url)
        if upgraded is not None:
            self._emit("protocol_upgraded", run, url=upgraded, previous_url=selected)
            selected, method, reason = upgraded, CanonicalizeMethod.PROTOCOL_UPGRADE, CanonicalizeReason.HTTPS_MATCHED

        result = run.result(selected, method, reason)
        self._completed(run, result)
        return result

    def _completed(self, run: _Run, result: CanonicalizeResult) -> None:
        self._emit(
            "canonicalize_completed",
            run,
            url=result.url,
            method=result.method.value,
            reason=result.reason.value,
            candidates_count=len(result.candidates),
            fetch_errors=sum(1 for a in result.attempts if a.outcome == MatchOutcome.FETCH_ERROR),
        )


async def canonicalize(url: str, *, run_id: Optional[str] = None, **options: Any) -> CanonicalizeResult:
    """One-shot helper: `await canonicalize(url, fetch=..., exists=...)`."""
    return await Canonicalizer(**options).canonicalize(url, run_id=run_id)


__all__ = ["Canonicalizer", "canonicalize", "other_protocol"]
