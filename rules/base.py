"""
Rule interfaces and helpers shared by platform handlers, rewrites, and probes.

A platform handler owns a fixed host set (host sets are disjoint, so at most
one handler applies). A rewrite matches by pattern and several may stack. A
probe proposes alternative URLs to try alongside the one it matched.

Rules take and return URL strings and never mutate shared state.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, runtime_checkable
from urllib.parse import unquote_plus, urlsplit, urlunsplit

from core.errors import ConfigurationError
from quality.urlnorm import is_http_url


@runtime_checkable
class PlatformHandler(Protocol):
    """Normalizes URL quirks of one platform identified by its hosts."""

    name: str
    hosts: frozenset[str]

    def match(self, url: str) -> bool: ...

    def normalize(self, url: str) -> str: ...


@runtime_checkable
class Rewrite(Protocol):
    """Pattern-matched normalization rule; several may apply to one URL."""

    name: str

    def match(self, url: str) -> bool: ...

    def normalize(self, url: str) -> str: ...


@runtime_checkable
class Probe(Protocol):
    """Detects a non-idiomatic URL shape and proposes idiomatic equivalents."""

    name: str

    def match(self, url: str) -> bool: ...

    def get_candidates(self, url: str) -> list[str]: ...


# ============================================================================
# URL helpers for rule implementations
# ============================================================================

def hostname_of(url: str) -> str:
    """Lowercase host of a URL; empty string when missing or unparsable."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def query_value(url: str, name: str) -> str | None:
    """First value of a query param, decoded; None when absent."""
    for segment in urlsplit(url).query.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        if unquote_plus(key) == name:
            return unquote_plus(value)
    return None


def without_query_params(url: str, names: Iterable[str], only_values: dict[str, str] | None = None) -> str:
    """
    Drop query params by name, keeping the others in their original encoding.

    `only_values` limits removal of a name to one (case-insensitive) value,
    e.g. {"alt": "atom"} removes alt=atom but keeps alt=rss.
    """
    parts = urlsplit(url)
    drop = set(names)
    only_values = only_values or {}
    kept: list[str] = []
    for segment in parts.query.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        key = unquote_plus(key)
        if key in only_values and unquote_plus(value).lower() == only_values[key]:
            continue
        if key in drop:
            continue
        kept.append(segment)
    return urlunsplit(parts._replace(query="&".join(kept)))


def with_query_param(url: str, name: str, value: str) -> str:
    """Set a query param, replacing an existing one in place or appending it."""
    parts = urlsplit(url)
    segments = [segment for segment in parts.query.split("&") if segment]
    replaced = False
    for index, segment in enumerate(segments):
        if unquote_plus(segment.partition("=")[0]) == name:
            segments[index] = f"{name}={value}"
            replaced = True
            break
    if not replaced:
        segments.append(f"{name}={value}")
    return urlunsplit(parts._replace(query="&".join(segments)))


def replace_parts(url: str, **changes: str) -> str:
    """Replace scheme/netloc/path/query/fragment of a URL."""
    return urlunsplit(urlsplit(url)._replace(**changes))


# ============================================================================
# Registry application
# ============================================================================

def _checked(rule: object, url: str, produced: object) -> str:
    """Fail fast when a rule hands back something that is not an absolute URL."""
    name = getattr(rule, "name", type(rule).__name__)
    if not isinstance(produced, str) or not is_http_url(produced):
        raise ConfigurationError(
            f"rule {name!r} produced an invalid URL {produced!r} from {url!r}"
        )
    return produced


def apply_rules(
    url: str,
    platforms: Sequence[PlatformHandler] = (),
    rewrites: Sequence[Rewrite] = (),
) -> str:
    """
    Apply the first matching platform handler, then every matching rewrite.

    Raises:
        ConfigurationError: a rule raised or returned a non-absolute URL.
    """
    current = url

    for handler in platforms:
        if handler.match(current):
            try:
                produced = handler.normalize(current)
            except Exception as exc:
                raise ConfigurationError(
                    f"platform handler {handler.name!r} failed on {current!r}: {exc}"
                ) from exc
            current = _checked(handler, current, produced)
            break

    for rewrite in rewrites:
        if rewrite.match(current):
            try:
                produced = rewrite.normalize(current)
            except Exception as exc:
                raise ConfigurationError(
                    f"rewrite {rewrite.name!r} failed on {current!r}: {exc}"
                ) from exc
            current = _checked(rewrite, current, produced)

    return current


def probe_candidates(url: str, probes: Sequence[Probe] = ()) -> list[str]:
    """Collect candidates of every matching probe, in registry order."""
    candidates: list[str] = []
    for probe in probes:
        if not probe.match(url):
            continue
        try:
            produced = probe.get_candidates(url)
        except Exception as exc:
            raise ConfigurationError(f"probe {probe.name!r} failed on {url!r}: {exc}") from exc
        candidates.extend(_checked(probe, url, candidate) for candidate in produced)
    return candidates
