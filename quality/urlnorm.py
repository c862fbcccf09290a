"""URL normalization: feed schemes, tier-driven cleanup, and comparison keys."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import quote, unquote_plus, urljoin, urlsplit

from core.defaults import COMPARISON_TIER, FEED_PROTOCOLS, HREF_TIER
from core.models import Tier


_DEFAULT_PORTS = {"http": 80, "https": 443}
_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
)
_PERCENT_ESCAPE = re.compile(r"%([0-9A-Fa-f]{2})")
_NON_ASCII_ESCAPES = re.compile(r"(?:%[89A-Fa-f][0-9A-Fa-f])+")
_SLASH_RUN = re.compile(r"/{2,}")
_SCHEME_PREFIX = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")
_TEXT_DIRECTIVE = ":~:"


@dataclass(slots=True)
class _UrlParts:
    """Mutable view of an absolute http(s) URL while it is being rebuilt."""

    scheme: str
    userinfo: str
    host: str
    port: int | None
    path: str
    query: str | None  # None: no "?" at all, "": bare "?"
    fragment: str | None

    def render(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        netloc = host if self.port is None else f"{host}:{self.port}"
        if self.userinfo:
            netloc = f"{self.userinfo}@{netloc}"
        url = f"{self.scheme}://{netloc}{self.path}"
        if self.query is not None:
            url += f"?{self.query}"
        if self.fragment is not None:
            url += f"#{self.fragment}"
        return url


def _split(url: str) -> _UrlParts | None:
    """Split an absolute http(s) URL; None for anything else."""
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parsed.hostname:
        return None

    userinfo, _, _ = parsed.netloc.rpartition("@")
    if port == _DEFAULT_PORTS[scheme]:
        port = None

    before_fragment = url.split("#", 1)[0]
    return _UrlParts(
        scheme=scheme,
        userinfo=userinfo,
        host=parsed.hostname,
        port=port,
        path=parsed.path,
        query=parsed.query if "?" in before_fragment else None,
        fragment=parsed.fragment if "#" in url else None,
    )


def is_http_url(value: str) -> bool:
    """Return True for an absolute URL with http(s) scheme and a host."""
    return _split(value) is not None


def resolve_feed_protocol(url: str) -> str:
    """
    Convert feed-reader schemes to http(s).

    - feed:https://example.com/rss.xml -> https://example.com/rss.xml
    - feed://example.com/rss.xml -> https://example.com/rss.xml
    - itpc://example.com/podcast.xml -> https://example.com/podcast.xml
    """
    lowered = url.lower()
    for scheme in FEED_PROTOCOLS:
        if not lowered.startswith(scheme):
            continue

        rest = url[len(scheme):]
        rest_lowered = rest.lower()

        # Wrapping form: the scheme sits in front of a full URL.
        if rest_lowered.startswith(("http://", "https://")):
            return rest

        # Replacing form: the scheme replaces http(s) before the authority.
        if rest.startswith("//"):
            return f"https:{rest}"

    return url


def add_missing_protocol(url: str, protocol: str = "https") -> str:
    """
    Add a scheme to protocol-relative URLs and bare domains.

    Relative paths (`/feed`, `./feed`) and anything that already has a scheme
    are returned unchanged.
    """
    scheme_match = _SCHEME_PREFIX.match(url)
    if scheme_match:
        candidate = scheme_match.group(1)
        # "example.com:8080/feed" and "localhost:3000/feed" parse as schemes.
        if "." not in candidate and candidate.lower() != "localhost":
            return url

    if url.startswith("//"):
        if url.startswith("///"):
            return url
        try:
            hostname = urlsplit(f"{protocol}:{url}").hostname or ""
        except ValueError:
            return url
        if "." in hostname or hostname == "localhost":
            return f"{protocol}:{url}"
        return url

    if not url or url.startswith(("/", ".")) or url[0].isspace():
        return url

    # The dot must belong to the host, not the path.
    slash_index = url.find("/")
    dot_index = url.find(".")
    if dot_index == -1 or (slash_index != -1 and dot_index > slash_index):
        if not url.lower().startswith("localhost"):
            return url

    return f"{protocol}://{url}"


def resolve_url(url: str, base: str | None = None) -> str | None:
    """
    Resolve a user- or feed-supplied URL into a canonical absolute http(s) href.

    Returns None when the value cannot become a valid http(s) URL.
    """
    processed = resolve_feed_protocol(url.strip())
    if not processed:
        return None

    if base:
        processed = urljoin(base, processed)

    processed = add_missing_protocol(processed)
    if _split(processed) is None:
        return None
    return normalize_url(processed, HREF_TIER)


def _strip_text_directive(fragment: str) -> str | None:
    """Remove a `:~:text=` fragment directive; drop the fragment if nothing is left."""
    index = fragment.find(_TEXT_DIRECTIVE)
    if index == -1:
        return fragment
    return fragment[:index] or None


def _param_name(segment: str) -> str:
    """Decoded name of one `name=value` query segment."""
    return unquote_plus(segment.split("=", 1)[0])


def _normalize_query(query: str | None, tier: Tier, strip_params: Iterable[str]) -> str | None:
    """Apply noise removal, full stripping, sorting and empty-query handling."""
    if query is None:
        return None

    names = {name.lower() for name in (*tier.strip_query_params, *strip_params)}
    rewrite = bool(names) or tier.strip_query or tier.sort_query_params

    if rewrite:
        segments = [segment for segment in query.split("&") if segment]
        if names:
            segments = [s for s in segments if _param_name(s).lower() not in names]
        if tier.strip_query:
            segments = []
        if tier.sort_query_params:
            segments.sort(key=_param_name)
        query = "&".join(segments)

    if not query and tier.strip_empty_query:
        return None
    return query


def _normalize_escapes(value: str) -> str:
    """Decode escapes of unreserved characters; upper-case the remaining hex."""

    def _fix(match: re.Match[str]) -> str:
        char = chr(int(match.group(1), 16))
        if char in _UNRESERVED:
            return char
        return f"%{match.group(1).upper()}"

    return _PERCENT_ESCAPE.sub(_fix, value)


def _compose_unicode(value: str) -> str:
    """
    NFC-compose a path, including characters spelled as UTF-8 escapes.

    Paths without non-ASCII escapes are composed as they are. Otherwise the
    escaped runs are decoded, the whole path is composed, and every non-ASCII
    character is escaped again.
    """
    if not _NON_ASCII_ESCAPES.search(value):
        return unicodedata.normalize("NFC", value)

    def _decode(match: re.Match[str]) -> str:
        try:
            return bytes.fromhex(match.group(0).replace("%", "")).decode("utf-8")
        except UnicodeDecodeError:
            return match.group(0)

    composed = unicodedata.normalize("NFC", _NON_ASCII_ESCAPES.sub(_decode, value))
    return "".join(char if char.isascii() else quote(char, safe="") for char in composed)


def _to_ascii_host(host: str) -> str:
    """
    Punycode the non-ASCII labels of a host.

    Labels are encoded one by one without IDNA 2003 mapping, which would turn
    `ß` into `ss` and so name another domain. The host is left as is when a
    label cannot be encoded.
    """
    if host.isascii():
        return host
    labels = []
    for label in host.split("."):
        if label.isascii():
            labels.append(label)
            continue
        try:
            labels.append("xn--" + label.encode("punycode").decode("ascii"))
        except UnicodeError:
            return host
    return ".".join(labels)


def normalize_url(url: str, tier: Tier | None = None, strip_params: Iterable[str] = ()) -> str:
    """
    Normalize URL according to one tier.

    Always applied:
    - Feed schemes resolved (feed://, rss://, pcast://, itpc://)
    - Lowercase scheme and host, default port dropped, empty path becomes "/"

    Tier-controlled, in this order: auth, www, slash runs, trailing/root
    slash, fragment, query (noise params, whole query, sort, empty "?"),
    percent-encoding, unicode NFC, punycode.

    Input that is not an absolute http(s) URL is returned unchanged.
    """
    tier = tier or HREF_TIER
    parts = _split(resolve_feed_protocol(url))
    if parts is None:
        return url

    if tier.strip_auth:
        parts.userinfo = ""

    if tier.strip_www and parts.host.startswith("www.") and len(parts.host) > 4:
        parts.host = parts.host[4:]

    if not parts.path:
        parts.path = "/"
    if tier.collapse_slashes:
        parts.path = _SLASH_RUN.sub("/", parts.path)
    if tier.strip_trailing_slash and len(parts.path) > 1 and parts.path.endswith("/"):
        parts.path = parts.path[:-1]
    if tier.strip_root_slash and parts.path == "/":
        parts.path = ""

    if tier.strip_hash:
        parts.fragment = None
    elif tier.strip_text_fragment and parts.fragment is not None:
        parts.fragment = _strip_text_directive(parts.fragment)

    parts.query = _normalize_query(parts.query, tier, strip_params)

    if tier.normalize_encoding:
        parts.path = _normalize_escapes(parts.path)
        if parts.query:
            parts.query = _normalize_escapes(parts.query)
        if parts.fragment:
            parts.fragment = _normalize_escapes(parts.fragment)

    if tier.normalize_unicode:
        parts.host = unicodedata.normalize("NFC", parts.host)
        parts.path = _compose_unicode(parts.path)

    if tier.convert_to_punycode:
        parts.host = _to_ascii_host(parts.host)

    return parts.render()


def url_key(url: str, tier: Tier | None = None, strip_params: Iterable[str] = ()) -> str:
    """Comparison key: the normalized URL, scheme dropped when the tier is protocol-insensitive."""
    tier = tier or COMPARISON_TIER
    normalized = normalize_url(url, tier, strip_params)
    if tier.strip_protocol and is_http_url(normalized):
        return normalized.split("://", 1)[1]
    return normalized


def is_similar_url(left: str, right: str, tier: Tier | None = None) -> bool:
    """Return True when two URLs normalize to the same comparison key."""
    resolved_left = resolve_url(left) or left
    resolved_right = resolve_url(right) or right
    return url_key(resolved_left, tier) == url_key(resolved_right, tier)
