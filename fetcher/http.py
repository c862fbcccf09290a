"""HTTP fetch collaborator with redirect, body-size and SSRF protections."""

from __future__ import annotations

import asyncio
import socket
import time
from ipaddress import ip_address, ip_network
from typing import Iterable
from urllib.parse import urljoin, urlparse

import requests

from core.config import CanonConfig
from core.errors import FetchFailed
from core.models import FetchErrorCode, FetchLog, FetchResponse
from fetcher.logging import emit_fetch_log


class RedirectLimitExceeded(Exception):
    """Raised when a URL exceeds the configured redirect limit."""


class RedirectBlocked(Exception):
    """Raised when a redirect points at a disallowed protocol or address."""


class BodyLimitExceeded(Exception):
    """Raised when response body exceeds configured limits."""


def _blocked_networks() -> list:
    """Build blocked network list from config."""
    return [ip_network(cidr, strict=False) for cidr in CanonConfig.BLOCKED_IP_RANGES]


def _resolve_ip_addresses(hostname: str) -> set[str]:
    """Resolve hostname to a set of IP addresses."""
    try:
        infos = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    except socket.gaierror:
        return set()
    return {item[4][0] for item in infos}


def _is_blocked_ip(ip_text: str, blocked_networks: Iterable) -> bool:
    """Check if an IP is inside blocked ranges."""
    ip_obj = ip_address(ip_text)
    return any(ip_obj in network for network in blocked_networks)


def _is_blocked_host(hostname: str, blocked_networks: Iterable) -> bool:
    blocked_networks = list(blocked_networks)
    return any(_is_blocked_ip(ip_text, blocked_networks) for ip_text in _resolve_ip_addresses(hostname))


def _validate_url_scheme(url: str) -> bool:
    """Validate that URL uses allowed protocols."""
    parsed = urlparse(url)
    return parsed.scheme.lower() in CanonConfig.ALLOWED_PROTOCOLS


def _content_limit_for_response(content_type: str | None) -> int:
    """Compute byte limit for a response content-type."""
    if not content_type:
        return CanonConfig.MAX_BODY_BYTES_DEFAULT
    normalized = content_type.split(";", 1)[0].strip().lower()
    return CanonConfig.MAX_BODY_BYTES_BY_TYPE.get(
        normalized,
        CanonConfig.MAX_BODY_BYTES_DEFAULT,
    )


def _read_body_with_limit(response: requests.Response, max_bytes: int) -> bytes:
    """Read response body up to the configured maximum size."""
    if max_bytes == 0:
        raise BodyLimitExceeded("content type is disabled by policy")

    chunks: list[bytes] = []
    total = 0
    for chunk in response.iter_content(chunk_size=8192):
        if not chunk:
            continue
        total += len(chunk)
        if total > max_bytes:
            raise BodyLimitExceeded(f"response exceeds {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


def _decode_body(body: bytes, content_type: str | None) -> str:
    """Decode with the declared charset; feeds without one are treated as UTF-8."""
    charset = "utf-8"
    for part in (content_type or "").split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.lower() == "charset" and value:
            charset = value.strip("\"' ")
    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _follow_redirects(
    session: requests.Session,
    url: str,
    method: str,
    headers: dict[str, str],
    timeout_seconds: int,
    max_redirects: int,
    blocked_networks: Iterable,
) -> tuple[requests.Response, str]:
    """Fetch a URL while enforcing redirect constraints."""
    current_url = url
    blocked_networks = list(blocked_networks)

    for hop in range(max_redirects + 1):
        response = session.request(
            method,
            current_url,
            headers=headers,
            timeout=timeout_seconds,
            allow_redirects=False,
            stream=True,
        )

        if 300 <= response.status_code < 400 and response.headers.get("location"):
            if hop >= max_redirects:
                response.close()
                raise RedirectLimitExceeded(f"redirects exceeded {max_redirects}")

            next_url = urljoin(current_url, response.headers["location"])
            if not _validate_url_scheme(next_url):
                response.close()
                raise RedirectBlocked("redirected to disallowed protocol")

            if _is_blocked_host(urlparse(next_url).hostname or "", blocked_networks):
                response.close()
                raise RedirectBlocked("redirected to blocked IP range")

            response.close()
            current_url = next_url
            continue

        return response, current_url

    raise RedirectLimitExceeded(f"redirects exceeded {max_redirects}")


def fetch_url(
    url: str,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    session: requests.Session | None = None,
) -> tuple[FetchResponse | None, FetchLog]:
    """
    Fetch a URL using the safety constraints of CanonConfig.

    Never raises for transport problems: the FetchLog carries the error code
    and the response is None. Non-2xx answers are returned as responses.
    """
    start = time.monotonic()
    blocked_networks = _blocked_networks()
    method = method.upper()

    def _failed(error_code: FetchErrorCode) -> tuple[None, FetchLog]:
        return None, FetchLog(
            url=url,
            method=method,
            error_code=error_code,
            latency_ms=int((time.monotonic() - start) * 1000),
        )

    if not _validate_url_scheme(url):
        return _failed(FetchErrorCode.SECURITY_BLOCKED)

    hostname = urlparse(url).hostname or ""
    if not hostname:
        return _failed(FetchErrorCode.FETCH_ERROR)

    if _is_blocked_host(hostname, blocked_networks):
        return _failed(FetchErrorCode.SECURITY_BLOCKED)

    request_headers = {
        "User-Agent": CanonConfig.USER_AGENT,
        "Accept": CanonConfig.ACCEPT_HEADER,
    }
    request_headers.update(headers or {})

    owns_session = session is None
    http_session = session or requests.Session()

    try:
        response, final_url = _follow_redirects(
            http_session,
            url,
            method=method,
            headers=request_headers,
            timeout_seconds=CanonConfig.FETCH_TIMEOUT_SECONDS,
            max_redirects=CanonConfig.MAX_REDIRECTS,
            blocked_networks=blocked_networks,
        )

        content_type = response.headers.get("content-type")
        if method == "HEAD":
            body = b""
        else:
            body = _read_body_with_limit(response, _content_limit_for_response(content_type))

        fetch_response = FetchResponse(
            url=final_url,
            status=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=_decode_body(body, content_type),
        )
        log = FetchLog(
            url=url,
            method=method,
            status_code=response.status_code,
            final_url=final_url,
            latency_ms=int((time.monotonic() - start) * 1000),
            bytes_received=len(body),
        )
        response.close()
        return fetch_response, log

    except RedirectLimitExceeded:
        return _failed(FetchErrorCode.REDIRECT_LIMIT)
    except RedirectBlocked:
        return _failed(FetchErrorCode.SECURITY_BLOCKED)
    except BodyLimitExceeded:
        return _failed(FetchErrorCode.BODY_TOO_LARGE)
    except requests.Timeout:
        return _failed(FetchErrorCode.TIMEOUT)
    except requests.RequestException:
        return _failed(FetchErrorCode.FETCH_ERROR)
    finally:
        if owns_session:
            http_session.close()


class HttpFetcher:
    """
    Async fetch collaborator backed by fetch_url + structured logging.

    The blocking request runs in a worker thread. Without an injected
    session every request opens and closes its own, so one fetcher can
    serve concurrent runs; an injected session is shared as is.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        log_fetches: bool = True,
        run_id: str | None = None,
    ) -> None:
        self.session = session
        self.log_fetches = log_fetches
        self.run_id = run_id
        self.fetch_logs: list[FetchLog] = []

    async def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
    ) -> FetchResponse:
        """Fetch one URL; raise FetchFailed when no response was obtained."""
        response, fetch_log = await asyncio.to_thread(
            fetch_url,
            url,
            method=method,
            headers=headers,
            session=self.session,
        )
        self.fetch_logs.append(fetch_log)
        if self.log_fetches:
            emit_fetch_log(fetch_log, run_id=self.run_id)
        if response is None:
            error_code = fetch_log.error_code or FetchErrorCode.FETCH_ERROR
            raise FetchFailed(url, error_code.value)
        return response
