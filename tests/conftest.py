"""
Shared pytest fixtures and configuration for feedcanon tests.
"""

from __future__ import annotations

from typing import Callable

import pytest

from core.models import FetchResponse
from core.structured_logging import silent_event_logger


# ============================================================================
# Feed bodies
# ============================================================================

def build_rss_feed(
    title: str = "kottke.org",
    site: str = "https://kottke.org/",
    self_url: str | None = None,
    items: tuple[tuple[str, str], ...] = (
        ("https://kottke.org/26/01/first-post", "First post"),
        ("https://kottke.org/26/01/second-post", "Second post"),
    ),
    build_date: str = "Mon, 05 Jan 2026 10:00:00 GMT",
) -> str:
    """Small RSS 2.0 document; build_date varies between otherwise equal copies."""
    self_link = f'<atom:link href="{self_url}" rel="self" type="application/rss+xml"/>' if self_url else ""
    entries = "".join(
        f"<item><title>{item_title}</title><link>{link}</link><guid>{link}</guid></item>"
        for link, item_title in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom"><channel>'
        f"<title>{title}</title><link>{site}</link><description>Home of fine hypertext products</description>"
        f"<lastBuildDate>{build_date}</lastBuildDate>{self_link}{entries}"
        "</channel></rss>"
    )


def build_atom_feed(
    title: str = "Example Atom",
    self_url: str | None = None,
    entry_ids: tuple[str, ...] = ("urn:uuid:1", "urn:uuid:2"),
) -> str:
    self_link = f'<link rel="self" href="{self_url}"/>' if self_url else ""
    entries = "".join(
        f'<entry><id>{entry_id}</id><title>Entry {index}</title>'
        f'<link href="https://example.com/posts/{index}"/><updated>2026-01-0{index + 1}T00:00:00Z</updated></entry>'
        for index, entry_id in enumerate(entry_ids)
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom">'
        f'<title>{title}</title><link href="https://example.com/"/>{self_link}'
        f"<updated>2026-01-05T00:00:00Z</updated>{entries}</feed>"
    )


# ============================================================================
# Stub collaborators
# ============================================================================

class StubFetch:
    """
    Async fetch collaborator driven by a dict.

    routes maps a requested URL to either a FetchResponse, an Exception to
    raise, or a (final_url, body) / (final_url, body, status) tuple. Unknown
    URLs answer 404.
    """

    def __init__(self, routes: dict[str, object] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[str] = []

    async def __call__(self, url: str, *, method: str = "GET", headers: dict[str, str] | None = None) -> FetchResponse:
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return FetchResponse(url=url, status=404, body="not found")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FetchResponse):
            return route
        if isinstance(route, tuple):
            final_url, body, *rest = route
            status = rest[0] if rest else 200
            return FetchResponse(url=final_url, status=status, body=body)
        return FetchResponse(url=url, status=200, body=str(route))


class RecordingLogger:
    """Event logger capturing (event_type, payload) pairs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event_type: str, payload: dict) -> None:
        self.events.append((event_type, payload))

    def types(self) -> list[str]:
        return [event_type for event_type, _ in self.events]

    def of_type(self, event_type: str) -> list[dict]:
        return [payload for kind, payload in self.events if kind == event_type]


@pytest.fixture
def rss_feed() -> Callable[..., str]:
    return build_rss_feed


@pytest.fixture
def atom_feed() -> Callable[..., str]:
    return build_atom_feed


@pytest.fixture
def stub_fetch() -> Callable[..., StubFetch]:
    return StubFetch


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def quiet_logger():
    return silent_event_logger


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end integration tests")
    config.addinivalue_line("markers", "unit: unit tests")
