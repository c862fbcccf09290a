"""Integration tests for the two-URL equivalence check."""

from __future__ import annotations

import asyncio

import pytest

from core.equivalent import are_equivalent
from core.models import Tier


def _check(*args, **kwargs):
    return asyncio.run(are_equivalent(*args, **kwargs))


@pytest.mark.integration

def test_normalize_needs_no_fetch(stub_fetch):
    fetch = stub_fetch()

    result = _check("http://www.example.com/feed/", "https://example.com/feed#latest", fetch=fetch)

    assert result.equivalent
    assert result.method == "normalize"
    assert fetch.calls == []


@pytest.mark.integration

def test_custom_tier_can_keep_www_distinct(stub_fetch):
    fetch = stub_fetch()

    result = _check(
        "https://www.example.com/feed",
        "https://example.com/feed",
        fetch=fetch,
        tier=Tier(name="strict"),
    )

    assert not result.equivalent
    assert fetch.calls == ["https://www.example.com/feed"]


@pytest.mark.integration

def test_redirects_to_same_final_url(stub_fetch, rss_feed):
    fetch = stub_fetch(
        {
            "https://example.com/rss": ("https://example.com/feed", rss_feed()),
            "https://blog.example.com/feed": ("https://example.com/feed/", rss_feed(build_date="Tue, 06 Jan 2026 08:00:00 GMT")),
        }
    )

    result = _check("https://example.com/rss", "https://blog.example.com/feed", fetch=fetch)

    assert result.equivalent
    assert result.method == "redirects"


@pytest.mark.integration

def test_identical_bodies(stub_fetch, rss_feed):
    body = rss_feed()
    fetch = stub_fetch(
        {
            "https://example.com/rss": ("https://example.com/rss", body),
            "https://cdn.example.net/feed.xml": ("https://cdn.example.net/feed.xml", body),
        }
    )

    result = _check("https://example.com/rss", "https://cdn.example.net/feed.xml", fetch=fetch)

    assert result.equivalent
    assert result.method == "response_hash"


@pytest.mark.integration

def test_equal_signatures(stub_fetch, rss_feed):
    fetch = stub_fetch(
        {
            "https://example.com/rss": ("https://example.com/rss", rss_feed(self_url="https://example.com/rss")),
            "https://cdn.example.net/feed.xml": (
                "https://cdn.example.net/feed.xml",
                rss_feed(self_url="https://cdn.example.net/feed.xml", build_date="Tue, 06 Jan 2026 08:00:00 GMT"),
            ),
        }
    )

    result = _check("https://example.com/rss", "https://cdn.example.net/feed.xml", fetch=fetch)

    assert result.equivalent
    assert result.method == "signature"


@pytest.mark.integration

def test_different_feeds_not_equivalent(stub_fetch, rss_feed):
    fetch = stub_fetch(
        {
            "https://example.com/rss": ("https://example.com/rss", rss_feed(title="Posts")),
            "https://example.com/comments/rss": ("https://example.com/comments/rss", rss_feed(title="Comments")),
        }
    )

    result = _check("https://example.com/rss", "https://example.com/comments/rss", fetch=fetch)

    assert not result.equivalent
    assert result.method is None


@pytest.mark.integration

def test_unparsable_bodies_not_equivalent(stub_fetch):
    fetch = stub_fetch(
        {
            "https://example.com/a": ("https://example.com/a", "<html>a</html>"),
            "https://example.com/b": ("https://example.com/b", "<html>b</html>"),
        }
    )

    assert not _check("https://example.com/a", "https://example.com/b", fetch=fetch).equivalent


@pytest.mark.integration
@pytest.mark.parametrize(
    "route",
    [
        ConnectionError("refused"),
        ("https://example.com/b", "server error", 500),
    ],
)
def test_fetch_failures_not_equivalent(stub_fetch, rss_feed, route):
    fetch = stub_fetch(
        {
            "https://example.com/a": ("https://example.com/a", rss_feed()),
            "https://example.com/b": route,
        }
    )

    result = _check("https://example.com/a", "https://example.com/b", fetch=fetch)

    assert not result.equivalent
    assert result.method is None


@pytest.mark.integration

def test_failed_first_fetch_skips_second(stub_fetch):
    fetch = stub_fetch()

    assert not _check("https://example.com/a", "https://example.com/b", fetch=fetch).equivalent
    assert fetch.calls == ["https://example.com/a"]


@pytest.mark.integration

def test_verify_gate_blocks_fetching(stub_fetch):
    fetch = stub_fetch()

    result = _check("https://example.com/a", "https://example.com/b", fetch=fetch, verify=lambda url: "/a" in url)

    assert not result.equivalent
    assert fetch.calls == []


@pytest.mark.integration

def test_non_http_urls_never_fetched(stub_fetch):
    fetch = stub_fetch()

    assert not _check("mailto:a@example.com", "https://example.com/feed", fetch=fetch).equivalent
    assert fetch.calls == []


@pytest.mark.integration

def test_on_fetch_sees_both_requests(stub_fetch, rss_feed):
    body = rss_feed()
    fetch = stub_fetch(
        {
            "https://example.com/a": ("https://example.com/a", body),
            "https://example.com/b": ("https://example.com/b", body),
        }
    )
    events = []

    _check("https://example.com/a", "https://example.com/b", fetch=fetch, on_fetch=events.append)

    assert [event.url for event in events] == ["https://example.com/a", "https://example.com/b"]
