"""Default parser collaborator: RSS 2.0, Atom, RDF (RSS 1.0) and JSON Feed."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from urllib.parse import urlsplit
from xml.etree import ElementTree as ET


ATOM_NS = "http://www.w3.org/2005/Atom"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"


@dataclass(frozen=True, slots=True)
class FeedItem:
    """One RSS item / Atom entry / JSON Feed item."""

    guid: str | None = None
    link: str | None = None
    title: str | None = None
    published_at: str | None = None


@dataclass(frozen=True, slots=True)
class ParsedFeed:
    """Format-independent view of a feed document."""

    format: str  # "rss" | "atom" | "rdf" | "json"
    title: str | None = None
    description: str | None = None
    site_url: str | None = None
    self_url: str | None = None
    items: tuple[FeedItem, ...] = ()


def _local_name(tag: str) -> str:
    """Return lowercase local name for an XML tag."""
    if "}" in tag:
        return tag.split("}", 1)[1].lower()
    return tag.lower()


def _namespace(tag: str) -> str:
    """Return the namespace URI of an XML tag, or empty string."""
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def _text(value: str | None) -> str | None:
    """Strip text content; empty becomes None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _child(element: ET.Element, name: str) -> ET.Element | None:
    """First direct child with the given local name."""
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(element: ET.Element, *names: str) -> str | None:
    """Text of the first direct child matching any of the local names, in order."""
    for name in names:
        child = _child(element, name)
        if child is not None:
            value = _text(child.text)
            if value:
                return value
    return None


def _atom_links(element: ET.Element) -> list[tuple[str, str]]:
    """(rel, href) of the Atom <link> children of an element."""
    links: list[tuple[str, str]] = []
    for child in element:
        if _local_name(child.tag) != "link" or _namespace(child.tag) != ATOM_NS:
            continue
        href = _text(child.attrib.get("href"))
        if href:
            links.append(((child.attrib.get("rel") or "alternate").strip().lower(), href))
    return links


def _atom_link(element: ET.Element, rel: str) -> str | None:
    for link_rel, href in _atom_links(element):
        if link_rel == rel:
            return href
    return None


def _parse_rss(root: ET.Element) -> ParsedFeed | None:
    channel = _child(root, "channel")
    if channel is None:
        return None

    items = tuple(
        FeedItem(
            guid=_child_text(item, "guid"),
            link=_child_text(item, "link"),
            title=_child_text(item, "title"),
            published_at=_child_text(item, "pubdate", "date"),
        )
        for item in channel
        if _local_name(item.tag) == "item"
    )
    return ParsedFeed(
        format="rss",
        title=_child_text(channel, "title"),
        description=_child_text(channel, "description"),
        site_url=_child_text(channel, "link"),
        self_url=_atom_link(channel, "self"),
        items=items,
    )


def _parse_atom(root: ET.Element) -> ParsedFeed:
    entries = []
    for entry in root:
        if _local_name(entry.tag) != "entry":
            continue
        entries.append(
            FeedItem(
                guid=_child_text(entry, "id"),
                link=_atom_link(entry, "alternate"),
                title=_child_text(entry, "title"),
                published_at=_child_text(entry, "published", "updated"),
            )
        )
    return ParsedFeed(
        format="atom",
        title=_child_text(root, "title"),
        description=_child_text(root, "subtitle"),
        site_url=_atom_link(root, "alternate"),
        self_url=_atom_link(root, "self"),
        items=tuple(entries),
    )


def _parse_rdf(root: ET.Element) -> ParsedFeed | None:
    channel = _child(root, "channel")
    if channel is None:
        return None

    items = tuple(
        FeedItem(
            guid=_text(item.attrib.get(f"{{{RDF_NS}}}about")),
            link=_child_text(item, "link"),
            title=_child_text(item, "title"),
            published_at=_child_text(item, "date"),
        )
        for item in root
        if _local_name(item.tag) == "item"
    )
    return ParsedFeed(
        format="rdf",
        title=_child_text(channel, "title"),
        description=_child_text(channel, "description"),
        site_url=_child_text(channel, "link"),
        self_url=_text(channel.attrib.get(f"{{{RDF_NS}}}about")),
        items=items,
    )


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    return _text(str(value))


def _parse_json_feed(body: str) -> ParsedFeed | None:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    version = data.get("version")
    if not isinstance(version, str) or "jsonfeed.org" not in version:
        return None

    raw_items = data.get("items")
    items = tuple(
        FeedItem(
            guid=_as_text(item.get("id")),
            link=_as_text(item.get("url")),
            title=_as_text(item.get("title")),
            published_at=_as_text(item.get("date_published")),
        )
        for item in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(item, dict)
    )
    return ParsedFeed(
        format="json",
        title=_as_text(data.get("title")),
        description=_as_text(data.get("description")),
        site_url=_as_text(data.get("home_page_url")),
        self_url=_as_text(data.get("feed_url")),
        items=items,
    )


def _bare_host(host: str | None) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def neutralize_feed_url(value: str | None, feed_url: str) -> str | None:
    """
    Make a URL found inside a feed comparable across feed URL spellings.

    Same-host absolute URLs (www-insensitive, same port, any scheme) become
    root-relative; a trailing slash on a non-root path is dropped.
    """
    if not value:
        return value
    try:
        target = urlsplit(value)
        feed = urlsplit(feed_url)
        same_host = (
            target.scheme.lower() in {"http", "https"}
            and bool(target.hostname)
            and _bare_host(target.hostname) == _bare_host(feed.hostname)
            and target.port == feed.port
        )
    except ValueError:
        return value

    if same_host:
        path = target.path or "/"
        query = target.query
    elif not target.scheme and not target.netloc:
        path, query = target.path, target.query
    else:
        return value

    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return f"{path}?{query}" if query else path


class FeedParserAdapter:
    """Parser collaborator built on ElementTree and json."""

    def parse(self, body: str) -> ParsedFeed | None:
        """Parse a feed body; None for anything that is not a supported feed."""
        text = (body or "").strip().lstrip("\ufeff")
        if not text:
            return None
        if text.startswith("{"):
            return _parse_json_feed(text)

        try:
            root = ET.fromstring(text)
        except (ET.ParseError, ValueError):
            return None

        name = _local_name(root.tag)
        if name == "rss":
            return _parse_rss(root)
        if name == "feed" and _namespace(root.tag) == ATOM_NS:
            return _parse_atom(root)
        if name == "rdf":
            return _parse_rdf(root)
        return None

    def get_self_url(self, parsed: ParsedFeed) -> str | None:
        return parsed.self_url

    def get_signature(self, parsed: ParsedFeed, url: str) -> str:
        """
        SHA-256 over feed content with volatile fields neutralized.

        Left out: the self URL and build/update timestamps. Same-host links
        are reduced to root-relative paths so that www/protocol variants of
        one feed produce one signature.
        """
        payload = {
            "format": parsed.format,
            "title": parsed.title,
            "description": parsed.description,
            "site_url": neutralize_feed_url(parsed.site_url, url),
            "items": [
                {
                    **asdict(item),
                    "guid": neutralize_feed_url(item.guid, url),
                    "link": neutralize_feed_url(item.link, url),
                }
                for item in parsed.items
            ],
        }
        serialized = json.dumps(payload, sort_keys=True, ensure_ascii=True)
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()
