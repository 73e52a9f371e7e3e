from __future__ import annotations

import enum
import io
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import feedparser
from feedparser.exceptions import CharacterEncodingOverride, NonXMLContentType

from .config import DEFAULT_IMAGE_BLOCKLIST
from .exceptions import ParseError
from .models import Article, Feed
from .normalizer import choose_thumbnail, extract_image_from_html, is_gif, struct_to_datetime, to_article

logger = logging.getLogger(__name__)

# Encoding notices are raised for perfectly readable documents; anything else is structural.
_BENIGN_BOZO = (CharacterEncodingOverride, NonXMLContentType)


class Dialect(enum.Enum):
    RSS = "rss"
    ATOM = "atom"


def _first(*keys: str) -> Callable[[Dict[str, Any]], str]:
    def get(entry: Dict[str, Any]) -> str:
        for k in keys:
            if k not in entry:
                continue
            v = entry[k]
            if isinstance(v, str) and v.strip():
                return v
        return ""
    return get


def _content_value(entry: Dict[str, Any]) -> str:
    for c in entry.get("content") or []:
        value = c.get("value") if isinstance(c, dict) else None
        if value:
            return value
    return ""


def _rss_content(entry: Dict[str, Any]) -> str:
    # content:encoded only wins when it is richer than the description
    description = entry.get("summary") or ""
    encoded = _content_value(entry)
    return encoded if len(encoded) > len(description) else description


def _atom_link(entry: Dict[str, Any]) -> str:
    links = [l for l in entry.get("links") or [] if l.get("href")]
    for l in links:
        if l.get("rel", "alternate") == "alternate":
            return l["href"]
    if links:
        return links[0]["href"]
    return entry.get("link") or ""


def _atom_content(entry: Dict[str, Any]) -> str:
    return _content_value(entry) or entry.get("summary") or ""


def _atom_author(entry: Dict[str, Any]) -> str:
    detail = entry.get("author_detail") or {}
    return detail.get("name") or entry.get("author") or ""


def _published(*keys: str) -> Callable[[Dict[str, Any]], Optional[datetime]]:
    def get(entry: Dict[str, Any]) -> Optional[datetime]:
        for k in keys:
            if k not in entry:
                continue
            dt = struct_to_datetime(entry[k])
            if dt:
                return dt
        return None
    return get


# Field-mapping tables from feedparser entries to the canonical entry dict.
FIELD_MAP: Dict[Dialect, Dict[str, Callable[[Dict[str, Any]], Any]]] = {
    Dialect.RSS: {
        "title": _first("title"),
        "link": _first("link"),
        "pub_date": _first("published", "updated"),
        "published_at": _published("published_parsed", "updated_parsed"),
        "description": _first("summary"),
        "content": _rss_content,
        "author": _first("author"),
    },
    Dialect.ATOM: {
        "title": _first("title"),
        "link": _atom_link,
        "pub_date": _first("published", "updated"),
        "published_at": _published("published_parsed", "updated_parsed"),
        "description": _first("summary"),
        "content": _atom_content,
        "author": _atom_author,
    },
}


def detect_dialect(parsed: Any) -> Dialect:
    version = (parsed.get("version") or "").lower()
    return Dialect.ATOM if version.startswith("atom") else Dialect.RSS


def _media_content_urls(entry: Dict[str, Any]) -> List[str]:
    urls = []
    for m in entry.get("media_content") or []:
        url = m.get("url")
        mtype = m.get("type") or ""
        if url and (not mtype or mtype.startswith("image")):
            urls.append(url)
    return urls


def _enclosure_urls(entry: Dict[str, Any]) -> List[str]:
    return [
        e.get("href") or e.get("url") or ""
        for e in entry.get("enclosures") or []
        if (e.get("type") or "").startswith("image")
    ]


def _media_thumbnail_urls(entry: Dict[str, Any]) -> List[str]:
    return [t.get("url") or "" for t in entry.get("media_thumbnail") or []]


def resolve_thumbnail(entry: Dict[str, Any], html: str,
                      blocklist: Sequence[str] = DEFAULT_IMAGE_BLOCKLIST) -> str:
    """
    Pick an entry thumbnail.

    Priority: media:content, image enclosures, media:thumbnail, inline <img> in the body.
    Later sources only replace an earlier static pick with a GIF.
    """
    thumbnail = ""
    for source in (_media_content_urls, _enclosure_urls, _media_thumbnail_urls):
        if is_gif(thumbnail):
            return thumbnail
        thumbnail = choose_thumbnail(thumbnail, source(entry))
    if is_gif(thumbnail):
        return thumbnail
    return choose_thumbnail(thumbnail, [extract_image_from_html(html, blocklist)])


def parse_entry(entry: Dict[str, Any], dialect: Dialect,
                blocklist: Sequence[str] = DEFAULT_IMAGE_BLOCKLIST) -> Dict[str, Any]:
    """Map a feedparser entry to the canonical entry dict consumed by `to_article`."""
    mapped = {name: extract(entry) for name, extract in FIELD_MAP[dialect].items()}
    mapped["thumbnail"] = resolve_thumbnail(
        entry, mapped["content"] or mapped["description"], blocklist
    )
    return mapped


def parse_feed(
    text: str,
    feed: Feed,
    *,
    now: Optional[datetime] = None,
    snippet_length: int = 150,
    blocklist: Sequence[str] = DEFAULT_IMAGE_BLOCKLIST,
) -> List[Article]:
    """
    Parse raw RSS 2.0 or Atom text into Articles for `feed`.

    Raises ParseError on malformed XML or when the document holds no items.
    """
    if not text or not text.strip():
        raise ParseError("Empty feed document")

    # A str argument may be read as a URL or a local path; a stream is always content.
    parsed = feedparser.parse(io.BytesIO(text.encode("utf-8")))
    exc = parsed.get("bozo_exception")
    if parsed.get("bozo") and not isinstance(exc, _BENIGN_BOZO):
        raise ParseError(f"XML parsing error: {exc}")

    entries = parsed.get("entries") or []
    if not entries:
        raise ParseError("No items found")

    dialect = detect_dialect(parsed)
    logger.debug("Parsed %d %s entries for %s", len(entries), dialect.value, feed.title)
    return [
        to_article(parse_entry(e, dialect, blocklist), feed, now=now, snippet_length=snippet_length)
        for e in entries
    ]
