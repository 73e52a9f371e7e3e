from __future__ import annotations

import calendar
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Sequence

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .config import DEFAULT_IMAGE_BLOCKLIST
from .models import Article, Feed


def random_token() -> str:
    return uuid.uuid4().hex[:9]


def is_gif(url: Optional[str]) -> bool:
    return bool(url) and url.lower().split("?", 1)[0].endswith(".gif")


def strip_html(html: Optional[str]) -> str:
    """Return the visible text of an HTML fragment with whitespace collapsed."""
    if not html:
        return ""
    text = html
    # Double-escaped markup decodes to literal tags on the first pass.
    for _ in range(3):
        if "<" not in text and "&" not in text:
            break
        stripped = BeautifulSoup(text, "html.parser").get_text(" ")
        if stripped == text:
            break
        text = stripped
    return " ".join(text.split())


def make_snippet(html: Optional[str], limit: int = 150) -> str:
    text = strip_html(html)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def extract_image_from_html(html: Optional[str], blocklist: Sequence[str] = DEFAULT_IMAGE_BLOCKLIST) -> str:
    """
    Pick a thumbnail from inline <img src> tags.

    Tracker, ad and emoji images are skipped. The first GIF wins, otherwise the first image.
    """
    if not html or "<img" not in html.lower():
        return ""
    soup = BeautifulSoup(html, "html.parser")
    images = []
    for img in soup.find_all("img", src=True):
        src = str(img["src"]).strip()
        lower = src.lower()
        if not src or any(b in lower for b in blocklist):
            continue
        images.append(src)
    return choose_thumbnail("", images)


def choose_thumbnail(current: str, candidates: Iterable[Optional[str]]) -> str:
    """
    Merge candidate image URLs into the current pick.

    A GIF beats any static image; among static images the first one found wins.
    """
    for url in candidates:
        if not url:
            continue
        if is_gif(url):
            return url
        if not current:
            current = url
    return current


def format_iso(dt: datetime) -> str:
    """Render a datetime as `YYYY-MM-DDTHH:MM:SS.mmmZ` in UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def struct_to_datetime(val: Any) -> Optional[datetime]:
    # feedparser's *_parsed values are already normalized to UTC
    if isinstance(val, time.struct_time):
        try:
            return datetime.fromtimestamp(calendar.timegm(val), tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            return None
    return None


def parse_date(text: Optional[str]) -> Optional[datetime]:
    if not text or not text.strip():
        return None
    try:
        dt = date_parser.parse(text.strip())
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_article(
    entry: Dict[str, Any],
    feed: Feed,
    *,
    now: Optional[datetime] = None,
    snippet_length: int = 150,
) -> Article:
    """
    Convert a mapped entry dict into an Article.

    Expects keys: title, link, pub_date, description, content, author, thumbnail and
    optionally published_at (datetime). When no date can be read the article is
    stamped with `now`, so undated items sort as if they were just published.
    """
    title = (entry.get("title") or "").strip() or "No Title"
    link = (entry.get("link") or "").strip()
    description = entry.get("description") or ""
    content = entry.get("content") or description
    pub_date = (entry.get("pub_date") or "").strip()

    published_at = entry.get("published_at") or parse_date(pub_date)
    if published_at is None:
        published_at = now or datetime.now(timezone.utc)

    return Article(
        id=link or entry.get("guid") or random_token(),
        feed_id=feed.id,
        feed_title=feed.title,
        feed_color=feed.color,
        title=title,
        link=link,
        content=content,
        content_snippet=make_snippet(description or content, snippet_length),
        pub_date=pub_date,
        iso_date=format_iso(published_at),
        thumbnail=entry.get("thumbnail") or None,
        author=(entry.get("author") or "").strip() or None,
    )
