from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .config import Settings
from .models import Article, Feed
from .normalizer import choose_thumbnail, extract_image_from_html, is_gif, to_article

logger = logging.getLogger(__name__)


def _enclosure_image(item: Dict[str, Any]) -> str:
    enc = item.get("enclosure")
    if isinstance(enc, dict) and (enc.get("type") or "").startswith("image"):
        return enc.get("link") or enc.get("url") or ""
    return ""


def bridge_item_to_entry(item: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    """Map one feed-to-JSON item onto the canonical entry dict."""
    description = item.get("description") or ""
    content = item.get("content") or description
    thumbnail = choose_thumbnail(item.get("thumbnail") or "", [_enclosure_image(item)])
    if not is_gif(thumbnail):
        thumbnail = choose_thumbnail(
            thumbnail, [extract_image_from_html(content or description, settings.image_blocklist)]
        )
    return {
        "title": item.get("title") or "",
        "link": item.get("link") or "",
        "guid": item.get("guid") or "",
        "pub_date": item.get("pubDate") or "",
        "description": description,
        "content": content,
        "author": item.get("author") or "",
        "thumbnail": thumbnail,
    }


async def fetch_via_json_bridge(
    client: httpx.AsyncClient,
    feed: Feed,
    settings: Settings,
    *,
    now: Optional[datetime] = None,
) -> List[Article]:
    """
    Convert `feed` through the feed-to-JSON service.

    Returns [] on any failure: network errors, bad JSON, or a status other than "ok".
    """
    if not settings.json_bridge:
        return []
    endpoint = settings.json_bridge.replace("{url}", quote(feed.url, safe=""))
    try:
        resp = await client.get(endpoint, timeout=settings.timeout_sec)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("JSON bridge failed for %s: %s", feed.url, e)
        return []

    if not isinstance(data, dict) or data.get("status") != "ok":
        logger.debug("JSON bridge returned non-ok status for %s", feed.url)
        return []

    items = data.get("items")
    if not isinstance(items, list):
        return []
    return [
        to_article(bridge_item_to_entry(item, settings), feed, now=now,
                   snippet_length=settings.snippet_length)
        for item in items
        if isinstance(item, dict)
    ]
