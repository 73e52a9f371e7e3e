from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Set
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import DEFAULT_TRACKING_PARAMS
from .models import Article


def normalize_link(link: str, tracking_params: AbstractSet[str] = DEFAULT_TRACKING_PARAMS) -> Optional[str]:
    """
    Strip tracking query parameters and a trailing slash from an absolute URL.

    Returns None when `link` is empty or not an absolute URL.
    """
    link = (link or "").strip()
    if not link:
        return None
    try:
        parts = urlsplit(link)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None

    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
             if k not in tracking_params]
    clean = urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path,
        urlencode(query),
        parts.fragment,
    ))
    if clean.endswith("/"):
        clean = clean[:-1]
    return clean


def dedupe_key(article: Article, tracking_params: AbstractSet[str] = DEFAULT_TRACKING_PARAMS) -> str:
    """Normalized link, or the lowercased trimmed title when the link is missing or unusable."""
    key = normalize_link(article.link, tracking_params)
    if key:
        return key
    return (article.title or "").strip().lower()


def deduplicate(
    items: Iterable[Article],
    seen: Optional[Set[str]] = None,
    tracking_params: AbstractSet[str] = DEFAULT_TRACKING_PARAMS,
) -> List[Article]:
    """
    Remove duplicates by normalized link, falling back to title.
    Keeps the first occurrence and preserves original order.

    Pass `seen` to carry keys across calls; it is updated in place. Articles with
    neither a usable link nor a title have no key and are dropped.
    """
    if seen is None:
        seen = set()
    out: List[Article] = []
    for it in items:
        key = dedupe_key(it, tracking_params)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(it)
    return out
