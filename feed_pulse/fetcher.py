from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .bridge import fetch_via_json_bridge
from .config import Settings
from .exceptions import FeedFetchError, ParseError
from .models import Article, Feed
from .parser import parse_feed

logger = logging.getLogger(__name__)


def looks_like_html(text: str) -> bool:
    """True when a body is an HTML page (typically a proxy error page) rather than XML."""
    head = text.lstrip()[:64].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


@dataclass(frozen=True)
class ProxyStrategy:
    """A public relay that re-fetches a target URL. `template` holds a `{url}` placeholder."""
    template: str

    @property
    def name(self) -> str:
        return httpx.URL(self.template.replace("{url}", "")).host or self.template

    def rewrite(self, url: str) -> str:
        return self.template.replace("{url}", quote(url, safe=""))

    async def attempt(self, client: httpx.AsyncClient, url: str, *, timeout: float) -> str:
        """
        Fetch `url` through this relay and return the raw body.

        Raises FeedFetchError on timeout, transport errors, non-2xx status or an HTML page.
        """
        target = self.rewrite(url)
        try:
            resp = await client.get(target, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FeedFetchError(f"{self.name}: timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise FeedFetchError(f"{self.name}: {e}") from e

        if not resp.is_success:
            raise FeedFetchError(f"{self.name}: status {resp.status_code}")
        text = resp.text
        if looks_like_html(text):
            raise FeedFetchError(f"{self.name}: received HTML instead of XML")
        return text


def build_strategies(templates: Sequence[str]) -> List[ProxyStrategy]:
    return [ProxyStrategy(t) for t in templates]


async def iter_proxy_bodies(
    client: httpx.AsyncClient,
    url: str,
    strategies: Sequence[ProxyStrategy],
    *,
    timeout: float = 5.0,
) -> AsyncIterator[str]:
    """
    Yield raw bodies from each relay in order.

    Relays are tried one at a time; the next one is only contacted when the consumer
    asks for another body. Failed attempts are logged and skipped.
    """
    for strategy in strategies:
        try:
            text = await strategy.attempt(client, url, timeout=timeout)
        except FeedFetchError as e:
            logger.debug("Proxy attempt failed for %s: %s", url, e)
            continue
        yield text


async def fetch_via_proxies(
    client: httpx.AsyncClient,
    url: str,
    strategies: Sequence[ProxyStrategy],
    *,
    timeout: float = 5.0,
) -> Optional[str]:
    """Return the first relay body that is not an error page, or None when every relay failed."""
    bodies = iter_proxy_bodies(client, url, strategies, timeout=timeout)
    try:
        async for text in bodies:
            return text
    finally:
        await bodies.aclose()
    return None


async def fetch_feed(
    client: httpx.AsyncClient,
    feed: Feed,
    settings: Settings,
    *,
    now: Optional[datetime] = None,
) -> List[Article]:
    """
    Fetch and parse one feed: every relay in turn, then the JSON bridge.

    Never raises for network or parse failures; a feed that cannot be read yields [].
    """
    strategies = build_strategies(settings.proxies)
    bodies = iter_proxy_bodies(client, feed.url, strategies, timeout=settings.timeout_sec)
    try:
        async for text in bodies:
            try:
                return parse_feed(
                    text, feed, now=now,
                    snippet_length=settings.snippet_length,
                    blocklist=settings.image_blocklist,
                )
            except ParseError as e:
                logger.debug("Unparseable body for %s: %s", feed.url, e)
    finally:
        await bodies.aclose()

    if settings.json_bridge:
        articles = await fetch_via_json_bridge(client, feed, settings, now=now)
        if articles:
            return articles

    logger.warning("All fetch attempts failed for feed %s (%s)", feed.title, feed.url)
    return []
