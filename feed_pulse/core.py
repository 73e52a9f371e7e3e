from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, List, Optional, Sequence

import httpx

from .config import Settings
from .dedup import deduplicate
from .exceptions import IngestInProgressError
from .fetcher import fetch_feed
from .models import Article, Feed

logger = logging.getLogger(__name__)


class IngestState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


@dataclass(frozen=True)
class IngestSnapshot:
    """The full merged article list as of one completed batch."""
    articles: List[Article]
    batch_index: int
    batch_count: int
    progress: int
    loading: bool
    done: bool


def batched(feeds: Sequence[Feed], size: int) -> List[List[Feed]]:
    size = max(1, size)
    return [list(feeds[i:i + size]) for i in range(0, len(feeds), size)]


def sort_articles(articles: List[Article]) -> None:
    # iso_date strings share one fixed UTC format, so they sort chronologically
    articles.sort(key=lambda a: a.iso_date, reverse=True)


class FeedAggregator:
    """
    High-level API: fetch many feeds and publish a unified, deduplicated article list.

    Pipeline per batch: fetch (relays → parse → JSON bridge) → merge → deduplicate → sort (newest first)

    Feeds are fetched in batches of `settings.batch_size`; feeds inside a batch run
    concurrently, batches run one after another. A snapshot of the whole merged list
    is published after every batch so consumers can render before all feeds finish.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.limit = limit
        self.state = IngestState.IDLE
        self._client = client

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=True,
        )

    async def _fetch_batch(self, client: httpx.AsyncClient, batch: List[Feed],
                           now: Optional[datetime]) -> List[Article]:
        results = await asyncio.gather(
            *(fetch_feed(client, feed, self.settings, now=now) for feed in batch),
            return_exceptions=True,
        )
        articles: List[Article] = []
        for feed, res in zip(batch, results):
            if isinstance(res, BaseException):
                logger.warning("Feed %s failed unexpectedly: %r", feed.title, res)
                continue
            logger.debug("Feed %s yielded %d articles", feed.title, len(res))
            articles.extend(res)
        return articles

    async def ingest(self, feeds: Sequence[Feed], *, now: Optional[datetime] = None) -> AsyncIterator[IngestSnapshot]:
        """
        Run one ingestion pass over `feeds`, yielding a snapshot after each batch.

        Every run starts from scratch. Raises IngestInProgressError if this aggregator
        is already running; check `state` before starting another pass.
        """
        if self.state is IngestState.RUNNING:
            raise IngestInProgressError("An ingestion run is already in progress")
        self.state = IngestState.RUNNING

        batches = batched(feeds, self.settings.batch_size)
        total = len(feeds)
        client = self._client or self._new_client()
        seen: set = set()
        merged: List[Article] = []
        loading = True
        try:
            if not batches:
                yield IngestSnapshot([], 0, 0, 100, False, True)
                return

            for index, batch in enumerate(batches, start=1):
                fetched = await self._fetch_batch(client, batch, now)
                fresh = deduplicate(fetched, seen, self.settings.tracking_params)
                merged.extend(fresh)
                sort_articles(merged)

                done = index == len(batches)
                if merged or done:
                    loading = False
                progress = min(100, round(min(index * self.settings.batch_size, total) * 100 / total))
                logger.info(
                    "Batch %d/%d: %d fetched, %d new, %d total",
                    index, len(batches), len(fetched), len(fresh), len(merged),
                )
                yield IngestSnapshot(list(merged), index, len(batches), progress, loading, done)
        finally:
            if self._client is None:
                await client.aclose()
            self.state = IngestState.DONE

    async def collect(
        self,
        feeds: Sequence[Feed],
        *,
        on_publish: Optional[Callable[[IngestSnapshot], None]] = None,
        now: Optional[datetime] = None,
    ) -> List[Article]:
        articles: List[Article] = []
        async for snapshot in self.ingest(feeds, now=now):
            if on_publish:
                on_publish(snapshot)
            articles = snapshot.articles
        if self.limit and self.limit > 0:
            articles = articles[: self.limit]
        return articles

    def fetch(
        self,
        feeds: Sequence[Feed],
        *,
        on_publish: Optional[Callable[[IngestSnapshot], None]] = None,
    ) -> List[Article]:
        """Blocking wrapper around `collect` for callers without an event loop."""
        return asyncio.run(self.collect(feeds, on_publish=on_publish))
