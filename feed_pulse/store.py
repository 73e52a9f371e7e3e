from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlsplit

from .exceptions import FeedStoreError
from .models import Feed
from .normalizer import random_token

logger = logging.getLogger(__name__)

DEFAULT_FEEDS: List[Feed] = [
    Feed(id="bbc-world", url="https://feeds.bbci.co.uk/news/world/rss.xml", title="BBC World", color="#bb1919"),
    Feed(id="guardian-world", url="https://www.theguardian.com/world/rss", title="The Guardian", color="#052962"),
    Feed(id="npr-news", url="https://feeds.npr.org/1001/rss.xml", title="NPR", color="#3366cc"),
    Feed(id="aljazeera", url="https://www.aljazeera.com/xml/rss/all.xml", title="Al Jazeera", color="#fa9000"),
    Feed(id="the-verge", url="https://www.theverge.com/rss/index.xml", title="The Verge", color="#e2127a"),
    Feed(id="ars-technica", url="https://feeds.arstechnica.com/arstechnica/index", title="Ars Technica", color="#ff4e00"),
    Feed(id="hacker-news", url="https://hnrss.org/frontpage", title="Hacker News", color="#ff6600"),
    Feed(id="the-hindu", url="https://www.thehindu.com/news/national/feeder/default.rss", title="The Hindu", color="#1a1a1a"),
]


def random_color() -> str:
    return "#{:06x}".format(random.randint(0, 0xFFFFFF))


class FeedStore:
    """
    JSON-file list of subscribed feeds.

    A missing file means "never saved" and yields DEFAULT_FEEDS.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._feeds: Optional[List[Feed]] = None

    def feeds(self) -> List[Feed]:
        if self._feeds is None:
            self._feeds = self._load()
        return list(self._feeds)

    def _load(self) -> List[Feed]:
        if not self.path.exists():
            return list(DEFAULT_FEEDS)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [Feed.from_dict(d) for d in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise FeedStoreError(f"Cannot read feed list {self.path}: {e}") from e

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [f.as_dict() for f in self.feeds()]
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def add(self, url: str, title: str) -> Feed:
        url = (url or "").strip()
        title = (title or "").strip()
        parts = urlsplit(url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise FeedStoreError(f"Not an http(s) feed URL: {url!r}")
        if not title:
            raise FeedStoreError("Feed title is required")
        feed = Feed(id=random_token(), url=url, title=title, color=random_color())
        self._feeds = self.feeds() + [feed]
        self.save()
        logger.info("Added feed %s (%s)", title, url)
        return feed

    def remove(self, feed_id: str) -> Feed:
        current = self.feeds()
        for feed in current:
            if feed.id == feed_id:
                self._feeds = [f for f in current if f.id != feed_id]
                self.save()
                logger.info("Removed feed %s", feed.title)
                return feed
        raise FeedStoreError(f"No feed with id {feed_id!r}")
