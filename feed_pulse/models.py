from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class Feed:
    """A subscribed feed. Identity is `id`; the pipeline never mutates it."""
    id: str
    url: str
    title: str
    color: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "url": self.url, "title": self.title}
        if self.color:
            out["color"] = self.color
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feed":
        return cls(
            id=str(data["id"]),
            url=str(data["url"]),
            title=str(data.get("title") or data["url"]),
            color=data.get("color") or None,
        )


@dataclass(frozen=True)
class Article:
    """
    Stable public model representing a normalized feed article.

    WARNING: Do not change fields lightly. Consumers read `as_dict()`.

    `id` is the link when present, else a random token; it is not unique across feeds.
    `iso_date` is always a valid ISO-8601 UTC timestamp, `pub_date` is the raw feed text.
    """
    id: str
    feed_id: str
    feed_title: str
    title: str
    link: str
    content: str
    content_snippet: str
    pub_date: str
    iso_date: str
    feed_color: Optional[str] = None
    thumbnail: Optional[str] = None
    author: Optional[str] = None

    @property
    def published_at(self) -> datetime:
        return datetime.fromisoformat(self.iso_date.replace("Z", "+00:00"))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "feedId": self.feed_id,
            "feedTitle": self.feed_title,
            "feedColor": self.feed_color,
            "title": self.title,
            "link": self.link,
            "content": self.content,
            "contentSnippet": self.content_snippet,
            "pubDate": self.pub_date,
            "isoDate": self.iso_date,
            "thumbnail": self.thumbnail,
            "author": self.author,
        }


@dataclass(frozen=True)
class TrendTopic:
    keyword: str
    count: int
    related_articles: List[Article] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "count": self.count,
            "relatedArticles": [a.id for a in self.related_articles],
        }


@dataclass(frozen=True)
class StoryCluster:
    """Articles judged to cover the same story, plus the seed headline's tokens."""
    articles: List[Article]
    tokens: FrozenSet[str]
    thumbnail: str = ""
    sources: List[str] = field(default_factory=list)

    @property
    def related_count(self) -> int:
        return len(self.articles)

    @property
    def lead(self) -> Article:
        return self.articles[0]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "title": self.lead.title,
            "link": self.lead.link,
            "thumbnail": self.thumbnail,
            "relatedCount": self.related_count,
            "sources": list(self.sources),
            "tokens": sorted(self.tokens),
            "articles": [a.id for a in self.articles],
        }
