from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Article


def _contains(article: Article, needle: str) -> bool:
    return needle in article.title.lower() or needle in (article.content_snippet or "").lower()


def filter_articles(
    articles: Iterable[Article],
    *,
    feed_id: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Article]:
    """
    Narrow an article list to one feed and/or a case-insensitive text match.

    The query is matched as a substring of the title or the snippet.
    """
    out = list(articles)
    if feed_id:
        out = [a for a in out if a.feed_id == feed_id]
    needle = (query or "").strip().lower()
    if needle:
        out = [a for a in out if _contains(a, needle)]
    return out


def articles_for_keyword(articles: Iterable[Article], keyword: str) -> List[Article]:
    """Articles behind a trend keyword, as selected from a keyword table."""
    return filter_articles(articles, query=keyword)
