"""
Keyword and story trends over an in-memory article snapshot.

Everything here is pure: results are recomputed in full whenever the article
list changes, nothing is cached between calls.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Optional, Set

from .config import Settings
from .models import Article, StoryCluster, TrendTopic
from .normalizer import is_gif

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    return _NON_WORD.sub("", (text or "").lower()).split()


def _is_significant(token: str, stop_words: AbstractSet[str]) -> bool:
    return len(token) > 2 and token not in stop_words and not token.isdigit()


def significant_tokens(text: str, stop_words: AbstractSet[str]) -> FrozenSet[str]:
    return frozenset(t for t in tokenize(text) if _is_significant(t, stop_words))


def compute_keyword_trends(articles: Iterable[Article], settings: Optional[Settings] = None) -> List[TrendTopic]:
    """
    Rank words by the number of distinct articles mentioning them.

    Each article counts once per token no matter how often the token repeats.
    """
    settings = settings or Settings()
    words: Dict[str, List[Article]] = {}
    for article in articles:
        text = f"{article.title} {article.content_snippet or ''}"
        for token in significant_tokens(text, settings.stop_words):
            words.setdefault(token, []).append(article)

    ranked = sorted(words.items(), key=lambda kv: len(kv[1]), reverse=True)
    return [
        TrendTopic(keyword=word[:1].upper() + word[1:], count=len(related), related_articles=related)
        for word, related in ranked[: settings.keyword_limit]
    ]


def recent_articles(
    articles: Iterable[Article],
    window: timedelta = timedelta(hours=1),
    now: Optional[datetime] = None,
) -> List[Article]:
    now = now or datetime.now(timezone.utc)
    return [a for a in articles if now - a.published_at <= window]


def compute_recent_trends(
    articles: Iterable[Article],
    window: Optional[timedelta] = None,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> List[TrendTopic]:
    settings = settings or Settings()
    window = window if window is not None else settings.recent_window
    return compute_keyword_trends(recent_articles(articles, window, now), settings)


def _topics_overlap(a: FrozenSet[str], b: FrozenSet[str], settings: Settings) -> bool:
    shared = a & b
    if len(shared) >= settings.topic_overlap_tokens:
        return True
    return any(t not in settings.generic_words for t in shared)


def _cluster_thumbnail(articles: List[Article]) -> str:
    for a in articles:
        if is_gif(a.thumbnail):
            return a.thumbnail or ""
    for a in articles:
        if a.thumbnail:
            return a.thumbnail
    return ""


def _sources(articles: List[Article], limit: int) -> List[str]:
    out: List[str] = []
    for a in articles:
        if a.feed_title not in out:
            out.append(a.feed_title)
    return out[:limit]


def compute_trending_stories(articles: Iterable[Article], settings: Optional[Settings] = None) -> List[StoryCluster]:
    """
    Group near-duplicate headlines into story clusters.

    Seeds are taken newest first. A seed needs `min_seed_tokens` significant title words;
    any other unclaimed article sharing `min_shared_tokens` of them joins its cluster.
    Singletons are dropped, clusters are ranked by size, and a cluster is skipped when
    its words overlap an already kept one (enough shared words, or any shared word
    that is not generic). At most `max_stories` clusters are returned.
    """
    settings = settings or Settings()
    ordered = sorted(articles, key=lambda a: a.iso_date, reverse=True)
    tokens = [significant_tokens(a.title, settings.stop_words) for a in ordered]

    processed: Set[int] = set()
    clusters: List[StoryCluster] = []
    for i, seed in enumerate(ordered):
        if i in processed or len(tokens[i]) < settings.min_seed_tokens:
            continue
        processed.add(i)
        members = [seed]
        for j, other in enumerate(ordered):
            if j in processed:
                continue
            if len(tokens[i] & tokens[j]) >= settings.min_shared_tokens:
                members.append(other)
                processed.add(j)
        if len(members) > 1:
            clusters.append(StoryCluster(articles=members, tokens=tokens[i]))

    clusters.sort(key=lambda c: c.related_count, reverse=True)

    kept: List[StoryCluster] = []
    for cluster in clusters:
        if any(_topics_overlap(cluster.tokens, k.tokens, settings) for k in kept):
            continue
        kept.append(cluster)
        if len(kept) >= settings.max_stories:
            break

    return [
        StoryCluster(
            articles=c.articles,
            tokens=c.tokens,
            thumbnail=_cluster_thumbnail(c.articles),
            sources=_sources(c.articles, settings.max_story_sources),
        )
        for c in kept
    ]
