"""
feed_pulse

Aggregates RSS/Atom feeds into one deduplicated article list and derives trend signals from it.

Core ideas:
- Input: Feed subscriptions (id, url, title, color)
- Process: fetch through relay proxies → parse (RSS 2.0 / Atom, JSON bridge fallback) → deduplicate → sort (newest first)
- Output: List[Article], published incrementally per batch of feeds
- Trends: keyword tables (all-time, last hour) and near-duplicate story clusters

Example
-------
from feed_pulse import Feed, FeedAggregator, compute_keyword_trends, compute_trending_stories

aggregator = FeedAggregator()
articles = aggregator.fetch([
    Feed(id="bbc", url="https://feeds.bbci.co.uk/news/rss.xml", title="BBC"),
    Feed(id="verge", url="https://www.theverge.com/rss/index.xml", title="The Verge"),
])

for topic in compute_keyword_trends(articles)[:10]:
    print(topic.count, topic.keyword)
for story in compute_trending_stories(articles):
    print(story.related_count, story.lead.title, story.sources)
"""
from .models import Article, Feed, StoryCluster, TrendTopic
from .config import Settings
from .core import FeedAggregator, IngestSnapshot, IngestState
from .trends import compute_keyword_trends, compute_recent_trends, compute_trending_stories
from .insights import InsightClient, InsightOptions

__all__ = [
    "Article",
    "Feed",
    "StoryCluster",
    "TrendTopic",
    "Settings",
    "FeedAggregator",
    "IngestSnapshot",
    "IngestState",
    "compute_keyword_trends",
    "compute_recent_trends",
    "compute_trending_stories",
    "InsightClient",
    "InsightOptions",
]
