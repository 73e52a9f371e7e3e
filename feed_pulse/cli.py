"""Command-line entry point: `python -m feed_pulse {fetch,trends,feeds}`."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional, Sequence

from .config import Settings
from .core import FeedAggregator, IngestSnapshot
from .exceptions import FeedStoreError
from .filters import filter_articles
from .store import FeedStore
from .trends import compute_keyword_trends, compute_recent_trends, compute_trending_stories

logger = logging.getLogger(__name__)

DEFAULT_FEEDS_FILE = "feeds.json"


def setup_logging(verbose: bool = False) -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def _log_progress(snapshot: IngestSnapshot) -> None:
    logger.info("%d%% (%d articles)", snapshot.progress, len(snapshot.articles))


def _dump(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feed-pulse", description="Aggregate RSS/Atom feeds and show trends.")
    parser.add_argument("--feeds-file", default=DEFAULT_FEEDS_FILE, help="JSON subscription list")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p_fetch = sub.add_parser("fetch", help="Fetch and print the merged article list")
    p_fetch.add_argument("--limit", type=int, default=None)
    p_fetch.add_argument("--feed", dest="feed_id", default=None, help="Only show one feed id")
    p_fetch.add_argument("--search", default=None, help="Case-insensitive title/snippet filter")

    sub.add_parser("trends", help="Fetch and print keyword, recent and story trends")

    p_feeds = sub.add_parser("feeds", help="Manage subscriptions")
    feeds_sub = p_feeds.add_subparsers(dest="action", required=True)
    feeds_sub.add_parser("list")
    p_add = feeds_sub.add_parser("add")
    p_add.add_argument("url")
    p_add.add_argument("title")
    p_rm = feeds_sub.add_parser("remove")
    p_rm.add_argument("feed_id")
    return parser


def _run_feeds(store: FeedStore, args: argparse.Namespace) -> int:
    if args.action == "add":
        _dump(store.add(args.url, args.title).as_dict())
    elif args.action == "remove":
        _dump(store.remove(args.feed_id).as_dict())
    else:
        _dump([f.as_dict() for f in store.feeds()])
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    store = FeedStore(args.feeds_file)

    try:
        if args.command == "feeds":
            return _run_feeds(store, args)

        settings = Settings.from_env()
        aggregator = FeedAggregator(settings=settings)
        articles = aggregator.fetch(store.feeds(), on_publish=_log_progress)
    except FeedStoreError as e:
        logger.error("%s", e)
        return 2

    if args.command == "fetch":
        articles = filter_articles(articles, feed_id=args.feed_id, query=args.search)
        if args.limit:
            articles = articles[: args.limit]
        _dump([a.as_dict() for a in articles])
        return 0

    payload: dict = {
        "keywords": [t.as_dict() for t in compute_keyword_trends(articles, settings)],
        "recent": [t.as_dict() for t in compute_recent_trends(articles, settings=settings)],
        "stories": [c.as_dict() for c in compute_trending_stories(articles, settings)],
    }
    _dump(payload)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
