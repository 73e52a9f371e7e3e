from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import FrozenSet, Optional, Tuple

from dotenv import load_dotenv


DEFAULT_PROXIES: Tuple[str, ...] = (
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
    "https://thingproxy.freeboard.io/fetch/{url}",
    "https://api.codetabs.com/v1/proxy?quest={url}",
)

DEFAULT_JSON_BRIDGE = "https://api.rss2json.com/v1/api.json?rss_url={url}"

DEFAULT_TRACKING_PARAMS: FrozenSet[str] = frozenset({
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "ref", "rss", "fbclid", "gclid",
})

# Substrings of inline image URLs that are trackers, ads or emoji, never thumbnails.
DEFAULT_IMAGE_BLOCKLIST: Tuple[str, ...] = (
    "feedburner", "doubleclick", "/ad/", "ads.", "pixel", "emoji", "smilies",
)

STOP_WORDS: FrozenSet[str] = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "any", "can", "had",
    "her", "was", "one", "our", "out", "has", "him", "his", "how", "man", "new",
    "now", "old", "see", "two", "way", "who", "its", "did", "get", "may", "say",
    "she", "too", "use", "with", "this", "that", "from", "they", "will", "have",
    "been", "were", "what", "when", "your", "said", "says", "into", "than",
    "then", "them", "these", "those", "their", "there", "over", "after",
    "about", "also", "more", "most", "some", "such", "only", "other", "which",
    "while", "would", "could", "should", "being", "here", "just", "like",
    "make", "made", "many", "much", "very", "where", "why", "amid", "against",
    "under", "upon", "during", "before", "between", "each", "does", "doing",
    "amp", "nbsp", "quot", "read", "full", "story", "news", "latest", "today",
    "live", "update", "updates", "first", "last", "year", "years", "day",
    "days", "week", "time", "know", "according", "continue", "reading",
})

# Common political, geographic and filler terms. Sharing one of these does not make
# two story clusters the same topic.
GENERIC_CLUSTER_WORDS: FrozenSet[str] = frozenset({
    "india", "indian", "china", "us", "usa", "america", "american", "world",
    "global", "nation", "national", "state", "states", "city", "country",
    "government", "govt", "minister", "president", "prime", "chief", "party",
    "election", "elections", "police", "court", "case", "report", "reports",
    "news", "says", "said", "new", "delhi", "mumbai", "people", "official",
    "officials", "year", "day", "week", "live", "updates", "update", "big",
    "amid", "after", "over", "top", "first",
})


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    proxies: Tuple[str, ...] = DEFAULT_PROXIES
    json_bridge: Optional[str] = DEFAULT_JSON_BRIDGE
    timeout_sec: float = 5.0
    batch_size: int = 6
    user_agent: str = "feed-pulse/0.3 (+https://github.com/feed-pulse)"
    snippet_length: int = 150
    tracking_params: FrozenSet[str] = DEFAULT_TRACKING_PARAMS
    image_blocklist: Tuple[str, ...] = DEFAULT_IMAGE_BLOCKLIST
    stop_words: FrozenSet[str] = STOP_WORDS
    generic_words: FrozenSet[str] = GENERIC_CLUSTER_WORDS
    keyword_limit: int = 30
    recent_window: timedelta = field(default=timedelta(hours=1))
    min_seed_tokens: int = 3
    min_shared_tokens: int = 2
    topic_overlap_tokens: int = 3
    max_stories: int = 4
    max_story_sources: int = 3

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        """
        Build settings from FEED_PULSE_* environment variables.

        FEED_PULSE_PROXIES is a comma-separated list of templates containing `{url}`.
        FEED_PULSE_JSON_BRIDGE set to an empty string disables the JSON fallback.
        """
        if dotenv:
            load_dotenv()
        s = cls()
        proxies = os.getenv("FEED_PULSE_PROXIES")
        if proxies:
            s = replace(s, proxies=tuple(p.strip() for p in proxies.split(",") if p.strip()))
        bridge = os.getenv("FEED_PULSE_JSON_BRIDGE")
        if bridge is not None:
            s = replace(s, json_bridge=bridge.strip() or None)
        if not _env_bool("FEED_PULSE_USE_BRIDGE", True):
            s = replace(s, json_bridge=None)
        timeout = os.getenv("FEED_PULSE_TIMEOUT")
        if timeout:
            s = replace(s, timeout_sec=float(timeout))
        batch = os.getenv("FEED_PULSE_BATCH_SIZE")
        if batch:
            s = replace(s, batch_size=max(1, int(batch)))
        return s
