"""Shared fixtures and builders for feed_pulse tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from feed_pulse.config import Settings
from feed_pulse.models import Article, Feed
from feed_pulse.normalizer import format_iso


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

HTML_ERROR_PAGE = "<!DOCTYPE html><html><head><title>502 Bad Gateway</title></head><body>proxy error</body></html>"

RSS_SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Sample RSS</title>
    <link>https://rss.test/</link>
    <description>Sample</description>
    <item>
      <title>Budget 2024 Announced</title>
      <link>https://news.test/budget</link>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
      <description><![CDATA[<p>The <b>finance minister</b> presented the budget.</p>]]></description>
      <content:encoded><![CDATA[<p>The finance minister presented the budget in parliament today, with changes to income tax slabs.</p>]]></content:encoded>
      <dc:creator>Staff Reporter</dc:creator>
    </item>
    <item>
      <title>Second story</title>
      <link>https://news.test/second</link>
      <pubDate>Mon, 01 Jan 2024 09:00:00 GMT</pubDate>
      <description>Plain text description</description>
    </item>
  </channel>
</rss>
"""

ATOM_SAMPLE = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Sample Atom</title>
  <id>urn:sample</id>
  <updated>2024-01-02T09:00:00Z</updated>
  <entry>
    <title>Atom entry one</title>
    <link rel="enclosure" href="https://cdn.test/audio.mp3" type="audio/mpeg"/>
    <link rel="alternate" href="https://atom.test/one"/>
    <id>urn:entry:1</id>
    <published>2024-01-02T08:30:00Z</published>
    <updated>2024-01-02T09:00:00Z</updated>
    <summary>Short summary</summary>
    <content type="html">&lt;p&gt;Longer body &lt;img src="https://cdn.test/pic.jpg"/&gt;&lt;/p&gt;</content>
    <author><name>Jane Doe</name></author>
  </entry>
</feed>
"""


def rss_doc(items: List[Dict[str, str]], *, media: bool = True) -> str:
    """Build a small RSS 2.0 document. Each item dict holds raw XML fragments keyed by tag."""
    ns = ' xmlns:media="http://search.yahoo.com/mrss/"' if media else ""
    body = []
    for item in items:
        parts = [f"<title>{item.get('title', 'Untitled')}</title>"]
        if "link" in item:
            parts.append(f"<link>{item['link']}</link>")
        if "pubDate" in item:
            parts.append(f"<pubDate>{item['pubDate']}</pubDate>")
        if "description" in item:
            parts.append(f"<description><![CDATA[{item['description']}]]></description>")
        parts.append(item.get("extra", ""))
        body.append("<item>" + "".join(parts) + "</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"{ns}><channel><title>Built</title><link>https://built.test/</link>'
        "<description>Built feed</description>" + "".join(body) + "</channel></rss>"
    )


def make_article(
    title: str,
    *,
    link: str = "",
    snippet: str = "",
    published: Optional[datetime] = None,
    feed_id: str = "feed",
    feed_title: str = "Feed",
    thumbnail: Optional[str] = None,
) -> Article:
    published = published or NOW
    return Article(
        id=link or title,
        feed_id=feed_id,
        feed_title=feed_title,
        title=title,
        link=link,
        content=snippet,
        content_snippet=snippet,
        pub_date="",
        iso_date=format_iso(published),
        thumbnail=thumbnail,
    )


def minutes_ago(minutes: int) -> datetime:
    return NOW - timedelta(minutes=minutes)


@pytest.fixture
def feed() -> Feed:
    return Feed(id="sample", url="https://origin.test/feed.xml", title="Sample Feed", color="#123456")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        proxies=(
            "https://proxy-a.test/raw?url={url}",
            "https://proxy-b.test/?url={url}",
            "https://proxy-c.test/fetch?url={url}",
            "https://proxy-d.test/v1?url={url}",
        ),
        json_bridge="https://bridge.test/api.json?rss_url={url}",
        timeout_sec=1.0,
    )


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build
