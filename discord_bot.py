import asyncio
import logging
import os
from typing import Callable, List, Sequence

import discord
from dotenv import load_dotenv

from feed_pulse import FeedAggregator, InsightClient, Settings
from feed_pulse.cli import setup_logging
from feed_pulse.exceptions import InsightError
from feed_pulse.insights import headline_titles
from feed_pulse.models import Article, StoryCluster, TrendTopic
from feed_pulse.store import FeedStore
from feed_pulse.trends import compute_keyword_trends, compute_trending_stories

logger = logging.getLogger("discord_bot")

# Discord rejects messages over 2000 characters.
MAX_MESSAGE = 2000


def _clip(text: str) -> str:
    if len(text) > MAX_MESSAGE:
        return text[: MAX_MESSAGE - 3] + "..."
    return text


def format_news_message(articles: Sequence[Article], limit: int = 3) -> str:
    if not articles:
        return "No new articles found."
    lines = [f"📰 Latest {min(limit, len(articles))} articles", ""]
    for item in articles[:limit]:
        lines.append(f"**{item.title}**")
        lines.append(f"*{item.feed_title} - {item.published_at.strftime('%Y-%m-%d %H:%M')}*")
        if item.link:
            lines.append(f"<{item.link}>")
        lines.append("")
    return _clip("\n".join(lines).rstrip())


def format_trends_message(topics: Sequence[TrendTopic], stories: Sequence[StoryCluster], keywords: int = 10) -> str:
    if not topics and not stories:
        return "Not enough articles to compute trends yet."
    lines: List[str] = []
    if topics:
        lines.append("📈 Top keywords: " + ", ".join(f"{t.keyword} ({t.count})" for t in topics[:keywords]))
    for story in stories:
        lines.append("")
        lines.append(f"🔥 **{story.lead.title}**")
        lines.append(f"{story.related_count} related articles from {', '.join(story.sources)}")
        if story.lead.link:
            lines.append(f"<{story.lead.link}>")
    return _clip("\n".join(lines))


def format_brief_message(report: Sequence[dict]) -> str:
    if not report:
        return "The briefing came back empty."
    lines = ["🧠 Daily briefing", ""]
    for topic in report:
        lines.append(f"**{topic['mainTopic']}**: {topic['description']}")
        themes = topic.get("keyThemes") or []
        if themes:
            lines.append(" ".join(f"#{t}" for t in themes))
        lines.append("")
    return _clip("\n".join(lines).rstrip())


async def brief_message(articles: Sequence[Article], insight_factory: Callable[[], InsightClient] = InsightClient) -> str:
    """Run the model trend report off the event loop and format the reply."""
    def report() -> List[dict]:
        return insight_factory().trend_report(headline_titles(articles))

    try:
        result = await asyncio.to_thread(report)
    except (InsightError, RuntimeError) as e:
        logger.error("Briefing failed: %s", e)
        return "Could not generate the briefing right now."
    return format_brief_message(result)


def create_client(store: FeedStore, settings: Settings) -> discord.Client:
    intents = discord.Intents.default()
    intents.message_content = True  # needed to read command text

    client = discord.Client(intents=intents)

    async def load_articles() -> List[Article]:
        return await FeedAggregator(settings=settings).collect(store.feeds())

    @client.event
    async def on_ready():
        logger.info("Logged in as %s", client.user)

    @client.event
    async def on_message(message):
        if message.author == client.user:
            return

        content = message.content.strip()
        if not content.startswith(("!news", "!trends", "!brief")):
            return

        await message.channel.send("Fetching feeds... this can take a few seconds.")
        articles = await load_articles()

        if content.startswith("!news"):
            await message.channel.send(format_news_message(articles))
        elif content.startswith("!trends"):
            topics = compute_keyword_trends(articles, settings)
            stories = compute_trending_stories(articles, settings)
            await message.channel.send(format_trends_message(topics, stories))
        else:
            await message.channel.send(await brief_message(articles))

    return client


def main() -> None:
    load_dotenv()
    setup_logging()

    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        raise ValueError("DISCORD_BOT_TOKEN is not set. Check your .env file.")

    store = FeedStore(os.getenv("FEED_PULSE_FEEDS_FILE", "feeds.json"))
    create_client(store, Settings.from_env(dotenv=False)).run(token)


if __name__ == "__main__":
    main()
