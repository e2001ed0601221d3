"""Daily arcade news briefing posted to a Slack channel."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from src.notifications.channels import ChatChannel

logger = logging.getLogger(__name__)

RSS1_NAMESPACE = "http://purl.org/rss/1.0/"
MAX_ARTICLES = 5
HTTP_TIMEOUT = 20
FEED_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

BRIEFING_HEADER = (
    "*Today's Arcade Scoop* :newspaper:\n\n"
    "Got the latest arcade intel fresh off the wire for ya:\n"
)
NO_NEWS_MESSAGE = (
    "Heh, tried to get the news, but the data stream is dead. Couldn't fetch any articles."
)


@dataclass(frozen=True)
class Article:
    title: str
    link: str


def parse_feed(xml_text: str | bytes, limit: int = MAX_ARTICLES) -> list[Article]:
    """Extract up to *limit* articles from an RSS 2.0 or RSS 1.0 (RDF) document."""
    root = ET.fromstring(xml_text)  # noqa: S314

    # RSS 2.0: <rss><channel><item>
    items = root.findall("channel/item")
    ns = ""
    if not items:
        # RSS 1.0: items are children of the root in the RSS namespace.
        ns = f"{{{RSS1_NAMESPACE}}}"
        items = root.findall(f"{ns}item")
    if not items:
        return []

    articles: list[Article] = []
    for item in items[:limit]:
        title = (item.findtext(f"{ns}title") or "").strip()
        link = (item.findtext(f"{ns}link") or "").strip()
        if title and link:
            articles.append(Article(title=title, link=link))
    return articles


async def fetch_news(feed_url: str, limit: int = MAX_ARTICLES) -> list[Article]:
    """Download and parse *feed_url*. Returns ``[]`` on any failure."""
    try:
        async with httpx.AsyncClient(
            timeout=HTTP_TIMEOUT,
            follow_redirects=True,
            headers={"User-Agent": FEED_USER_AGENT},
        ) as client:
            resp = await client.get(feed_url)
        resp.raise_for_status()
        articles = parse_feed(resp.content, limit)
    except (httpx.HTTPError, ET.ParseError) as exc:
        logger.error("Failed to fetch or parse RSS feed %s: %s", feed_url, exc)
        return []

    if not articles:
        logger.warning("Could not find any <item> tags in the RSS feed: %s", feed_url)
    return articles


def format_briefing(articles: list[Article]) -> str:
    if not articles:
        return NO_NEWS_MESSAGE
    lines = "".join(f"• <{a.link}|{a.title}>\n" for a in articles)
    return BRIEFING_HEADER + lines


async def send_daily_briefing(chat: ChatChannel, channel_id: str, feed_url: str) -> bool:
    """Fetch the feed and post the briefing. Returns True if something was posted."""
    if not channel_id:
        logger.error("BRIEFING_CHANNEL_ID is not set. Aborting briefing.")
        return False

    articles = await fetch_news(feed_url)
    logger.info("Posting news briefing with %d article(s)", len(articles))
    return await chat.post_message(channel_id, format_briefing(articles))
