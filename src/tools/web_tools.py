"""Web research tools: Google search and webpage reading."""

from __future__ import annotations

import logging
import re
import unicodedata

import httpx
from bs4 import BeautifulSoup
from pydantic import Field

from src.tools.base import BaseTool, ToolParams

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
MAX_SEARCH_RESULTS = 7
MAX_PAGE_LENGTH = 15000
TRIM_MARKER = "... (content trimmed)"
DEFAULT_USER_AGENT = "YuzuBot/1.0 (Slack persona)"
HTTP_TIMEOUT = 20

_KEEP_EXTRA = {"^", "$", "\n"}
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_text(text: str) -> str:
    """Keep letters, numbers, punctuation and separators; drop symbols and controls.

    Emoji and other symbol characters in search snippets can trip
    downstream content filters.
    """
    kept = (
        ch for ch in text if ch in _KEEP_EXTRA or unicodedata.category(ch)[0] in "LNPZ"
    )
    return "".join(kept).strip()


def extract_visible_text(html: str) -> str:
    """Strip scripts, styles and tags; collapse whitespace."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return _WHITESPACE_RE.sub(" ", soup.get_text(" ")).strip()


class SearchParams(ToolParams):
    query: str = Field(description="The search query to look up on Google.")


class SearchTool(BaseTool):
    name = "searchGoogle"
    description = (
        "Searches Google for recent and up-to-date information. Use for questions "
        "about current events, facts, or things not in your base knowledge."
    )
    category = "research"
    params_model = SearchParams

    def __init__(self, api_key: str, engine_id: str) -> None:
        self._api_key = api_key
        self._engine_id = engine_id

    async def execute(self, query: str) -> str:
        if not self._api_key or not self._engine_id:
            logger.error("Google Search API key or engine ID is missing")
            return (
                "My search engine's unplugged. Looks like someone forgot to set up "
                "the API keys. Can't look anything up without 'em."
            )

        params = {"key": self._api_key, "cx": self._engine_id, "q": query, "sort": "date"}
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                resp = await client.get(GOOGLE_SEARCH_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Google search for %r failed: %s", query, exc)
            return (
                "Tried to search the web, but the connection fizzled out. "
                "Annoying. The net's probably acting up again."
            )

        items = data.get("items") or []
        if not items:
            return f"No relevant search results found for the query: {query}"

        lines = ["Search Results (sorted by most recent within the last year):"]
        for item in items[:MAX_SEARCH_RESULTS]:
            lines.append(f"- Title: {sanitize_text(item.get('title', ''))}")
            lines.append(f"  Snippet: {sanitize_text(item.get('snippet', ''))}")
            lines.append(f"  Link: {item.get('link', '')}")
        return "\n".join(lines)


class ReadPageParams(ToolParams):
    url: str = Field(description="The full URL of the webpage to read.")


class ReadPageTool(BaseTool):
    name = "readWebpage"
    description = (
        "Reads the text content of a given webpage URL. Use this after "
        "'searchGoogle' to get more detail from a promising link."
    )
    category = "research"
    params_model = ReadPageParams

    async def execute(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=HTTP_TIMEOUT,
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
                max_redirects=5,
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch %s: %s", url, exc)
            return "I got to the site, but the text is all scrambled garbage I can't read. What a mess."

        if resp.status_code != 200:
            return (
                "Tried to read that page, but it slammed the door in my face. "
                f"Got a {resp.status_code} error."
            )

        text = extract_visible_text(resp.text)
        if len(text) > MAX_PAGE_LENGTH:
            text = text[:MAX_PAGE_LENGTH] + TRIM_MARKER
        return text
