"""Fetch RSS/Atom feeds and normalize their items into ``ParsedArticle`` records."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import feedparser
import httpx

from app.ingestion.feeds_loader import FeedConfig
from app.ingestion.text_cleanup import clean_text, first_image_src, strip_html

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "DropDaily/1.0 (Content Discovery Platform)"


@dataclass
class ParsedArticle:
    title: str
    url: str
    description: str = ""
    published_at: datetime | None = None
    guid: str | None = None
    author: str | None = None
    categories: list[str] = field(default_factory=list)
    content: str = ""
    image_url: str | None = None


@dataclass
class FeedParseResult:
    feed_url: str
    feed_name: str | None = None
    articles: list[ParsedArticle] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _struct_to_datetime(value: time.struct_time | None) -> datetime | None:
    if value is None:
        return None
    return datetime(*value[:6], tzinfo=UTC)


def _is_image_type(value: Any) -> bool:
    return isinstance(value, str) and value.lower().startswith("image/")


def _first_url(items: Any, key: str = "url", require_image_type: bool = False) -> str | None:
    for item in items or []:
        if require_image_type and not (
            _is_image_type(item.get("type")) or item.get("medium") == "image"
        ):
            continue
        url = item.get(key)
        if isinstance(url, str) and url.strip():
            return url.strip()
    return None


def _encoded_content(entry: Any) -> str:
    for part in entry.get("content") or []:
        value = part.get("value")
        if value:
            return str(value)
    return ""


def _extract_image(entry: Any, encoded: str) -> str | None:
    """First match wins: media namespaces, image enclosure, inline ``<img>``, image fields."""
    candidates = (
        lambda: _first_url(entry.get("media_content"), require_image_type=True),
        lambda: _first_url(entry.get("media_thumbnail")),
        lambda: _first_url(entry.get("enclosures"), key="href", require_image_type=True),
        lambda: first_image_src(encoded) or first_image_src(entry.get("summary")),
        lambda: _generic_image(entry.get("image")),
        lambda: _generic_image(entry.get("itunes_image")),
    )
    for candidate in candidates:
        url = candidate()
        if url:
            return url
    return None


def _generic_image(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if hasattr(value, "get"):
        for key in ("href", "url"):
            url = value.get(key)
            if isinstance(url, str) and url.strip():
                return url.strip()
    return None


def _categories(entry: Any) -> list[str]:
    categories: list[str] = []
    for tag in entry.get("tags") or []:
        if isinstance(tag, str):
            name = tag
        else:
            name = tag.get("term") or tag.get("label") or ""
        name = clean_text(name)
        if name and name not in categories:
            categories.append(name)
    return categories


def entry_to_article(entry: Any) -> ParsedArticle | None:
    """Map one feedparser entry to an article; ``None`` when title or link is missing."""
    title = strip_html(entry.get("title"))
    url = (entry.get("link") or "").strip()
    if not title or not url:
        return None

    encoded = _encoded_content(entry)
    content = strip_html(encoded)
    summary_html = entry.get("summary") or entry.get("description") or ""
    description = strip_html(summary_html) or content

    published = _struct_to_datetime(
        entry.get("published_parsed") or entry.get("updated_parsed")
    )
    author = clean_text(entry.get("author") or entry.get("dc_creator")) or None

    return ParsedArticle(
        title=title,
        url=url,
        description=description,
        published_at=published,
        guid=entry.get("id") or entry.get("guid") or None,
        author=author,
        categories=_categories(entry),
        content=content,
        image_url=_extract_image(entry, encoded),
    )


def is_recent(
    article: ParsedArticle, max_age_days: int = 7, now: datetime | None = None
) -> bool:
    """Undated articles count as recent."""
    if article.published_at is None:
        return True
    published = article.published_at
    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    return (now or datetime.now(UTC)) - published <= timedelta(days=max_age_days)


def has_minimum_content(article: ParsedArticle, min_length: int = 50) -> bool:
    return len(article.description) + len(article.content) >= min_length


class RSSParser:
    """Fetches feeds over HTTP and parses them with feedparser."""

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        response.raise_for_status()
        return response.content

    async def parse_feed(
        self,
        url: str,
        feed_name: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> FeedParseResult:
        """Fetch and parse a single feed; failures come back as ``FeedParseResult.error``."""
        try:
            if client is None:
                async with self._client() as own_client:
                    body = await self._fetch(own_client, url)
            else:
                body = await self._fetch(client, url)
        except httpx.HTTPStatusError as e:
            message = f"HTTP {e.response.status_code} fetching feed"
            logger.warning(f"Failed to fetch feed {url}: {message}")
            return FeedParseResult(feed_url=url, feed_name=feed_name, error=message)
        except httpx.HTTPError as e:
            message = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            logger.warning(f"Failed to fetch feed {url}: {message}")
            return FeedParseResult(feed_url=url, feed_name=feed_name, error=message)

        parsed = feedparser.parse(body)
        if parsed.get("bozo") and not parsed.entries:
            message = f"Unparseable feed: {parsed.get('bozo_exception')}"
            logger.warning(f"Failed to parse feed {url}: {message}")
            return FeedParseResult(feed_url=url, feed_name=feed_name, error=message)

        articles: list[ParsedArticle] = []
        dropped = 0
        for entry in parsed.entries:
            article = entry_to_article(entry)
            if article is None:
                dropped += 1
                continue
            articles.append(article)

        name = feed_name or strip_html(parsed.feed.get("title")) or None
        logger.info(
            f"Parsed {len(articles)} articles from {name or url}",
            extra={"feed_url": url, "dropped_items": dropped},
        )
        return FeedParseResult(feed_url=url, feed_name=name, articles=articles)

    async def parse_feeds(
        self,
        feeds: Sequence[FeedConfig],
        concurrency: int = 5,
        delay_seconds: float = 1.0,
    ) -> list[FeedParseResult]:
        """Parse feeds in batches of ``concurrency`` with a pause between batches."""
        results: list[FeedParseResult] = []
        async with self._client() as client:
            for start in range(0, len(feeds), concurrency):
                batch = feeds[start : start + concurrency]
                outcomes = await asyncio.gather(
                    *(self.parse_feed(feed.url_str, feed.name, client) for feed in batch),
                    return_exceptions=True,
                )
                for feed, outcome in zip(batch, outcomes, strict=True):
                    if isinstance(outcome, BaseException):
                        logger.error(f"Unexpected error parsing feed {feed.name}: {outcome}")
                        results.append(
                            FeedParseResult(
                                feed_url=feed.url_str, feed_name=feed.name, error=str(outcome)
                            )
                        )
                    else:
                        results.append(outcome)
                if start + concurrency < len(feeds) and delay_seconds > 0:
                    await asyncio.sleep(delay_seconds)
        return results
