"""Feed configuration: a JSON array of ``{name, url, tags}`` descriptors."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import utcnow
from app.db.models.feed import Feed

logger = logging.getLogger(__name__)


class FeedConfigError(Exception):
    """Raised when the feeds file cannot be read or fails validation."""

    error_code: str = "invalid_feed_config"

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or []


class FeedConfig(BaseModel):
    name: str = Field(..., min_length=1, description="Feed name is required")
    url: HttpUrl = Field(..., description="Must be a valid URL")
    tags: list[str] = Field(..., min_length=1, description="At least one tag is required")

    @property
    def url_str(self) -> str:
        return str(self.url)


_FEEDS_ADAPTER = TypeAdapter(list[FeedConfig])


def _validation_messages(error: ValidationError) -> list[str]:
    messages: list[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", []))
        messages.append(f"{location}: {item.get('msg', 'invalid value')}")
    return messages


class FeedsLoader:
    """Loads, validates and caches the configured feeds."""

    def __init__(
        self,
        path: str | Path = "feeds.json",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.path = Path(path)
        self._clock = clock
        self._feeds: list[FeedConfig] = []
        self.last_loaded: datetime | None = None

    def load_feeds(self) -> list[FeedConfig]:
        """Read and validate the feeds file, replacing the cached feeds."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise FeedConfigError(f"Feeds file not found: {self.path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise FeedConfigError(f"Feeds file could not be read: {e}") from e

        try:
            feeds = _FEEDS_ADAPTER.validate_python(raw)
        except ValidationError as e:
            problems = _validation_messages(e)
            logger.error("Feed validation failed", extra={"problems": problems})
            raise FeedConfigError(f"Feed validation failed: {', '.join(problems)}", problems) from e

        self._feeds = feeds
        self.last_loaded = self._clock()
        logger.info(f"Loaded {len(feeds)} feeds from {self.path}")
        return list(feeds)

    def get_feeds(self) -> list[FeedConfig]:
        if self.last_loaded is None:
            self.load_feeds()
        return list(self._feeds)

    def reload_if_stale(self, max_age_minutes: int = 60) -> list[FeedConfig]:
        if self.last_loaded is None or self._clock() - self.last_loaded > timedelta(
            minutes=max_age_minutes
        ):
            return self.load_feeds()
        return list(self._feeds)

    def get_feed_by_name(self, name: str) -> FeedConfig | None:
        return next((feed for feed in self._feeds if feed.name == name), None)

    def get_feeds_by_tag(self, tag: str) -> list[FeedConfig]:
        return [feed for feed in self._feeds if tag in feed.tags]

    async def save_feeds(
        self, session: AsyncSession, feeds: Sequence[FeedConfig] | None = None
    ) -> dict[str, Feed]:
        """Upsert feeds (default: every configured feed) by url; returns rows keyed by url."""
        saved: dict[str, Feed] = {}
        for config in feeds if feeds is not None else self.get_feeds():
            url = config.url_str
            result = await session.execute(select(Feed).where(Feed.url == url))
            feed = result.scalar_one_or_none()
            if feed is None:
                feed = Feed(name=config.name, url=url, tags=list(config.tags), is_active=True)
                session.add(feed)
                logger.info(f"Saved feed: {config.name}")
            else:
                feed.name = config.name
                feed.tags = list(config.tags)
                feed.is_active = True
            saved[url] = feed
        await session.flush()
        return saved
