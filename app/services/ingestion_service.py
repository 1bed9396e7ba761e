"""Daily RSS ingestion: feeds -> parse -> filter -> dedupe -> store -> classify."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select, text

from app.db.base import utcnow
from app.db.models.content import Content, ContentSource
from app.db.models.feed import Feed
from app.db.session import SessionFactory
from app.ingestion.feeds_loader import FeedConfig, FeedsLoader
from app.ingestion.metadata import RSSMetadata
from app.ingestion.rss_parser import (
    FeedParseResult,
    ParsedArticle,
    RSSParser,
    has_minimum_content,
    is_recent,
)
from app.ingestion.text_cleanup import clean_content_description
from app.services.classifier import ClassificationResult
from app.services.content_service import ContentDraft, ContentIngestor, ContentService

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Base error for ingestion runs that cannot start."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class DatabaseUnavailableError(IngestionError):
    def __init__(self, message: str = "Database is unreachable") -> None:
        super().__init__(message, "database_unavailable")


class FeedNotConfiguredError(IngestionError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Feed not found in configuration: {url}", "feed_not_configured")


@dataclass
class IngestionRunResult:
    feeds_processed: int = 0
    feeds_failed: int = 0
    articles_found: int = 0
    articles_stored: int = 0
    articles_skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class IngestionStats:
    total_feeds: int
    active_feeds: int
    total_content: int
    recent_content: int
    last_ingestion: datetime | None


def article_to_draft(
    article: ParsedArticle, feed: Feed | None, feed_name: str | None
) -> ContentDraft:
    feed_id = feed.id if feed is not None else None
    return ContentDraft(
        title=article.title,
        url=article.url,
        source=ContentSource.RSS,
        description=clean_content_description(article.description),
        guid=article.guid,
        published_at=article.published_at,
        author=article.author,
        full_content=article.content or None,
        image_url=article.image_url,
        feed_id=feed_id,
        categories=tuple(article.categories),
        metadata=RSSMetadata(
            feed_id=feed_id,
            feed_name=feed_name,
            author=article.author,
            categories=list(article.categories),
        ),
    )


class IngestionService:
    def __init__(
        self,
        session_maker: SessionFactory,
        loader: FeedsLoader,
        parser: RSSParser,
        ingestor: ContentIngestor,
        *,
        reload_minutes: int = 30,
        concurrency: int = 5,
        batch_delay_seconds: float = 1.0,
        max_age_days: int = 7,
        min_content_length: int = 50,
        batch_size: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_maker = session_maker
        self.loader = loader
        self.parser = parser
        self.ingestor = ingestor
        self.reload_minutes = reload_minutes
        self.concurrency = concurrency
        self.batch_delay_seconds = batch_delay_seconds
        self.max_age_days = max_age_days
        self.min_content_length = min_content_length
        self.batch_size = batch_size
        self._clock = clock

    async def _ping(self) -> None:
        try:
            async with self._session_maker() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            raise DatabaseUnavailableError(f"Database is unreachable: {e}") from e

    async def _sync_feeds(self, feeds: Sequence[FeedConfig]) -> dict[str, Feed]:
        async with self._session_maker() as session:
            rows = await self.loader.save_feeds(session, feeds)
            await session.commit()
            return rows

    async def run_daily_ingestion(self) -> IngestionRunResult:
        """Run the full pipeline over every configured feed."""
        await self._ping()
        feeds = self.loader.reload_if_stale(self.reload_minutes)
        logger.info(f"Starting daily ingestion for {len(feeds)} feeds")
        return await self._ingest(feeds)

    async def ingest_single_feed(self, url: str) -> IngestionRunResult:
        await self._ping()
        wanted = url.rstrip("/")
        config = next(
            (feed for feed in self.loader.get_feeds() if feed.url_str.rstrip("/") == wanted),
            None,
        )
        if config is None:
            raise FeedNotConfiguredError(url)
        return await self._ingest([config])

    async def _ingest(self, feeds: Sequence[FeedConfig]) -> IngestionRunResult:
        run = IngestionRunResult()
        feed_rows = await self._sync_feeds(feeds)
        results = await self.parser.parse_feeds(
            feeds, concurrency=self.concurrency, delay_seconds=self.batch_delay_seconds
        )
        fetched_at = self._clock()

        for result in results:
            feed = feed_rows.get(result.feed_url)
            if not result.ok:
                run.feeds_failed += 1
                run.errors.append(f"{result.feed_name or result.feed_url}: {result.error}")
            else:
                run.feeds_processed += 1
                await self._process_feed(result, feed, run)
            await self._record_fetch(result, fetched_at)

        logger.info(
            "Daily ingestion finished",
            extra={
                "feeds_processed": run.feeds_processed,
                "feeds_failed": run.feeds_failed,
                "articles_stored": run.articles_stored,
                "articles_skipped": run.articles_skipped,
            },
        )
        return run

    def _eligible(self, articles: Sequence[ParsedArticle]) -> list[ParsedArticle]:
        now = self._clock()
        return [
            article
            for article in articles
            if is_recent(article, self.max_age_days, now=now)
            and has_minimum_content(article, self.min_content_length)
        ]

    async def _process_feed(
        self, result: FeedParseResult, feed: Feed | None, run: IngestionRunResult
    ) -> None:
        run.articles_found += len(result.articles)
        eligible = self._eligible(result.articles)
        run.articles_skipped += len(result.articles) - len(eligible)

        for start in range(0, len(eligible), self.batch_size):
            batch = eligible[start : start + self.batch_size]
            drafts = [article_to_draft(article, feed, result.feed_name) for article in batch]
            await self._process_batch(drafts, run)

    async def _process_batch(self, drafts: Sequence[ContentDraft], run: IngestionRunResult) -> None:
        async with self._session_maker() as session:
            fresh: list[ContentDraft] = []
            for draft in drafts:
                if await ContentService(session).find_duplicate(draft.url, draft.guid) is None:
                    fresh.append(draft)
                else:
                    run.articles_skipped += 1
            if not fresh:
                return
            await self.ingestor.classifier.prepare(session)

        classifications: list[ClassificationResult | None]
        try:
            classifications = await self.ingestor.classifier.classify_articles(
                [draft.article_text() for draft in fresh]
            )
        except Exception as e:
            logger.warning(f"Batch classification failed, using keyword rules: {e}")
            classifications = [None] * len(fresh)

        async with self._session_maker() as session:
            for draft, classification in zip(fresh, classifications, strict=True):
                try:
                    content = await self.ingestor.store_new(session, draft)
                    if content is None:
                        run.articles_skipped += 1
                        continue
                    await self.ingestor.attach_classification(
                        session, content.id, draft, classification
                    )
                    await session.commit()
                    run.articles_stored += 1
                except Exception as e:
                    await session.rollback()
                    logger.error(f"Failed to store article '{draft.title}': {e}")
                    run.errors.append(f"{draft.url}: {e}")

    async def _record_fetch(self, result: FeedParseResult, fetched_at: datetime) -> None:
        async with self._session_maker() as session:
            feed = (
                await session.execute(select(Feed).where(Feed.url == result.feed_url))
            ).scalar_one_or_none()
            if feed is None:
                return
            feed.last_fetched = fetched_at
            feed.last_error = result.error
            await session.commit()

    async def get_ingestion_stats(self) -> IngestionStats:
        since = self._clock() - timedelta(hours=24)
        async with self._session_maker() as session:
            total_feeds = await session.scalar(select(func.count()).select_from(Feed))
            active_feeds = await session.scalar(
                select(func.count()).select_from(Feed).where(Feed.is_active.is_(True))
            )
            total_content = await session.scalar(select(func.count()).select_from(Content))
            recent_content = await session.scalar(
                select(func.count()).select_from(Content).where(Content.created_at >= since)
            )
            last_ingestion = await session.scalar(select(func.max(Feed.last_fetched)))
        return IngestionStats(
            total_feeds=total_feeds or 0,
            active_feeds=active_feeds or 0,
            total_content=total_content or 0,
            recent_content=recent_content or 0,
            last_ingestion=last_ingestion,
        )
