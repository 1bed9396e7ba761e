"""Retention cleanup for old content and the storage report that drives it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from sqlalchemy import ColumnElement, delete, func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import utcnow
from app.db.models.content import Content, ContentTopic
from app.db.models.daily_drop import DailyDrop
from app.db.models.user_submission import UserSubmission
from app.db.session import SessionFactory

logger = logging.getLogger(__name__)

URGENT_TOTAL_THRESHOLD = 50_000
RECOMMENDED_TOTAL_THRESHOLD = 20_000
RECOMMENDED_OLDER_THRESHOLD = 5_000


class CleanupLevel(StrEnum):
    STABLE = "stable"
    RECOMMENDED = "recommended"
    URGENT = "urgent"


@dataclass
class CleanupResult:
    deleted_count: int = 0
    retained_count: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class StorageStats:
    total_content: int
    last_7_days: int
    last_30_days: int
    last_90_days: int
    older_than_90_days: int
    table_size: str | None
    recommendation: str
    level: CleanupLevel


def recommend(total: int, older: int) -> tuple[CleanupLevel, str]:
    if total > URGENT_TOTAL_THRESHOLD:
        return CleanupLevel.URGENT, "Urgent cleanup recommended"
    if total > RECOMMENDED_TOTAL_THRESHOLD:
        return CleanupLevel.RECOMMENDED, "Cleanup recommended"
    if older > RECOMMENDED_OLDER_THRESHOLD:
        return CleanupLevel.RECOMMENDED, "Cleanup of old content recommended"
    return CleanupLevel.STABLE, "Storage is stable"


class ContentCleanupService:
    def __init__(
        self,
        session_maker: SessionFactory,
        *,
        retention_days: int = 90,
        batch_size: int = 1000,
        batch_pause_seconds: float = 0.1,
        schedule_total_threshold: int = 10_000,
        schedule_older_threshold: int = 2_000,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_maker = session_maker
        self.retention_days = retention_days
        self.batch_size = batch_size
        self.batch_pause_seconds = batch_pause_seconds
        self.schedule_total_threshold = schedule_total_threshold
        self.schedule_older_threshold = schedule_older_threshold
        self._clock = clock

    async def _delete_batch(self, ids: list[str]) -> None:
        async with self._session_maker() as session:
            try:
                await session.execute(delete(ContentTopic).where(ContentTopic.content_id.in_(ids)))
                await session.execute(delete(DailyDrop).where(DailyDrop.content_id.in_(ids)))
                await session.execute(
                    update(UserSubmission)
                    .where(UserSubmission.content_id.in_(ids))
                    .values(content_id=None)
                )
                await session.execute(delete(Content).where(Content.id.in_(ids)))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def cleanup_old_content(
        self,
        retention_days: int | None = None,
        batch_size: int | None = None,
        keep_bookmarked: bool = True,
    ) -> CleanupResult:
        """Delete content created before the retention window, in batches.

        Saved content is kept when ``keep_bookmarked`` is set. A failing batch
        is recorded in ``errors`` and the run moves on to the next one.
        """
        if retention_days is None:
            retention_days = self.retention_days
        if batch_size is None:
            batch_size = self.batch_size
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        cutoff = self._clock() - timedelta(days=retention_days)
        result = CleanupResult()

        async with self._session_maker() as session:
            old = Content.created_at < cutoff
            ids = list((await session.execute(select(Content.id).where(old))).scalars())
            if keep_bookmarked:
                saved = set(
                    (
                        await session.execute(
                            select(Content.id).where(old, Content.is_saved.is_(True))
                        )
                    ).scalars()
                )
                result.retained_count = len(saved)
                ids = [content_id for content_id in ids if content_id not in saved]

        logger.info(
            f"Starting cleanup of content older than {cutoff.isoformat()}",
            extra={"candidates": len(ids), "retained": result.retained_count},
        )

        processed = 0
        while processed < len(ids):
            batch = ids[processed : processed + batch_size]
            try:
                await self._delete_batch(batch)
                result.deleted_count += len(batch)
            except Exception as e:
                logger.error(f"Cleanup batch at {processed} failed: {e}")
                result.errors.append(f"Batch error at {processed}: {e}")
            processed += len(batch)
            if processed < len(ids) and self.batch_pause_seconds > 0:
                await asyncio.sleep(self.batch_pause_seconds)

        logger.info(
            f"Cleanup completed: {result.deleted_count} items deleted",
            extra={"retained": result.retained_count, "error_count": len(result.errors)},
        )
        return result

    async def _table_size(self, session: AsyncSession) -> str | None:
        if session.get_bind().dialect.name != "postgresql":
            return None
        return await session.scalar(
            text("SELECT pg_size_pretty(pg_total_relation_size('content'))")
        )

    async def get_storage_stats(self) -> StorageStats:
        now = self._clock()

        def created_since(days: int) -> ColumnElement[int]:
            return func.count().filter(Content.created_at > now - timedelta(days=days))

        async with self._session_maker() as session:
            row = (
                await session.execute(
                    select(
                        func.count(),
                        created_since(7),
                        created_since(30),
                        created_since(90),
                        func.count().filter(Content.created_at <= now - timedelta(days=90)),
                    ).select_from(Content)
                )
            ).one()
            table_size = await self._table_size(session)

        total, last_7, last_30, last_90, older = (int(value or 0) for value in row)
        level, recommendation = recommend(total, older)
        return StorageStats(
            total_content=total,
            last_7_days=last_7,
            last_30_days=last_30,
            last_90_days=last_90,
            older_than_90_days=older,
            table_size=table_size,
            recommendation=recommendation,
            level=level,
        )

    async def schedule_cleanup(self) -> CleanupResult | None:
        """Run a cleanup only when storage has grown past the thresholds."""
        stats = await self.get_storage_stats()
        if (
            stats.total_content > self.schedule_total_threshold
            or stats.older_than_90_days > self.schedule_older_threshold
        ):
            return await self.cleanup_old_content()
        logger.info(
            "No cleanup needed",
            extra={"total_content": stats.total_content, "older": stats.older_than_90_days},
        )
        return None
