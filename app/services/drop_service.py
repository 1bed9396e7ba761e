"""Daily drop persistence and the queries behind drop generation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.base import start_of_utc_day
from app.db.models.content import Content, ContentStatus, ContentTopic
from app.db.models.daily_drop import DailyDrop
from app.db.models.user_preference import UserPreference


@dataclass(frozen=True)
class ContentMatch:
    content_id: str
    source: str
    score: float


@dataclass(frozen=True)
class PlannedDrop:
    content_id: str
    match_score: float


@dataclass
class DailyDropStats:
    total_drops_today: int
    average_score: float
    top_sources: list[tuple[str, int]]


class DropService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user_daily_drops(
        self, user_id: str, day: datetime | None = None
    ) -> list[DailyDrop]:
        """Drops for the UTC day containing ``day`` (default today), best match first."""
        start = start_of_utc_day(day)
        result = await self._session.execute(
            select(DailyDrop)
            .where(
                DailyDrop.user_id == user_id,
                DailyDrop.drop_date >= start,
                DailyDrop.drop_date < start + timedelta(days=1),
            )
            .options(
                selectinload(DailyDrop.content)
                .selectinload(Content.topics)
                .selectinload(ContentTopic.topic)
            )
            .order_by(DailyDrop.match_score.desc())
        )
        return list(result.scalars().all())

    async def count_user_drops(self, user_id: str, day: datetime | None = None) -> int:
        start = start_of_utc_day(day)
        total = await self._session.scalar(
            select(func.count())
            .select_from(DailyDrop)
            .where(
                DailyDrop.user_id == user_id,
                DailyDrop.drop_date >= start,
                DailyDrop.drop_date < start + timedelta(days=1),
            )
        )
        return total or 0

    async def _latest_drop(self, user_id: str, content_id: str) -> DailyDrop | None:
        result = await self._session.execute(
            select(DailyDrop)
            .where(DailyDrop.user_id == user_id, DailyDrop.content_id == content_id)
            .order_by(DailyDrop.drop_date.desc(), DailyDrop.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def mark_viewed(self, user_id: str, content_id: str) -> DailyDrop | None:
        drop = await self._latest_drop(user_id, content_id)
        if drop is None:
            return None
        if not drop.was_viewed:
            drop.was_viewed = True
            content = await self._session.get(Content, content_id)
            if content is not None:
                content.view_count = (content.view_count or 0) + 1
        await self._session.flush()
        return drop

    async def toggle_bookmark(self, user_id: str, content_id: str) -> DailyDrop | None:
        """Flip the bookmark flag; bookmarking also protects the content from cleanup."""
        drop = await self._latest_drop(user_id, content_id)
        if drop is None:
            return None
        drop.was_bookmarked = not drop.was_bookmarked
        if drop.was_bookmarked:
            content = await self._session.get(Content, content_id)
            if content is not None:
                content.is_saved = True
        await self._session.flush()
        return drop

    async def get_bookmarked_drops(self, user_id: str) -> list[DailyDrop]:
        """Most recent bookmarked drop per content item, newest first."""
        result = await self._session.execute(
            select(DailyDrop)
            .where(DailyDrop.user_id == user_id, DailyDrop.was_bookmarked.is_(True))
            .options(
                selectinload(DailyDrop.content)
                .selectinload(Content.topics)
                .selectinload(ContentTopic.topic)
            )
            .order_by(DailyDrop.drop_date.desc())
        )
        drops: dict[str, DailyDrop] = {}
        for drop in result.scalars():
            drops.setdefault(drop.content_id, drop)
        return list(drops.values())

    async def find_candidates(
        self, user_id: str, created_since: datetime, history_since: datetime, limit: int
    ) -> list[ContentMatch]:
        """Score recent approved content by ``confidence x weight``, max over shared topics.

        Content dropped to the user since ``history_since`` is excluded.
        """
        recently_dropped = select(DailyDrop.content_id).where(
            DailyDrop.user_id == user_id, DailyDrop.drop_date >= history_since
        )
        score = func.max(ContentTopic.confidence * UserPreference.weight).label("score")
        stmt = (
            select(Content.id, Content.source, score)
            .join(ContentTopic, ContentTopic.content_id == Content.id)
            .join(UserPreference, UserPreference.topic_id == ContentTopic.topic_id)
            .where(
                UserPreference.user_id == user_id,
                Content.status == ContentStatus.APPROVED,
                Content.created_at >= created_since,
                Content.id.not_in(recently_dropped),
            )
            .group_by(Content.id, Content.source)
            .order_by(score.desc(), Content.id)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).all()
        return [ContentMatch(content_id=row[0], source=row[1], score=float(row[2])) for row in rows]

    async def store_drops(
        self, user_id: str, drops: Sequence[PlannedDrop], drop_date: datetime
    ) -> list[DailyDrop]:
        """Insert drops for ``drop_date``, skipping (user, content, day) rows that exist."""
        if not drops:
            return []
        existing = set(
            (
                await self._session.execute(
                    select(DailyDrop.content_id).where(
                        DailyDrop.user_id == user_id,
                        DailyDrop.drop_date == drop_date,
                        DailyDrop.content_id.in_([drop.content_id for drop in drops]),
                    )
                )
            ).scalars()
        )
        rows = [
            DailyDrop(
                user_id=user_id,
                content_id=drop.content_id,
                drop_date=drop_date,
                match_score=drop.match_score,
                was_viewed=False,
                was_bookmarked=False,
            )
            for drop in drops
            if drop.content_id not in existing
        ]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def get_stats(self, day: datetime | None = None) -> DailyDropStats:
        start = start_of_utc_day(day)
        end = start + timedelta(days=1)
        in_day = (DailyDrop.drop_date >= start, DailyDrop.drop_date < end)

        total = await self._session.scalar(
            select(func.count()).select_from(DailyDrop).where(*in_day)
        )
        average = await self._session.scalar(select(func.avg(DailyDrop.match_score)).where(*in_day))
        source_count = func.count(DailyDrop.id).label("drops")
        top_sources = (
            await self._session.execute(
                select(Content.source, source_count)
                .join(Content, Content.id == DailyDrop.content_id)
                .where(*in_day)
                .group_by(Content.source)
                .order_by(source_count.desc())
                .limit(5)
            )
        ).all()
        return DailyDropStats(
            total_drops_today=total or 0,
            average_score=round(float(average or 0.0), 4),
            top_sources=[(row[0], int(row[1])) for row in top_sources],
        )
