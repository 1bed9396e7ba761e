"""Daily drop generation: score matching content per user, pick a diverse few, deliver."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Final

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import start_of_utc_day, utcnow
from app.db.models.content import ContentSource
from app.db.models.daily_drop import DailyDrop
from app.db.models.user import User
from app.db.session import SessionFactory
from app.services.drop_service import ContentMatch, DailyDropStats, DropService, PlannedDrop
from app.services.email_service import EmailService
from app.services.preference_service import PreferenceService

logger = logging.getLogger(__name__)

PRIORITY_SOURCE: Final[str] = ContentSource.YOUTUBE.value
CANDIDATE_MULTIPLIER: Final[int] = 3


@dataclass
class DailyDropRunResult:
    users_processed: int = 0
    drops_created: int = 0
    emails_sent: int = 0
    errors: list[str] = field(default_factory=list)


def select_diverse_content(matches: Sequence[ContentMatch], max_items: int) -> list[ContentMatch]:
    """Pick up to ``max_items`` matches, best first, spread across sources.

    The best YouTube match always takes the first slot when there is one.
    After that one match per source that has not been used yet, then the
    remaining slots go to the highest scores regardless of source.
    """
    if max_items <= 0:
        return []
    ranked = sorted(matches, key=lambda match: match.score, reverse=True)
    priority = next((match for match in ranked if match.source == PRIORITY_SOURCE), None)

    if len(ranked) <= max_items:
        if priority is None:
            return ranked
        return [priority, *(match for match in ranked if match is not priority)]

    selected: list[ContentMatch] = []
    used_sources: set[str] = set()
    if priority is not None:
        selected.append(priority)
        used_sources.add(priority.source)

    for match in ranked:
        if len(selected) >= max_items:
            break
        if match.source not in used_sources and match not in selected:
            selected.append(match)
            used_sources.add(match.source)

    for match in ranked:
        if len(selected) >= max_items:
            break
        if match not in selected:
            selected.append(match)

    return selected


class DailyDropService:
    def __init__(
        self,
        session_maker: SessionFactory,
        email_service: EmailService,
        *,
        max_items: int = 3,
        lookback_days: int = 7,
        history_days: int = 30,
        embedding_dimensions: int = 1536,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_maker = session_maker
        self.email_service = email_service
        self.max_items = max_items
        self.lookback_days = lookback_days
        self.history_days = history_days
        self.embedding_dimensions = embedding_dimensions
        self._clock = clock

    async def _plan(
        self, session: AsyncSession, user_id: str, max_items: int
    ) -> list[PlannedDrop]:
        profile = await PreferenceService(
            session, self.embedding_dimensions
        ).get_or_build_profile_vector(user_id)
        if profile is None:
            logger.info(f"User {user_id} has no preferences; no daily drop generated")
            return []

        now = self._clock()
        drops = DropService(session)
        remaining = max_items - await drops.count_user_drops(user_id, now)
        if remaining <= 0:
            logger.info(f"User {user_id} already has today's daily drop")
            return []
        candidates = await drops.find_candidates(
            user_id,
            created_since=now - timedelta(days=self.lookback_days),
            history_since=now - timedelta(days=self.history_days),
            limit=remaining * CANDIDATE_MULTIPLIER,
        )
        selected = select_diverse_content(candidates, remaining)
        return [PlannedDrop(match.content_id, match.score) for match in selected]

    async def generate_user_daily_drop(
        self, user_id: str, max_items: int | None = None
    ) -> list[PlannedDrop]:
        """Compute (without storing) the rest of today's drop for one user."""
        async with self._session_maker() as session:
            limit = self.max_items if max_items is None else max_items
            planned = await self._plan(session, user_id, limit)
            # The profile vector may have been built on the way.
            await session.commit()
        return planned

    async def store_daily_drops(
        self, user_id: str, drops: Sequence[PlannedDrop]
    ) -> list[DailyDrop]:
        drop_date = start_of_utc_day(self._clock())
        async with self._session_maker() as session:
            rows = await DropService(session).store_drops(user_id, drops, drop_date)
            await session.commit()
        return rows

    async def generate_drops_for_user(self, user_id: str) -> list[DailyDrop]:
        planned = await self.generate_user_daily_drop(user_id)
        if not planned:
            return []
        stored = await self.store_daily_drops(user_id, planned)
        logger.info(
            f"Stored {len(stored)} daily drops for user {user_id}",
            extra={"user_id": user_id, "planned": len(planned)},
        )
        return stored

    async def _onboarded_user_ids(self) -> list[str]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(User.id).where(User.is_onboarded.is_(True)).order_by(User.created_at)
            )
            return list(result.scalars().all())

    async def _send_email(self, user_id: str) -> bool:
        async with self._session_maker() as session:
            user = await session.get(User, user_id)
            if user is None:
                return False
            drops = await DropService(session).get_user_daily_drops(user_id, self._clock())
            return await self.email_service.send_daily_drop_email(user, drops)

    async def generate_and_send_daily_drops(self) -> DailyDropRunResult:
        """Generate, store and email today's drop for every onboarded user.

        Failures are recorded per user and never stop the run.
        """
        run = DailyDropRunResult()
        user_ids = await self._onboarded_user_ids()
        logger.info(f"Generating daily drops for {len(user_ids)} users")

        for user_id in user_ids:
            run.users_processed += 1
            try:
                stored = await self.generate_drops_for_user(user_id)
            except Exception as e:
                logger.error(f"Daily drop generation failed for user {user_id}: {e}")
                run.errors.append(f"{user_id}: {e}")
                continue
            run.drops_created += len(stored)
            if not stored:
                continue
            try:
                if await self._send_email(user_id):
                    run.emails_sent += 1
            except Exception as e:
                logger.error(f"Daily drop email failed for user {user_id}: {e}")
                run.errors.append(f"{user_id}: email failed: {e}")

        logger.info(
            "Daily drop run finished",
            extra={
                "users_processed": run.users_processed,
                "drops_created": run.drops_created,
                "emails_sent": run.emails_sent,
                "error_count": len(run.errors),
            },
        )
        return run

    async def get_daily_drop_stats(self) -> DailyDropStats:
        async with self._session_maker() as session:
            return await DropService(session).get_stats(self._clock())
