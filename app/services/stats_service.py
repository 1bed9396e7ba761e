from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.content import Content
from app.db.models.daily_drop import DailyDrop
from app.db.models.user import User
from app.db.models.user_submission import SubmissionStatus, UserSubmission


@dataclass
class SystemStats:
    total_content: int
    pending_submissions: int
    active_users: int
    daily_matches: int


class StatsService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _count(self, model: type, *conditions: object) -> int:
        stmt = select(func.count()).select_from(model)
        if conditions:
            stmt = stmt.where(*conditions)  # type: ignore[arg-type]
        return await self._session.scalar(stmt) or 0

    async def get_system_stats(self) -> SystemStats:
        """Headline counts for the admin dashboard; active users are onboarded users."""
        return SystemStats(
            total_content=await self._count(Content),
            pending_submissions=await self._count(
                UserSubmission, UserSubmission.status == SubmissionStatus.PENDING.value
            ),
            active_users=await self._count(User, User.is_onboarded.is_(True)),
            daily_matches=await self._count(DailyDrop),
        )
