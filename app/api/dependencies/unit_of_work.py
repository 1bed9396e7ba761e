"""Unit of Work: one transaction per request, session-scoped services from registry."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, cast

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session_maker
from app.ingestion.feeds_loader import FeedsLoader
from app.services.auth_service import AuthService
from app.services.cleanup_service import ContentCleanupService
from app.services.content_service import ContentService
from app.services.daily_drop_service import DailyDropService
from app.services.drop_service import DropService
from app.services.ingestion_service import IngestionService
from app.services.preference_service import PreferenceService
from app.services.social_media_service import SocialMediaService
from app.services.stats_service import StatsService
from app.services.submission_service import SubmissionService
from app.services.topic_service import TopicService


class UnitOfWork:
    """Holds the request's session and exposes session-scoped services from the registry.

    Registry entries that are callable are factories taking the session;
    anything else is a shared instance (pipeline services that open their
    own sessions) and is returned as is.
    """

    def __init__(self, session: AsyncSession, services: Mapping[str, Any]) -> None:
        self._session = session
        self._services = services
        self._resolved: dict[str, Any] = {}

    @property
    def session(self) -> AsyncSession:
        return self._session

    def _resolve(self, key: str) -> Any:
        if key not in self._resolved:
            service = self._services[key]
            self._resolved[key] = service(self._session) if callable(service) else service
        return self._resolved[key]

    @property
    def auth_service(self) -> AuthService:
        return cast(AuthService, self._resolve("auth_service"))

    @property
    def topic_service(self) -> TopicService:
        return cast(TopicService, self._resolve("topic_service"))

    @property
    def preference_service(self) -> PreferenceService:
        return cast(PreferenceService, self._resolve("preference_service"))

    @property
    def content_service(self) -> ContentService:
        return cast(ContentService, self._resolve("content_service"))

    @property
    def drop_service(self) -> DropService:
        return cast(DropService, self._resolve("drop_service"))

    @property
    def submission_service(self) -> SubmissionService:
        return cast(SubmissionService, self._resolve("submission_service"))

    @property
    def social_media_service(self) -> SocialMediaService:
        return cast(SocialMediaService, self._resolve("social_media_service"))

    @property
    def stats_service(self) -> StatsService:
        return cast(StatsService, self._resolve("stats_service"))

    @property
    def ingestion_service(self) -> IngestionService:
        return cast(IngestionService, self._resolve("ingestion_service"))

    @property
    def daily_drop_service(self) -> DailyDropService:
        return cast(DailyDropService, self._resolve("daily_drop_service"))

    @property
    def cleanup_service(self) -> ContentCleanupService:
        return cast(ContentCleanupService, self._resolve("cleanup_service"))

    @property
    def feeds_loader(self) -> FeedsLoader:
        return cast(FeedsLoader, self._resolve("feeds_loader"))


async def get_uow(request: Request) -> AsyncIterator[UnitOfWork]:
    """Per-request dependency: one session, commit on success, rollback on exception."""
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield UnitOfWork(session, request.app.state.services)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
