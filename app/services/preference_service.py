"""User topic preferences and the aggregated profile vector."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.topics import topic_embedding_text
from app.db.models.topic import Topic
from app.db.models.user import User
from app.db.models.user_preference import UserPreference
from app.db.models.user_profile_vector import UserProfileVector
from app.services.vectors import DEFAULT_DIMENSIONS, pseudo_embedding, weighted_average

logger = logging.getLogger(__name__)


class PreferenceError(Exception):
    """Base error for preference updates."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class UnknownTopicError(PreferenceError):
    def __init__(self, topic_ids: list[str]) -> None:
        super().__init__(f"Unknown topic ids: {', '.join(sorted(topic_ids))}", "unknown_topic")
        self.topic_ids = topic_ids


class UserNotFoundError(PreferenceError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found", "user_not_found")


class PreferenceService:
    def __init__(
        self, session: AsyncSession, embedding_dimensions: int = DEFAULT_DIMENSIONS
    ) -> None:
        self._session = session
        self._embedding_dimensions = embedding_dimensions

    async def get_preferences(self, user_id: str) -> list[UserPreference]:
        result = await self._session.execute(
            select(UserPreference)
            .where(UserPreference.user_id == user_id)
            .options(selectinload(UserPreference.topic))
            .order_by(UserPreference.weight.desc())
        )
        return list(result.scalars().all())

    async def replace_preferences(
        self, user_id: str, weights: Mapping[str, float]
    ) -> list[UserPreference]:
        """Replace the full preference set of a user.

        The delete and the inserts share the caller's transaction, so a failure
        leaves the previous preferences untouched. An empty mapping clears all
        preferences.
        """
        user = await self._session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        if weights:
            known = set(
                (
                    await self._session.execute(
                        select(Topic.id).where(Topic.id.in_(list(weights)))
                    )
                ).scalars()
            )
            unknown = [topic_id for topic_id in weights if topic_id not in known]
            if unknown:
                raise UnknownTopicError(unknown)

        await self._session.execute(
            delete(UserPreference).where(UserPreference.user_id == user_id)
        )
        await self._session.execute(
            delete(UserProfileVector).where(UserProfileVector.user_id == user_id)
        )
        self._session.add_all(
            UserPreference(user_id=user_id, topic_id=topic_id, weight=weight)
            for topic_id, weight in weights.items()
        )
        user.is_onboarded = True
        await self._session.flush()
        logger.info(
            "Replaced user preferences", extra={"user_id": user_id, "topic_count": len(weights)}
        )
        return await self.get_preferences(user_id)

    async def get_or_build_profile_vector(self, user_id: str) -> list[float] | None:
        """Stored profile vector, or the weighted average of the user's topic embeddings."""
        stored = (
            await self._session.execute(
                select(UserProfileVector).where(UserProfileVector.user_id == user_id)
            )
        ).scalar_one_or_none()
        if stored is not None:
            return list(stored.embedding)

        preferences = await self.get_preferences(user_id)
        if not preferences:
            return None

        vectors: list[list[float]] = []
        for preference in preferences:
            topic = preference.topic
            if topic.embedding and len(topic.embedding) == self._embedding_dimensions:
                vectors.append(list(topic.embedding))
            else:
                text = topic_embedding_text(topic.name, topic.description)
                vectors.append(pseudo_embedding(text, self._embedding_dimensions))

        embedding = weighted_average(vectors, [preference.weight for preference in preferences])
        self._session.add(UserProfileVector(user_id=user_id, embedding=embedding))
        await self._session.flush()
        return embedding


def preference_service_factory_provider(
    embedding_dimensions: int = DEFAULT_DIMENSIONS,
) -> Callable[[AsyncSession], PreferenceService]:
    def factory(session: AsyncSession) -> PreferenceService:
        return PreferenceService(session, embedding_dimensions)

    return factory
