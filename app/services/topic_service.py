from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.topics import DEFAULT_TOPICS, TopicDefinition, topic_embedding_text
from app.db.models.topic import Topic
from app.llm.client import LLMClient, LLMServiceError

logger = logging.getLogger(__name__)


class TopicService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_topics(self) -> list[Topic]:
        result = await self._session.execute(select(Topic).order_by(Topic.name))
        return list(result.scalars().all())

    async def initialize_topics(
        self, catalogue: tuple[TopicDefinition, ...] = DEFAULT_TOPICS
    ) -> int:
        """Insert catalogue topics that do not exist yet; returns how many were added."""
        existing = set((await self._session.execute(select(Topic.name))).scalars().all())
        missing = [topic for topic in catalogue if topic.name not in existing]
        self._session.add_all(
            Topic(name=topic.name, description=topic.description) for topic in missing
        )
        await self._session.flush()
        if missing:
            logger.info(f"Seeded {len(missing)} topics")
        return len(missing)

    async def embed_missing_topics(self, llm_client: LLMClient) -> int:
        """Embed topics without an embedding; stops at the first LLM failure."""
        result = await self._session.execute(select(Topic).where(Topic.embedding.is_(None)))
        embedded = 0
        for topic in result.scalars().all():
            try:
                topic.embedding = await llm_client.create_embedding(
                    topic_embedding_text(topic.name, topic.description)
                )
            except LLMServiceError as e:
                logger.warning(f"Could not embed topic '{topic.name}': {e}")
                break
            embedded += 1
        await self._session.flush()
        return embedded
