"""Content storage: queries, dedup, and attaching classification results."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models.content import Content, ContentSource, ContentStatus, ContentTopic
from app.db.models.topic import Topic
from app.ingestion.metadata import ContentMetadata, dump_content_metadata
from app.services.classifier import ArticleText, ClassificationResult, Classifier

logger = logging.getLogger(__name__)

# Last-resort topics so every stored item can be matched to a preference.
GUARANTEED_TOPIC_RULES: tuple[tuple[re.Pattern[str], str, float], ...] = (
    (re.compile(r"\bai\b", re.IGNORECASE), "AI/ML", 0.8),
    (re.compile(r"\btech", re.IGNORECASE), "Engineering", 0.7),
    (re.compile(r"\bbusiness", re.IGNORECASE), "Business", 0.6),
)
GUARANTEED_DEFAULT_TOPIC: tuple[str, float] = ("Business", 0.5)


@dataclass
class ContentDraft:
    """A content item from any source, before it is stored."""

    title: str
    url: str
    source: ContentSource
    description: str = ""
    content_type: str = "article"
    status: ContentStatus = ContentStatus.APPROVED
    guid: str | None = None
    published_at: datetime | None = None
    author: str | None = None
    full_content: str | None = None
    transcript: str | None = None
    image_url: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = None
    feed_id: str | None = None
    categories: tuple[str, ...] = ()
    metadata: ContentMetadata | None = None

    def article_text(self) -> ArticleText:
        return ArticleText(
            title=self.title,
            description=self.description,
            categories=self.categories,
            content=self.full_content or self.transcript or "",
        )


def guaranteed_topic(text: str) -> tuple[str, float]:
    for pattern, topic, confidence in GUARANTEED_TOPIC_RULES:
        if pattern.search(text):
            return topic, confidence
    return GUARANTEED_DEFAULT_TOPIC


def _with_topics() -> tuple[object, ...]:
    return (selectinload(Content.topics).selectinload(ContentTopic.topic),)


class ContentService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_content(
        self, source: str | None = None, limit: int = 50, offset: int = 0
    ) -> list[Content]:
        stmt = (
            select(Content)
            .where(Content.status == ContentStatus.APPROVED)
            .options(*_with_topics())
            .order_by(Content.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if source:
            stmt = stmt.where(Content.source == source)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def search_content(self, query: str, limit: int = 50) -> list[Content]:
        pattern = f"%{query.strip()}%"
        stmt = (
            select(Content)
            .where(
                Content.status == ContentStatus.APPROVED,
                or_(Content.title.ilike(pattern), Content.description.ilike(pattern)),
            )
            .options(*_with_topics())
            .order_by(Content.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_content(self, content_id: str) -> Content | None:
        result = await self._session.execute(
            select(Content).where(Content.id == content_id).options(*_with_topics())
        )
        return result.scalar_one_or_none()

    async def find_duplicate(self, url: str, guid: str | None = None) -> Content | None:
        condition = Content.url == url
        if guid:
            condition = or_(condition, Content.guid == guid)
        result = await self._session.execute(select(Content).where(condition).limit(1))
        return result.scalars().first()

    async def create_content(self, draft: ContentDraft) -> Content:
        content = Content(
            title=draft.title,
            description=draft.description or None,
            url=draft.url,
            guid=draft.guid,
            source=draft.source.value,
            content_type=draft.content_type,
            status=draft.status,
            published_at=draft.published_at,
            author=draft.author,
            full_content=draft.full_content,
            transcript=draft.transcript,
            image_url=draft.image_url,
            thumbnail_url=draft.thumbnail_url,
            duration=draft.duration,
            feed_id=draft.feed_id,
            metadata_=dump_content_metadata(draft.metadata) if draft.metadata else None,
        )
        self._session.add(content)
        await self._session.flush()
        return content

    async def replace_classifications(
        self, content_id: str, items: Sequence[tuple[str, float]]
    ) -> list[ContentTopic]:
        """Replace all topic associations of a content item in one unit of work."""
        await self._session.execute(
            delete(ContentTopic).where(ContentTopic.content_id == content_id)
        )
        rows = [
            ContentTopic(content_id=content_id, topic_id=topic_id, confidence=confidence)
            for topic_id, confidence in dict(items).items()
        ]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def set_saved(self, content_id: str, saved: bool) -> Content | None:
        content = await self._session.get(Content, content_id)
        if content is None:
            return None
        content.is_saved = saved
        await self._session.flush()
        return content

    async def list_saved(self, limit: int = 100) -> list[Content]:
        result = await self._session.execute(
            select(Content)
            .where(Content.is_saved.is_(True))
            .options(*_with_topics())
            .order_by(Content.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class ContentIngestor:
    """Shared store-then-classify path for every content source."""

    def __init__(self, classifier: Classifier) -> None:
        self.classifier = classifier

    async def store_new(self, session: AsyncSession, draft: ContentDraft) -> Content | None:
        """Insert ``draft`` unless a row with the same url or guid exists."""
        service = ContentService(session)
        existing = await service.find_duplicate(draft.url, draft.guid)
        if existing is not None:
            logger.debug(f"Skipping duplicate content: {draft.url}")
            return None
        return await service.create_content(draft)

    async def _topic_id(self, session: AsyncSession, name: str) -> str | None:
        cached = self.classifier.cache.by_name(name)
        if cached is not None:
            return cached.id
        result = await session.execute(select(Topic.id).where(Topic.name == name))
        return result.scalar_one_or_none()

    async def attach_classification(
        self,
        session: AsyncSession,
        content_id: str,
        draft: ContentDraft,
        result: ClassificationResult | None,
    ) -> list[ContentTopic]:
        """Store embedding, summary and topics; falls back so at least one topic is kept."""
        content = await session.get(Content, content_id)
        if content is None:
            raise LookupError(f"Content {content_id} no longer exists")
        if result is None:
            result = self.classifier.fallback_result(draft.article_text())

        items = [(item.topic_id, item.confidence) for item in result.classifications]
        if not items:
            name, confidence = guaranteed_topic(f"{draft.title} {draft.description}")
            topic_id = await self._topic_id(session, name)
            if topic_id is not None:
                items = [(topic_id, confidence)]
            else:
                logger.warning(f"Topic '{name}' missing; '{draft.title}' stored without topics")

        content.embedding = list(result.embedding)
        if result.summary:
            content.summary = result.summary
        return await ContentService(session).replace_classifications(content.id, items)

    async def ingest(self, session: AsyncSession, draft: ContentDraft) -> Content | None:
        """Store and classify one item; ``None`` when it is a duplicate."""
        content = await self.store_new(session, draft)
        if content is None:
            return None
        await self.classifier.prepare(session)
        result = await self.classifier.classify_article(draft.article_text())
        await self.attach_classification(session, content.id, draft, result)
        return content
