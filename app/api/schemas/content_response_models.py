"""Response models for content, bookmarks and daily drops."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.db.models.content import Content
from app.db.models.daily_drop import DailyDrop


class ContentTopicResponse(BaseModel):
    topic_id: str
    name: str
    confidence: float


class ContentResponse(BaseModel):
    id: str
    title: str
    description: str | None = None
    url: str
    source: str
    content_type: str
    duration: int | None = None
    thumbnail_url: str | None = None
    image_url: str | None = None
    author: str | None = None
    summary: str | None = None
    view_count: int = 0
    is_saved: bool = False
    published_at: datetime | None = None
    created_at: datetime
    topics: list[ContentTopicResponse] = []
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_content(cls, content: Content, with_topics: bool = True) -> ContentResponse:
        """Build from an ORM row; ``with_topics`` requires the topics to be loaded."""
        topics = (
            [
                ContentTopicResponse(
                    topic_id=item.topic_id, name=item.topic.name, confidence=item.confidence
                )
                for item in sorted(content.topics, key=lambda t: t.confidence, reverse=True)
            ]
            if with_topics
            else []
        )
        return cls(
            id=content.id,
            title=content.title,
            description=content.description,
            url=content.url,
            source=content.source,
            content_type=content.content_type,
            duration=content.duration,
            thumbnail_url=content.thumbnail_url,
            image_url=content.image_url,
            author=content.author,
            summary=content.summary,
            view_count=content.view_count or 0,
            is_saved=bool(content.is_saved),
            published_at=content.published_at,
            created_at=content.created_at,
            topics=topics,
            metadata=content.metadata_,
        )


class SaveContentResponse(BaseModel):
    content_id: str
    is_saved: bool


class DailyDropResponse(BaseModel):
    id: str
    content_id: str
    drop_date: datetime
    match_score: float
    was_viewed: bool
    was_bookmarked: bool
    content: ContentResponse | None = None

    @classmethod
    def from_drop(cls, drop: DailyDrop, with_content: bool = True) -> DailyDropResponse:
        return cls(
            id=drop.id,
            content_id=drop.content_id,
            drop_date=drop.drop_date,
            match_score=drop.match_score,
            was_viewed=drop.was_viewed,
            was_bookmarked=drop.was_bookmarked,
            content=(
                ContentResponse.from_content(drop.content)
                if with_content and drop.content is not None
                else None
            ),
        )
