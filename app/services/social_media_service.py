"""Mocked social media ingestion through the shared content path."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.content import ContentSource
from app.ingestion.metadata import (
    ContentMetadata,
    RedditMetadata,
    TwitterMetadata,
    YouTubeMetadata,
)
from app.ingestion.social_sources import (
    POSTS_BY_PLATFORM,
    Platform,
    SocialPost,
    sample_youtube_videos,
)
from app.services.content_service import ContentDraft, ContentIngestor

logger = logging.getLogger(__name__)


@dataclass
class SocialIngestionResult:
    twitter: int = 0
    youtube: int = 0
    reddit: int = 0

    @property
    def total(self) -> int:
        return self.twitter + self.youtube + self.reddit


def _metadata(post: SocialPost) -> ContentMetadata:
    extra = post.extra
    if post.platform == "youtube":
        return YouTubeMetadata(
            channel=str(extra.get("channel") or post.author),
            view_count=post.engagement.views,
            duration_seconds=post.duration_seconds,
            subscribers=extra.get("subscribers"),  # type: ignore[arg-type]
            original_id=post.original_id,
            engagement=post.engagement,
        )
    if post.platform == "reddit":
        return RedditMetadata(
            subreddit=extra.get("subreddit"),  # type: ignore[arg-type]
            flair=extra.get("flair"),  # type: ignore[arg-type]
            awards=extra.get("awards"),  # type: ignore[arg-type]
            original_id=post.original_id,
            engagement=post.engagement,
        )
    return TwitterMetadata(
        verified=extra.get("verified"),  # type: ignore[arg-type]
        followers=extra.get("followers"),  # type: ignore[arg-type]
        original_id=post.original_id,
        engagement=post.engagement,
    )


def post_to_draft(post: SocialPost) -> ContentDraft:
    transcript = post.extra.get("transcript")
    return ContentDraft(
        title=post.title,
        url=post.url,
        source=ContentSource(post.platform),
        description=post.description,
        content_type="video" if post.platform == "youtube" else "article",
        published_at=post.published_at,
        author=post.author,
        thumbnail_url=post.thumbnail_url,
        duration=post.duration_seconds,
        transcript=transcript if isinstance(transcript, str) else None,
        metadata=_metadata(post),
    )


class SocialMediaService:
    def __init__(
        self,
        session: AsyncSession,
        ingestor: ContentIngestor,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._ingestor = ingestor
        self._now = now

    def _current(self) -> datetime | None:
        return self._now() if self._now is not None else None

    async def process_posts(self, posts: Sequence[SocialPost]) -> int:
        """Store and classify new posts; returns how many were new."""
        stored = 0
        for post in posts:
            content = await self._ingestor.ingest(self._session, post_to_draft(post))
            if content is None:
                logger.info(f"Skipping duplicate {post.platform} post: {post.title}")
                continue
            stored += 1
        return stored

    async def ingest_platform(self, platform: Platform) -> int:
        posts = POSTS_BY_PLATFORM[platform](self._current())
        logger.info(f"Fetched {len(posts)} {platform} posts")
        return await self.process_posts(posts)

    async def run_social_media_ingestion(self) -> SocialIngestionResult:
        result = SocialIngestionResult(
            twitter=await self.ingest_platform("twitter"),
            youtube=await self.ingest_platform("youtube"),
            reddit=await self.ingest_platform("reddit"),
        )
        logger.info(
            f"Social media ingestion complete: {result.total} new items",
            extra={"twitter": result.twitter, "youtube": result.youtube, "reddit": result.reddit},
        )
        return result

    async def ingest_sample_videos(self) -> int:
        return await self.process_posts(sample_youtube_videos(self._current()))


def social_media_service_factory_provider(
    ingestor: ContentIngestor,
) -> Callable[[AsyncSession], SocialMediaService]:
    def factory(session: AsyncSession) -> SocialMediaService:
        return SocialMediaService(session, ingestor)

    return factory
