"""Per-source content metadata, stored as JSON and discriminated by ``source``."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class Engagement(BaseModel):
    likes: int | None = None
    shares: int | None = None
    comments: int | None = None
    views: int | None = None


class RSSMetadata(BaseModel):
    source: Literal["rss"] = "rss"
    feed_id: str | None = None
    feed_name: str | None = None
    author: str | None = None
    categories: list[str] = Field(default_factory=list)


class YouTubeMetadata(BaseModel):
    source: Literal["youtube"] = "youtube"
    channel: str | None = None
    view_count: int | None = None
    duration_seconds: int | None = None
    subscribers: int | None = None
    original_id: str | None = None
    engagement: Engagement | None = None


class TwitterMetadata(BaseModel):
    source: Literal["twitter"] = "twitter"
    verified: bool | None = None
    followers: int | None = None
    original_id: str | None = None
    engagement: Engagement | None = None


class RedditMetadata(BaseModel):
    source: Literal["reddit"] = "reddit"
    subreddit: str | None = None
    flair: str | None = None
    awards: int | None = None
    original_id: str | None = None
    engagement: Engagement | None = None


class SubmissionMetadata(BaseModel):
    source: Literal["user_submission"] = "user_submission"
    submitted_by: str
    submission_id: str


ContentMetadata = Annotated[
    RSSMetadata | YouTubeMetadata | TwitterMetadata | RedditMetadata | SubmissionMetadata,
    Field(discriminator="source"),
]


def dump_content_metadata(metadata: ContentMetadata) -> dict[str, Any]:
    return metadata.model_dump(mode="json", exclude_none=True)
