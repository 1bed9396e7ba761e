"""Response models for admin endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SystemStatsResponse(BaseModel):
    total_content: int
    pending_submissions: int
    active_users: int
    daily_matches: int


class IngestionRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    feeds_processed: int
    feeds_failed: int
    articles_found: int
    articles_stored: int
    articles_skipped: int
    errors: list[str]


class SocialIngestionResponse(BaseModel):
    twitter: int
    youtube: int
    reddit: int
    total: int


class IngestedCountResponse(BaseModel):
    platform: str
    stored: int


class IngestionStatsResponse(BaseModel):
    total_feeds: int
    active_feeds: int
    total_content: int
    recent_content: int
    last_ingestion: datetime | None = None


class FeedResponse(BaseModel):
    name: str
    url: str
    tags: list[str]


class LoadFeedsResponse(BaseModel):
    loaded: int
    saved: int


class DailyDropRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    users_processed: int
    drops_created: int
    emails_sent: int
    errors: list[str]


class GeneratedDropsResponse(BaseModel):
    user_id: str
    drops_created: int


class SourceCount(BaseModel):
    source: str
    count: int


class DailyDropStatsResponse(BaseModel):
    total_drops_today: int
    average_score: float
    top_sources: list[SourceCount]


class StorageStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_content: int
    last_7_days: int
    last_30_days: int
    last_90_days: int
    older_than_90_days: int
    table_size: str | None = None
    recommendation: str
    level: str


class CleanupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deleted_count: int
    retained_count: int
    errors: list[str]


class ScheduledCleanupResponse(BaseModel):
    ran: bool
    result: CleanupResponse | None = None
