"""Request models for admin endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, HttpUrl


class CleanupRequest(BaseModel):
    retention_days: int | None = Field(default=None, ge=1, le=3650)
    batch_size: int | None = Field(default=None, ge=1, le=10_000)
    keep_bookmarked: bool = True


class IngestFeedRequest(BaseModel):
    """Optional single feed to ingest; omit to run every configured feed."""

    url: HttpUrl | None = None
