"""Response models for submission endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    url: str
    title: str
    description: str | None = None
    suggested_topics: list[str] = []
    status: str
    moderated_by: str | None = None
    moderation_notes: str | None = None
    content_id: str | None = None
    created_at: datetime
