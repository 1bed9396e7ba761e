"""Request models for submission endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl


class CreateSubmissionRequest(BaseModel):
    url: HttpUrl
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    suggested_topics: list[str] = Field(default_factory=list, max_length=5)


class ModerateSubmissionRequest(BaseModel):
    status: Literal["approved", "rejected"]
    notes: str | None = Field(default=None, max_length=2000)
