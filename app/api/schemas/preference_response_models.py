"""Response models for preference endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from app.db.models.user_preference import UserPreference


class PreferenceResponse(BaseModel):
    topic_id: str
    topic_name: str
    weight: float

    @classmethod
    def from_preference(cls, preference: UserPreference) -> PreferenceResponse:
        return cls(
            topic_id=preference.topic_id,
            topic_name=preference.topic.name,
            weight=preference.weight,
        )
