"""Request models for preference endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class PreferenceItem(BaseModel):
    topic_id: str = Field(..., min_length=1)
    weight: float = Field(default=1.0, ge=0.0, le=1.0, description="Interest strength in [0, 1]")


class SavePreferencesRequest(BaseModel):
    """The complete preference set; an empty list clears all preferences."""

    preferences: list[PreferenceItem] = Field(default_factory=list)

    @field_validator("preferences")
    @classmethod
    def unique_topics(cls, v: list[PreferenceItem]) -> list[PreferenceItem]:
        topic_ids = [item.topic_id for item in v]
        if len(topic_ids) != len(set(topic_ids)):
            raise ValueError("Each topic may appear only once")
        return v

    def as_weights(self) -> dict[str, float]:
        return {item.topic_id: item.weight for item in self.preferences}
