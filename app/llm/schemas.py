from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# Chat classification keeps only confident topics.
MIN_CHAT_CONFIDENCE = 0.6
MAX_CHAT_TOPICS = 3


class TopicScore(BaseModel):
    """A single topic label with the model's confidence."""

    name: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


class ContentClassification(BaseModel):
    """Structured output from the LLM for content classification."""

    topics: list[TopicScore] = Field(
        default_factory=list,
        description="Topics the content belongs to, with confidence in [0, 1]",
    )
    summary: str = Field(default="", description="Two to three sentence summary")

    @field_validator("topics")
    @classmethod
    def keep_confident_topics(cls, value: list[TopicScore]) -> list[TopicScore]:
        """Drop low-confidence and duplicate topics; keep the strongest few."""
        best: dict[str, TopicScore] = {}
        for item in value:
            if item.confidence <= MIN_CHAT_CONFIDENCE:
                continue
            key = item.name.casefold()
            current = best.get(key)
            if current is None or item.confidence > current.confidence:
                best[key] = item
        ranked = sorted(best.values(), key=lambda item: item.confidence, reverse=True)
        return ranked[:MAX_CHAT_TOPICS]

    def restricted_to(self, allowed_names: set[str]) -> ContentClassification:
        """Return a copy that only keeps topics from the known catalogue."""
        by_folded = {name.casefold(): name for name in allowed_names}
        kept = [
            TopicScore(name=by_folded[item.name.casefold()], confidence=item.confidence)
            for item in self.topics
            if item.name.casefold() in by_folded
        ]
        return ContentClassification(topics=kept, summary=self.summary)
