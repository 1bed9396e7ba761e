"""Topic classification for ingested content.

The primary path embeds the article and compares it with cached topic
embeddings. When topics have no embeddings yet, the chat model assigns topics
directly. Any LLM failure (or a missing API key) switches the article to the
deterministic fallback: a hash-based pseudo-embedding plus keyword rules.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Final

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.topic import Topic
from app.llm.client import LLMClient, LLMServiceError
from app.services.vectors import DEFAULT_DIMENSIONS, cosine_similarity, pseudo_embedding

logger = logging.getLogger(__name__)

MAX_EMBEDDING_TEXT_LENGTH: Final[int] = 2000
MAX_KEYWORD_TOPICS: Final[int] = 3
FALLBACK_SUMMARY_LENGTH: Final[int] = 200


@dataclass(frozen=True)
class ArticleText:
    """The parts of a content item that classification looks at."""

    title: str
    description: str = ""
    categories: tuple[str, ...] = ()
    content: str = ""


@dataclass(frozen=True)
class CachedTopic:
    id: str
    name: str
    embedding: tuple[float, ...] | None = None


@dataclass(frozen=True)
class TopicClassification:
    topic_id: str
    topic_name: str
    confidence: float


@dataclass
class ClassificationResult:
    embedding: list[float]
    classifications: list[TopicClassification] = field(default_factory=list)
    summary: str | None = None
    used_fallback: bool = False


@dataclass(frozen=True)
class KeywordRule:
    topic: str
    confidence: float
    keywords: tuple[str, ...]


KEYWORD_RULES: Final[tuple[KeywordRule, ...]] = (
    KeywordRule(
        "AI/ML",
        0.9,
        ("ai", "artificial intelligence", "machine learning", "chatgpt", "llm", "neural network"),
    ),
    KeywordRule("Product", 0.8, ("product", "pm", "product manager", "roadmap")),
    KeywordRule("Design", 0.8, ("design", "ui", "ux", "user interface", "figma")),
    KeywordRule("Engineering", 0.8, ("engineering", "developer", "programming", "code")),
    KeywordRule("Business", 0.7, ("business", "entrepreneur", "revenue")),
    KeywordRule("Marketing", 0.7, ("marketing", "growth", "advertising", "seo")),
    KeywordRule("Mobile Dev", 0.8, ("mobile", "ios", "android", "app", "swift", "kotlin")),
    KeywordRule(
        "DevOps",
        0.8,
        (
            "devops",
            "deployment",
            "infrastructure",
            "kubernetes",
            "docker",
            "ci/cd",
            "terraform",
        ),
    ),
    KeywordRule("Security", 0.8, ("security", "cybersecurity", "privacy", "vulnerability")),
    KeywordRule("Data Science", 0.7, ("data", "analytics", "statistics", "data science")),
    KeywordRule("Startups", 0.7, ("startup", "venture capital", "founder", "saas")),
    KeywordRule("Leadership", 0.7, ("leadership", "management", "team")),
)

_DEFAULT_TECH_TOPIC = ("Engineering", 0.6)
_DEFAULT_TOPIC = ("Business", 0.6)
_TECH_PATTERN = re.compile(r"\btech(?:nology)?\b", re.IGNORECASE)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Whole words only, allowing a plural suffix ("developers", "apps").
    return re.compile(rf"(?<![\w/]){re.escape(keyword)}(?:s|es)?(?![\w/])", re.IGNORECASE)


_COMPILED_RULES: Final[tuple[tuple[KeywordRule, tuple[re.Pattern[str], ...]], ...]] = tuple(
    (rule, tuple(_keyword_pattern(keyword) for keyword in rule.keywords)) for rule in KEYWORD_RULES
)


def keyword_classify(text: str) -> list[tuple[str, float]]:
    """Match the keyword table against ``text``; always returns at least one topic."""
    matches = [
        (rule.topic, rule.confidence)
        for rule, patterns in _COMPILED_RULES
        if any(pattern.search(text) for pattern in patterns)
    ]
    if not matches:
        return [_DEFAULT_TECH_TOPIC if _TECH_PATTERN.search(text) else _DEFAULT_TOPIC]
    matches.sort(key=lambda match: match[1], reverse=True)
    return matches[:MAX_KEYWORD_TOPICS]


def prepare_text(article: ArticleText) -> str:
    """Title, description and categories as one embedding input, capped in length."""
    parts = [article.title]
    if article.description:
        parts.append(article.description)
    if article.categories:
        parts.append(f"Categories: {', '.join(article.categories)}")
    text = "\n\n".join(parts)
    if len(text) > MAX_EMBEDDING_TEXT_LENGTH:
        text = text[:MAX_EMBEDDING_TEXT_LENGTH] + "..."
    return text


def fallback_summary(article: ArticleText) -> str:
    if article.description:
        return article.description
    return article.title[:FALLBACK_SUMMARY_LENGTH] + "..."


class TopicEmbeddingCache:
    """Topic rows with their embeddings, reloaded from the database after ``ttl_seconds``."""

    def __init__(
        self,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._topics: list[CachedTopic] = []
        self._loaded_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def topics(self) -> list[CachedTopic]:
        return list(self._topics)

    def is_stale(self) -> bool:
        return self._loaded_at is None or self._clock() - self._loaded_at >= self.ttl_seconds

    def by_name(self, name: str) -> CachedTopic | None:
        folded = name.casefold()
        return next((topic for topic in self._topics if topic.name.casefold() == folded), None)

    async def refresh(self, session: AsyncSession) -> list[CachedTopic]:
        result = await session.execute(select(Topic).order_by(Topic.name))
        self._topics = [
            CachedTopic(
                id=topic.id,
                name=topic.name,
                embedding=tuple(topic.embedding) if topic.embedding else None,
            )
            for topic in result.scalars()
        ]
        self._loaded_at = self._clock()
        logger.debug(f"Refreshed topic cache with {len(self._topics)} topics")
        return self.topics

    async def ensure_fresh(self, session: AsyncSession) -> list[CachedTopic]:
        async with self._lock:
            if self.is_stale():
                return await self.refresh(session)
        return self.topics


class Classifier:
    """Assigns topics, an embedding and a summary to articles.

    Classification itself never touches the database; callers load the topic
    cache first with ``prepare(session)``.
    """

    def __init__(
        self,
        llm_client: LLMClient | None,
        cache: TopicEmbeddingCache,
        min_similarity: float = 0.7,
        max_classifications: int = 3,
        batch_size: int = 5,
        batch_delay_seconds: float = 1.0,
        generate_summary: bool = True,
        embedding_dimensions: int = DEFAULT_DIMENSIONS,
    ) -> None:
        self.llm_client = llm_client
        self.cache = cache
        self.min_similarity = min_similarity
        self.max_classifications = max_classifications
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.generate_summary = generate_summary
        self.embedding_dimensions = embedding_dimensions

    async def prepare(self, session: AsyncSession) -> None:
        await self.cache.ensure_fresh(session)

    def _resolve(self, scored: Sequence[tuple[str, float]]) -> list[TopicClassification]:
        resolved: list[TopicClassification] = []
        for name, confidence in scored:
            topic = self.cache.by_name(name)
            if topic is None:
                continue
            resolved.append(TopicClassification(topic.id, topic.name, confidence))
        return resolved

    def keyword_classifications(self, article: ArticleText) -> list[TopicClassification]:
        text = f"{article.title} {article.description}"
        return self._resolve(keyword_classify(text))

    def fallback_result(self, article: ArticleText) -> ClassificationResult:
        """Pseudo-embedding plus keyword topics; needs no external service."""
        return ClassificationResult(
            embedding=pseudo_embedding(prepare_text(article), self.embedding_dimensions),
            classifications=self.keyword_classifications(article),
            summary=fallback_summary(article),
            used_fallback=True,
        )

    def _similarity_classifications(self, embedding: Sequence[float]) -> list[TopicClassification]:
        scored: list[TopicClassification] = []
        for topic in self.cache.topics:
            if topic.embedding is None or len(topic.embedding) != len(embedding):
                continue
            similarity = min(1.0, cosine_similarity(embedding, topic.embedding))
            if similarity >= self.min_similarity:
                scored.append(TopicClassification(topic.id, topic.name, similarity))
        scored.sort(key=lambda item: item.confidence, reverse=True)
        return scored[: self.max_classifications]

    async def _summarize(self, article: ArticleText) -> str | None:
        if not self.generate_summary or self.llm_client is None:
            return None
        body = article.content or article.description
        try:
            return await self.llm_client.summarize_article(article.title, body)
        except LLMServiceError as e:
            logger.warning(f"Summary generation failed, truncating instead: {e}")
            return body[:FALLBACK_SUMMARY_LENGTH] + "..." if body else None

    async def classify_article(self, article: ArticleText) -> ClassificationResult:
        if self.llm_client is None:
            return self.fallback_result(article)

        try:
            embedding = await self.llm_client.create_embedding(prepare_text(article))
        except LLMServiceError as e:
            logger.warning(
                f"Embedding failed, using fallback classification: {e}",
                extra={"error_code": e.error_code, "title": article.title},
            )
            return self.fallback_result(article)

        if any(topic.embedding for topic in self.cache.topics):
            return ClassificationResult(
                embedding=embedding,
                classifications=self._similarity_classifications(embedding),
                summary=await self._summarize(article),
            )

        try:
            chat = await self.llm_client.classify_content(
                article.title,
                article.description,
                [topic.name for topic in self.cache.topics],
            )
        except LLMServiceError as e:
            logger.warning(
                f"Chat classification failed, using keyword rules: {e}",
                extra={"error_code": e.error_code, "title": article.title},
            )
            return ClassificationResult(
                embedding=embedding,
                classifications=self.keyword_classifications(article),
                summary=fallback_summary(article),
                used_fallback=True,
            )

        classifications = [
            item
            for item in self._resolve([(topic.name, topic.confidence) for topic in chat.topics])
            if item.confidence >= self.min_similarity
        ][: self.max_classifications]
        summary = chat.summary or await self._summarize(article)
        return ClassificationResult(
            embedding=embedding, classifications=classifications, summary=summary
        )

    async def classify_articles(
        self, articles: Sequence[ArticleText]
    ) -> list[ClassificationResult | None]:
        """Classify in small concurrent groups; a failed article yields ``None`` at its index."""
        results: list[ClassificationResult | None] = []
        for start in range(0, len(articles), self.batch_size):
            batch = articles[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.classify_article(article) for article in batch),
                return_exceptions=True,
            )
            for article, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    logger.error(f"Failed to classify article '{article.title}': {outcome}")
                    results.append(None)
                else:
                    results.append(outcome)
            if start + self.batch_size < len(articles) and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)
        return results
