"""Unit tests for topic classification: keyword rules, embeddings and LLM fallbacks."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.db.models.topic import Topic
from app.llm.client import LLMClient, LLMUnavailableError
from app.llm.schemas import ContentClassification, TopicScore
from app.services.classifier import (
    ArticleText,
    Classifier,
    TopicEmbeddingCache,
    keyword_classify,
    prepare_text,
)

TOPIC_NAMES = ("AI/ML", "Design", "Engineering", "Business", "DevOps")


def _session_with(topics: list[Topic]) -> AsyncMock:
    result = MagicMock()
    result.scalars.return_value = topics
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result)
    return session


def _topics(embeddings: dict[str, list[float]] | None = None) -> list[Topic]:
    embeddings = embeddings or {}
    return [
        Topic(id=f"topic-{index}", name=name, embedding=embeddings.get(name))
        for index, name in enumerate(TOPIC_NAMES)
    ]


async def _classifier(
    llm_client: LLMClient | None,
    topics: list[Topic],
    min_similarity: float = 0.7,
) -> Classifier:
    classifier = Classifier(
        llm_client,
        TopicEmbeddingCache(),
        min_similarity=min_similarity,
        batch_delay_seconds=0,
        embedding_dimensions=8,
    )
    await classifier.prepare(_session_with(topics))
    return classifier


class TestKeywordClassify:
    def test_matches_rule_keywords(self) -> None:
        result = keyword_classify("A new machine learning model for developers")

        assert ("AI/ML", 0.9) in result
        assert ("Engineering", 0.8) in result

    def test_whole_words_only(self) -> None:
        # "said" contains "ai", "maintain" contains "ai" and "tain"
        result = keyword_classify("He said the maintainers were happy")

        assert result == [("Business", 0.6)]

    def test_plural_forms_match(self) -> None:
        assert ("Mobile Dev", 0.8) in keyword_classify("Ten apps we loved this year")

    def test_at_most_three_topics_strongest_first(self) -> None:
        result = keyword_classify("AI product design for developers using docker and data")

        assert len(result) == 3
        assert result[0] == ("AI/ML", 0.9)
        assert [confidence for _, confidence in result] == sorted(
            (confidence for _, confidence in result), reverse=True
        )

    def test_tech_default(self) -> None:
        assert keyword_classify("The week in tech") == [("Engineering", 0.6)]

    def test_generic_default(self) -> None:
        assert keyword_classify("Gardening tips for autumn") == [("Business", 0.6)]


def test_prepare_text_joins_parts_and_caps_length() -> None:
    article = ArticleText(
        title="Title", description="x" * 3000, categories=("Python", "Testing")
    )

    text = prepare_text(article)

    assert text.startswith("Title\n\n")
    assert text.endswith("...")
    assert len(text) == 2003


class TestTopicEmbeddingCache:
    @pytest.mark.asyncio
    async def test_refreshes_only_when_stale(self) -> None:
        now = [0.0]
        cache = TopicEmbeddingCache(ttl_seconds=60, clock=lambda: now[0])
        session = _session_with(_topics())

        await cache.ensure_fresh(session)
        await cache.ensure_fresh(session)
        now[0] = 61.0
        await cache.ensure_fresh(session)

        assert session.execute.await_count == 2
        assert cache.by_name("design") is not None

    def test_new_cache_is_stale(self) -> None:
        assert TopicEmbeddingCache().is_stale() is True


class TestClassifier:
    @pytest.mark.asyncio
    async def test_without_llm_uses_keyword_fallback(self) -> None:
        classifier = await _classifier(None, _topics())

        result = await classifier.classify_article(
            ArticleText(title="Docker tips", description="Shipping containers to production")
        )

        assert result.used_fallback is True
        assert [item.topic_name for item in result.classifications] == ["DevOps"]
        assert len(result.embedding) == 8
        assert result.summary == "Shipping containers to production"

    @pytest.mark.asyncio
    async def test_fallback_skips_topics_missing_from_catalogue(self) -> None:
        classifier = await _classifier(None, _topics())

        result = await classifier.classify_article(ArticleText(title="Kotlin on iOS"))

        # "Mobile Dev" matches but is not in this catalogue
        assert result.classifications == []
        assert result.summary == "Kotlin on iOS..."

    @pytest.mark.asyncio
    async def test_embedding_failure_falls_back(self) -> None:
        llm = AsyncMock(spec=LLMClient)
        llm.create_embedding.side_effect = LLMUnavailableError("down")
        classifier = await _classifier(llm, _topics())

        result = await classifier.classify_article(ArticleText(title="A new AI model"))

        assert result.used_fallback is True
        assert [item.topic_name for item in result.classifications] == ["AI/ML"]

    @pytest.mark.asyncio
    async def test_similarity_against_topic_embeddings(self) -> None:
        ai = [1.0, 0, 0, 0, 0, 0, 0, 0]
        design = [0, 1.0, 0, 0, 0, 0, 0, 0]
        llm = AsyncMock(spec=LLMClient)
        llm.create_embedding.return_value = [0.9, 0.1, 0, 0, 0, 0, 0, 0]
        llm.summarize_article.return_value = "Summary."
        classifier = await _classifier(llm, _topics({"AI/ML": ai, "Design": design}))

        result = await classifier.classify_article(
            ArticleText(title="Transformers", description="Attention is all you need")
        )

        assert result.used_fallback is False
        assert [item.topic_name for item in result.classifications] == ["AI/ML"]
        assert result.classifications[0].confidence == pytest.approx(0.9939, abs=1e-3)
        assert result.summary == "Summary."
        llm.classify_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_chat_classification_when_topics_have_no_embeddings(self) -> None:
        llm = AsyncMock(spec=LLMClient)
        llm.create_embedding.return_value = [0.1] * 8
        llm.classify_content.return_value = ContentClassification(
            topics=[
                TopicScore(name="Design", confidence=0.9),
                TopicScore(name="Business", confidence=0.65),
            ],
            summary="Chat summary.",
        )
        classifier = await _classifier(llm, _topics())

        result = await classifier.classify_article(ArticleText(title="Design systems"))

        # 0.65 is below the 0.7 minimum
        assert [item.topic_name for item in result.classifications] == ["Design"]
        assert result.summary == "Chat summary."
        assert result.embedding == [0.1] * 8
        llm.summarize_article.assert_not_called()

    @pytest.mark.asyncio
    async def test_chat_failure_uses_keywords_but_keeps_embedding(self) -> None:
        llm = AsyncMock(spec=LLMClient)
        llm.create_embedding.return_value = [0.2] * 8
        llm.classify_content.side_effect = LLMUnavailableError("down")
        classifier = await _classifier(llm, _topics())

        result = await classifier.classify_article(ArticleText(title="Terraform at scale"))

        assert result.used_fallback is True
        assert result.embedding == [0.2] * 8
        assert [item.topic_name for item in result.classifications] == ["DevOps"]

    @pytest.mark.asyncio
    async def test_summary_failure_truncates_body(self) -> None:
        llm = AsyncMock(spec=LLMClient)
        llm.create_embedding.return_value = [1.0, 0, 0, 0, 0, 0, 0, 0]
        llm.summarize_article.side_effect = LLMUnavailableError("down")
        classifier = await _classifier(llm, _topics({"AI/ML": [1.0, 0, 0, 0, 0, 0, 0, 0]}))

        result = await classifier.classify_article(
            ArticleText(title="Title", content="b" * 300)
        )

        assert result.summary == "b" * 200 + "..."

    @pytest.mark.asyncio
    async def test_classify_articles_isolates_failures(self) -> None:
        classifier = await _classifier(None, _topics())
        articles = [ArticleText(title="AI news"), ArticleText(title="Design news")]
        original = classifier.classify_article

        async def flaky(article: ArticleText):  # type: ignore[no-untyped-def]
            if article.title == "AI news":
                raise RuntimeError("boom")
            return await original(article)

        classifier.classify_article = flaky  # type: ignore[method-assign]

        results = await classifier.classify_articles(articles)

        assert results[0] is None
        assert results[1] is not None
        assert results[1].classifications[0].topic_name == "Design"
