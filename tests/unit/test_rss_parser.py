"""Unit tests for feed fetching and item normalization (no network access)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from app.ingestion.feeds_loader import FeedConfig
from app.ingestion.rss_parser import (
    ParsedArticle,
    RSSParser,
    has_minimum_content,
    is_recent,
)

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Example Engineering Blog</title>
    <link>https://blog.example.com</link>
    <item>
      <title>Scaling &lt;b&gt;Postgres&lt;/b&gt;</title>
      <link>https://blog.example.com/postgres</link>
      <guid>post-1</guid>
      <description>&lt;p&gt;How we sharded our database.&lt;/p&gt;</description>
      <content:encoded><![CDATA[<p>Full body text.</p><img src="https://cdn.example.com/inline.png">]]></content:encoded>
      <media:thumbnail url="https://cdn.example.com/thumb.png" />
      <dc:creator>Jane Doe</dc:creator>
      <category>Databases</category>
      <category>Scaling</category>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Inline image only</title>
      <link>https://blog.example.com/inline</link>
      <description><![CDATA[<p>Text</p><img src="https://cdn.example.com/body.png">]]></description>
    </item>
    <item>
      <title>No link here</title>
      <description>Dropped because it has no link</description>
    </item>
  </channel>
</rss>
"""


def _parser(handler: httpx.MockTransport) -> RSSParser:
    return RSSParser(timeout=1.0, transport=handler)


def _serving(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(str(request.url), httpx.Response(404))

    return httpx.MockTransport(handler)


class TestParseFeed:
    @pytest.mark.asyncio
    async def test_parses_items(self) -> None:
        url = "https://blog.example.com/feed.xml"
        parser = _parser(_serving({url: httpx.Response(200, content=RSS_FEED)}))

        result = await parser.parse_feed(url)

        assert result.ok
        assert result.feed_name == "Example Engineering Blog"
        assert len(result.articles) == 2
        first = result.articles[0]
        assert first.title == "Scaling Postgres"
        assert first.url == "https://blog.example.com/postgres"
        assert first.guid == "post-1"
        assert first.description == "How we sharded our database."
        assert first.content == "Full body text."
        assert first.author == "Jane Doe"
        assert first.categories == ["Databases", "Scaling"]
        assert first.published_at == datetime(2025, 1, 6, 10, 0, tzinfo=UTC)
        assert first.image_url == "https://cdn.example.com/thumb.png"

    @pytest.mark.asyncio
    async def test_inline_image_is_used_without_media_tags(self) -> None:
        url = "https://blog.example.com/feed.xml"
        parser = _parser(_serving({url: httpx.Response(200, content=RSS_FEED)}))

        result = await parser.parse_feed(url)

        assert result.articles[1].image_url == "https://cdn.example.com/body.png"
        assert result.articles[1].published_at is None

    @pytest.mark.asyncio
    async def test_configured_name_wins(self) -> None:
        url = "https://blog.example.com/feed.xml"
        parser = _parser(_serving({url: httpx.Response(200, content=RSS_FEED)}))

        result = await parser.parse_feed(url, feed_name="Configured")

        assert result.feed_name == "Configured"

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self) -> None:
        url = "https://blog.example.com/missing.xml"
        parser = _parser(_serving({}))

        result = await parser.parse_feed(url)

        assert not result.ok
        assert result.error == "HTTP 404 fetching feed"
        assert result.articles == []

    @pytest.mark.asyncio
    async def test_network_error_is_reported(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        parser = _parser(httpx.MockTransport(handler))

        result = await parser.parse_feed("https://down.example.com/feed")

        assert result.error is not None
        assert "ConnectError" in result.error

    @pytest.mark.asyncio
    async def test_unparseable_body_is_reported(self) -> None:
        url = "https://blog.example.com/feed.xml"
        parser = _parser(_serving({url: httpx.Response(200, content=b"<html><oops")}))

        result = await parser.parse_feed(url)

        assert result.error is not None
        assert result.error.startswith("Unparseable feed")


@pytest.mark.asyncio
async def test_parse_feeds_keeps_going_after_a_failure() -> None:
    good = FeedConfig(name="Good", url="https://good.example.com/feed", tags=["engineering"])
    bad = FeedConfig(name="Bad", url="https://bad.example.com/feed", tags=["engineering"])
    parser = _parser(
        _serving({"https://good.example.com/feed": httpx.Response(200, content=RSS_FEED)})
    )

    results = await parser.parse_feeds([bad, good], concurrency=1, delay_seconds=0)

    assert [result.feed_name for result in results] == ["Bad", "Good"]
    assert results[0].error == "HTTP 404 fetching feed"
    assert len(results[1].articles) == 2


class TestArticleFilters:
    def test_undated_article_is_recent(self) -> None:
        assert is_recent(ParsedArticle(title="t", url="u"))

    def test_old_article_is_not_recent(self) -> None:
        now = datetime(2025, 1, 10, tzinfo=UTC)
        article = ParsedArticle(title="t", url="u", published_at=now - timedelta(days=8))

        assert not is_recent(article, max_age_days=7, now=now)

    def test_naive_dates_are_utc(self) -> None:
        now = datetime(2025, 1, 10, tzinfo=UTC)
        article = ParsedArticle(title="t", url="u", published_at=datetime(2025, 1, 9))

        assert is_recent(article, max_age_days=7, now=now)

    def test_minimum_content_counts_description_and_body(self) -> None:
        article = ParsedArticle(title="t", url="u", description="a" * 30, content="b" * 20)

        assert has_minimum_content(article, min_length=50)
        assert not has_minimum_content(article, min_length=51)
