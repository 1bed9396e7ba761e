"""Integration tests for per-user endpoints: topics, preferences, drops, bookmarks, submissions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import (
    ContentResponse,
    CreateSubmissionRequest,
    DailyDropResponse,
    PreferenceResponse,
    SubmissionResponse,
    TopicResponse,
)
from app.db.base import start_of_utc_day
from app.db.models.content import Content, ContentTopic
from app.db.models.daily_drop import DailyDrop
from app.db.models.topic import Topic
from app.db.models.user import User, UserRole
from app.db.models.user_preference import UserPreference

UserFactory = Callable[..., Awaitable[User]]
Headers = Callable[[User], dict[str, str]]


async def _drop(
    session: AsyncSession,
    user: User,
    topic: Topic,
    key: str,
    score: float,
    day: datetime | None = None,
) -> Content:
    content = Content(title=f"Story {key}", url=f"https://example.com/{key}", source="rss")
    content.topics.append(ContentTopic(topic_id=topic.id, confidence=0.9))
    session.add(content)
    await session.flush()
    session.add(
        DailyDrop(
            user_id=user.id,
            content_id=content.id,
            drop_date=start_of_utc_day(day),
            match_score=score,
        )
    )
    await session.commit()
    return content


class TestTopics:
    @pytest.mark.asyncio
    async def test_list_topics(
        self, async_http_client: AsyncClient, topics: dict[str, Topic]
    ) -> None:
        # Act
        response = await async_http_client.get("/api/topics")

        # Assert
        assert response.status_code == status.HTTP_200_OK
        parsed = [TopicResponse.model_validate(item) for item in response.json()]
        names = [topic.name for topic in parsed]
        assert names == sorted(names)
        assert set(names) == set(topics)


class TestPreferences:
    @pytest.mark.asyncio
    async def test_replace_and_read_preferences(
        self,
        async_http_client: AsyncClient,
        db_session: AsyncSession,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("prefs@example.com")
        user_id = user.id
        payload = {
            "preferences": [
                {"topic_id": topics["Design"].id, "weight": 0.4},
                {"topic_id": topics["AI/ML"].id},
            ]
        }

        # Act
        saved = await async_http_client.post(
            f"/api/users/{user_id}/preferences", json=payload, headers=auth_headers(user)
        )
        read = await async_http_client.get(
            f"/api/users/{user_id}/preferences", headers=auth_headers(user)
        )

        # Assert
        assert saved.status_code == status.HTTP_200_OK
        parsed = [PreferenceResponse.model_validate(item) for item in read.json()]
        assert [(item.topic_name, item.weight) for item in parsed] == [
            ("AI/ML", 1.0),
            ("Design", 0.4),
        ]
        db_session.expire_all()
        stored = (await db_session.execute(select(User).where(User.id == user_id))).scalar_one()
        assert stored.is_onboarded is True

    @pytest.mark.asyncio
    async def test_replacing_clears_previous_set(
        self,
        async_http_client: AsyncClient,
        db_session: AsyncSession,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("replace@example.com")
        user_id = user.id
        url = f"/api/users/{user_id}/preferences"
        first = {
            "preferences": [
                {"topic_id": topics[name].id} for name in ("Design", "AI/ML", "Business")
            ]
        }
        await async_http_client.post(url, json=first, headers=auth_headers(user))

        async def stored_topic_ids() -> set[str]:
            db_session.expire_all()
            result = await db_session.execute(
                select(UserPreference.topic_id).where(UserPreference.user_id == user_id)
            )
            return set(result.scalars())

        seeded = await stored_topic_ids()

        # Act
        narrowed = await async_http_client.post(
            url,
            json={"preferences": [{"topic_id": topics["Security"].id}]},
            headers=auth_headers(user),
        )
        after_narrowing = await stored_topic_ids()
        cleared = await async_http_client.post(
            url, json={"preferences": []}, headers=auth_headers(user)
        )
        after_clearing = await stored_topic_ids()
        current = await async_http_client.get(url, headers=auth_headers(user))

        # Assert
        assert len(seeded) == 3
        assert narrowed.status_code == status.HTTP_200_OK
        assert after_narrowing == {topics["Security"].id}
        assert cleared.status_code == status.HTTP_200_OK
        assert cleared.json() == []
        assert after_clearing == set()
        assert current.json() == []

    @pytest.mark.asyncio
    async def test_unknown_topic_keeps_existing_preferences(
        self,
        async_http_client: AsyncClient,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("unknown@example.com")
        url = f"/api/users/{user.id}/preferences"
        first = {"preferences": [{"topic_id": topics["Design"].id}]}
        await async_http_client.post(url, json=first, headers=auth_headers(user))

        # Act
        response = await async_http_client.post(
            url,
            json={"preferences": [{"topic_id": "does-not-exist"}]},
            headers=auth_headers(user),
        )
        current = await async_http_client.get(url, headers=auth_headers(user))

        # Assert
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "unknown_topic"
        assert [item["topic_name"] for item in current.json()] == ["Design"]

    @pytest.mark.asyncio
    async def test_invalid_weight_and_duplicates_rejected(
        self,
        async_http_client: AsyncClient,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("invalid@example.com")
        url = f"/api/users/{user.id}/preferences"
        topic_id = topics["Design"].id

        # Act
        too_heavy = await async_http_client.post(
            url,
            json={"preferences": [{"topic_id": topic_id, "weight": 1.5}]},
            headers=auth_headers(user),
        )
        duplicated = await async_http_client.post(
            url,
            json={"preferences": [{"topic_id": topic_id}, {"topic_id": topic_id}]},
            headers=auth_headers(user),
        )

        # Assert
        assert too_heavy.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
        assert duplicated.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    @pytest.mark.asyncio
    async def test_other_users_preferences_are_forbidden(
        self,
        async_http_client: AsyncClient,
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        owner = await make_user("owner@example.com")
        intruder = await make_user("intruder@example.com")

        # Act
        response = await async_http_client.get(
            f"/api/users/{owner.id}/preferences", headers=auth_headers(intruder)
        )

        # Assert
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_admin_may_read_any_user(
        self,
        async_http_client: AsyncClient,
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        owner = await make_user("owner@example.com")
        admin = await make_user("admin@example.com", role=UserRole.ADMIN)

        response = await async_http_client.get(
            f"/api/users/{owner.id}/preferences", headers=auth_headers(admin)
        )

        assert response.status_code == status.HTTP_200_OK


class TestDailyDrops:
    @pytest.mark.asyncio
    async def test_todays_drops_best_first(
        self,
        async_http_client: AsyncClient,
        db_session: AsyncSession,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("drops@example.com")
        topic = topics["Engineering"]
        await _drop(db_session, user, topic, "low", 0.3)
        await _drop(db_session, user, topic, "high", 0.8)
        yesterday = datetime.now(UTC) - timedelta(days=1)
        await _drop(db_session, user, topic, "yesterday", 0.9, yesterday)

        # Act
        response = await async_http_client.get(
            f"/api/users/{user.id}/daily-drops", headers=auth_headers(user)
        )

        # Assert
        assert response.status_code == status.HTTP_200_OK
        parsed = [DailyDropResponse.model_validate(item) for item in response.json()]
        titles = [drop.content.title for drop in parsed if drop.content]
        assert titles == ["Story high", "Story low"]
        assert parsed[0].content is not None
        assert parsed[0].content.topics[0].name == "Engineering"

    @pytest.mark.asyncio
    async def test_drops_for_a_given_date(
        self,
        async_http_client: AsyncClient,
        db_session: AsyncSession,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("history@example.com")
        yesterday = datetime.now(UTC) - timedelta(days=1)
        await _drop(db_session, user, topics["Engineering"], "old", 0.5, yesterday)

        # Act
        response = await async_http_client.get(
            f"/api/users/{user.id}/daily-drops",
            params={"date": yesterday.date().isoformat()},
            headers=auth_headers(user),
        )

        # Assert
        assert [item["content"]["title"] for item in response.json()] == ["Story old"]

    @pytest.mark.asyncio
    async def test_view_counts_once(
        self,
        async_http_client: AsyncClient,
        db_session: AsyncSession,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("viewer@example.com")
        content = await _drop(db_session, user, topics["Engineering"], "viewed", 0.5)
        content_id = content.id
        url = f"/api/users/{user.id}/daily-drops/{content_id}/view"

        # Act
        first = await async_http_client.post(url, headers=auth_headers(user))
        second = await async_http_client.post(url, headers=auth_headers(user))

        # Assert
        assert first.status_code == status.HTTP_200_OK
        assert first.json()["was_viewed"] is True
        assert second.status_code == status.HTTP_200_OK
        db_session.expire_all()
        result = await db_session.execute(select(Content).where(Content.id == content_id))
        assert result.scalar_one().view_count == 1

    @pytest.mark.asyncio
    async def test_view_unknown_drop(
        self,
        async_http_client: AsyncClient,
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        user = await make_user("nothing@example.com")

        response = await async_http_client.post(
            f"/api/users/{user.id}/daily-drops/missing/view", headers=auth_headers(user)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Daily drop not found"

    @pytest.mark.asyncio
    async def test_bookmark_toggle_and_list(
        self,
        async_http_client: AsyncClient,
        db_session: AsyncSession,
        topics: dict[str, Topic],
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("bookmarks@example.com")
        content = await _drop(db_session, user, topics["Engineering"], "keep", 0.5)
        content_id = content.id
        url = f"/api/users/{user.id}/daily-drops/{content_id}/bookmark"

        # Act
        bookmarked = await async_http_client.post(url, headers=auth_headers(user))
        listed = await async_http_client.get(
            f"/api/users/{user.id}/bookmarks", headers=auth_headers(user)
        )
        unbookmarked = await async_http_client.post(url, headers=auth_headers(user))
        relisted = await async_http_client.get(
            f"/api/users/{user.id}/bookmarks", headers=auth_headers(user)
        )

        # Assert
        assert bookmarked.json()["was_bookmarked"] is True
        parsed = [ContentResponse.model_validate(item) for item in listed.json()]
        assert [item.id for item in parsed] == [content_id]
        assert parsed[0].is_saved is True
        assert unbookmarked.json()["was_bookmarked"] is False
        assert relisted.json() == []


class TestSubmissions:
    @pytest.mark.asyncio
    async def test_submit_and_list(
        self,
        async_http_client: AsyncClient,
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        # Arrange
        user = await make_user("submit@example.com")
        payload = CreateSubmissionRequest(
            url="https://example.com/great-read",
            title="A great read",
            suggested_topics=["Engineering"],
        ).model_dump(mode="json")

        # Act
        created = await async_http_client.post(
            f"/api/users/{user.id}/submissions", json=payload, headers=auth_headers(user)
        )
        listed = await async_http_client.get(
            f"/api/users/{user.id}/submissions", headers=auth_headers(user)
        )

        # Assert
        assert created.status_code == status.HTTP_201_CREATED
        parsed = SubmissionResponse.model_validate(created.json())
        assert parsed.status == "pending"
        assert parsed.url == "https://example.com/great-read"
        assert [item["id"] for item in listed.json()] == [parsed.id]

    @pytest.mark.asyncio
    async def test_invalid_url_rejected(
        self,
        async_http_client: AsyncClient,
        make_user: UserFactory,
        auth_headers: Headers,
    ) -> None:
        user = await make_user("badurl@example.com")

        response = await async_http_client.post(
            f"/api/users/{user.id}/submissions",
            json={"url": "not a url", "title": "Broken"},
            headers=auth_headers(user),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
