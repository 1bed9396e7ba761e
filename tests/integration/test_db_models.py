"""Integration tests for database models.

These tests verify:
- Model relationships
- CASCADE and SET NULL delete behavior
- Database constraints (uniqueness, foreign keys)
- Default values
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models.content import Content, ContentStatus, ContentTopic
from app.db.models.daily_drop import DailyDrop
from app.db.models.topic import Topic
from app.db.models.user import User
from app.db.models.user_preference import UserPreference
from app.db.models.user_submission import UserSubmission


def _unique_email() -> str:
    """Generate a unique email for each test."""
    return f"test_{uuid.uuid4().hex[:8]}@example.com"


def _unique_url() -> str:
    """Generate a unique URL for each test."""
    return f"https://example.com/{uuid.uuid4().hex[:8]}"


async def _user(session: AsyncSession) -> User:
    user = User(email=_unique_email(), hashed_password="hashed")
    session.add(user)
    await session.flush()
    return user


async def _content(session: AsyncSession, url: str | None = None) -> Content:
    content = Content(title="Item", url=url or _unique_url(), source="rss")
    session.add(content)
    await session.flush()
    return content


class TestModelRelationships:
    """Test SQLAlchemy model relationships."""

    @pytest.mark.asyncio
    async def test_user_preferences_relationship(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        """Test that User.preferences returns the weighted topics."""
        # Arrange
        user = await _user(db_session)
        db_session.add_all(
            [
                UserPreference(user_id=user.id, topic_id=topics["Design"].id, weight=0.5),
                UserPreference(user_id=user.id, topic_id=topics["AI/ML"].id),
            ]
        )
        await db_session.commit()

        # Act
        result = await db_session.execute(
            select(User)
            .where(User.id == user.id)
            .options(selectinload(User.preferences).selectinload(UserPreference.topic))
            .execution_options(populate_existing=True)
        )
        loaded = result.scalar_one()

        # Assert
        assert {(p.topic.name, p.weight) for p in loaded.preferences} == {
            ("Design", 0.5),
            ("AI/ML", 1.0),
        }

    @pytest.mark.asyncio
    async def test_content_topics_relationship(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        """Test that Content.topics returns tagged topics with confidence."""
        # Arrange
        content = Content(title="Item", url=_unique_url(), source="rss")
        content.topics.append(ContentTopic(topic_id=topics["Business"].id, confidence=0.7))
        db_session.add(content)
        await db_session.commit()

        # Act
        result = await db_session.execute(
            select(Content)
            .where(Content.id == content.id)
            .options(selectinload(Content.topics).selectinload(ContentTopic.topic))
            .execution_options(populate_existing=True)
        )
        loaded = result.scalar_one()

        # Assert
        assert [(t.topic.name, t.confidence) for t in loaded.topics] == [("Business", 0.7)]

    @pytest.mark.asyncio
    async def test_daily_drop_content_relationship(self, db_session: AsyncSession) -> None:
        """Test that DailyDrop.content returns the dropped item."""
        # Arrange
        user = await _user(db_session)
        content = await _content(db_session)
        drop = DailyDrop(
            user_id=user.id, content_id=content.id, drop_date=datetime.now(UTC), match_score=0.4
        )
        db_session.add(drop)
        await db_session.commit()

        # Act
        result = await db_session.execute(
            select(DailyDrop)
            .where(DailyDrop.id == drop.id)
            .options(selectinload(DailyDrop.content))
        )
        loaded = result.scalar_one()

        # Assert
        assert loaded.content.id == content.id


class TestCascadeDelete:
    """Test CASCADE delete behavior."""

    @pytest.mark.asyncio
    async def test_orm_delete_user_removes_preferences(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        # Arrange
        user = await _user(db_session)
        db_session.add(UserPreference(user_id=user.id, topic_id=topics["Design"].id))
        await db_session.commit()
        user_id = user.id
        loaded = (
            await db_session.execute(
                select(User).where(User.id == user_id).options(selectinload(User.preferences))
            )
        ).scalar_one()

        # Act
        await db_session.delete(loaded)
        await db_session.commit()

        # Assert
        result = await db_session.execute(
            select(UserPreference).where(UserPreference.user_id == user_id)
        )
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_delete_user_cascades_in_database(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        """Deleting a user row removes its preferences, drops and submissions."""
        # Arrange
        user = await _user(db_session)
        content = await _content(db_session)
        db_session.add_all(
            [
                UserPreference(user_id=user.id, topic_id=topics["Design"].id),
                DailyDrop(
                    user_id=user.id,
                    content_id=content.id,
                    drop_date=datetime.now(UTC),
                    match_score=0.3,
                ),
                UserSubmission(user_id=user.id, url=_unique_url(), title="Link"),
            ]
        )
        await db_session.commit()
        user_id = user.id

        # Act
        # Use execute with delete statement to let database handle CASCADE
        await db_session.execute(delete(User).where(User.id == user_id))
        await db_session.commit()

        # Assert
        for model in (UserPreference, DailyDrop, UserSubmission):
            result = await db_session.execute(select(model).where(model.user_id == user_id))
            assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_delete_content_nulls_submission_link(self, db_session: AsyncSession) -> None:
        # Arrange
        user = await _user(db_session)
        content = await _content(db_session)
        submission = UserSubmission(
            user_id=user.id, url=content.url, title="Link", content_id=content.id
        )
        db_session.add(submission)
        await db_session.commit()
        submission_id = submission.id

        # Act
        await db_session.execute(delete(Content).where(Content.id == content.id))
        await db_session.commit()

        # Assert
        db_session.expire_all()
        refreshed = await db_session.get(UserSubmission, submission_id)
        assert refreshed is not None
        assert refreshed.content_id is None


class TestConstraints:
    """Test database constraints."""

    @pytest.mark.asyncio
    async def test_user_email_uniqueness_constraint(self, db_session: AsyncSession) -> None:
        # Arrange
        user = await _user(db_session)
        await db_session.commit()

        # Act
        db_session.add(User(email=user.email, hashed_password="hashed2"))

        # Assert
        with pytest.raises(IntegrityError):
            await db_session.commit()

        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_content_url_uniqueness_constraint(self, db_session: AsyncSession) -> None:
        # Arrange
        shared_url = _unique_url()
        await _content(db_session, shared_url)
        await db_session.commit()

        # Act
        db_session.add(Content(title="Copy", url=shared_url, source="twitter"))

        # Assert
        with pytest.raises(IntegrityError):
            await db_session.commit()

        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_content_topic_pair_is_unique(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        # Arrange
        content = await _content(db_session)
        topic_id = topics["Design"].id
        db_session.add(ContentTopic(content_id=content.id, topic_id=topic_id, confidence=0.5))
        await db_session.commit()

        # Act
        db_session.add(ContentTopic(content_id=content.id, topic_id=topic_id, confidence=0.9))

        # Assert
        with pytest.raises(IntegrityError):
            await db_session.commit()

        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_preference_pair_is_unique(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        # Arrange
        user = await _user(db_session)
        topic_id = topics["Design"].id
        db_session.add(UserPreference(user_id=user.id, topic_id=topic_id))
        await db_session.commit()

        # Act
        db_session.add(UserPreference(user_id=user.id, topic_id=topic_id, weight=0.2))

        # Assert
        with pytest.raises(IntegrityError):
            await db_session.commit()

        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_one_drop_per_item_per_day(self, db_session: AsyncSession) -> None:
        # Arrange
        user = await _user(db_session)
        content = await _content(db_session)
        day = datetime(2024, 5, 1, tzinfo=UTC)
        db_session.add(
            DailyDrop(user_id=user.id, content_id=content.id, drop_date=day, match_score=0.1)
        )
        await db_session.commit()

        # Act
        db_session.add(
            DailyDrop(user_id=user.id, content_id=content.id, drop_date=day, match_score=0.9)
        )

        # Assert
        with pytest.raises(IntegrityError):
            await db_session.commit()

        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_preference_requires_valid_user_id(
        self, db_session: AsyncSession, topics: dict[str, Topic]
    ) -> None:
        """Test that UserPreference enforces the foreign key on user_id."""
        # Arrange
        db_session.add(UserPreference(user_id="missing-user", topic_id=topics["Design"].id))

        # Act & Assert
        with pytest.raises(IntegrityError):
            await db_session.commit()

        await db_session.rollback()


class TestDefaults:
    """Test column defaults applied on insert."""

    @pytest.mark.asyncio
    async def test_model_defaults(self, db_session: AsyncSession) -> None:
        # Arrange
        user = await _user(db_session)
        content = await _content(db_session)
        submission = UserSubmission(user_id=user.id, url=_unique_url(), title="Link")
        db_session.add(submission)

        # Act
        await db_session.commit()

        # Assert
        assert user.role == "user"
        assert user.is_onboarded is False
        assert content.status == ContentStatus.APPROVED
        assert content.view_count == 0
        assert content.is_saved is False
        assert content.content_type == "article"
        assert submission.status == "pending"
        assert submission.suggested_topics == []
