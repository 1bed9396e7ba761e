"""Integration tests for API rate limiting."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import pytest
from fastapi import status
from httpx import AsyncClient

from app.api.schemas import CreateSubmissionRequest, RegisterUserRequest, UserResponse
from app.db.models.user import User

UserFactory = Callable[..., Awaitable[User]]


class TestRateLimits:
    """Test API rate limit behavior."""

    @pytest.mark.asyncio
    async def test_register_rate_limited(self, async_http_client: AsyncClient) -> None:
        """Test that registration is rate-limited."""
        # Arrange
        statuses: list[int] = []
        for i in range(6):
            payload = RegisterUserRequest(
                email=f"rate-limit-{i}@example.com",
                password="password123",
                confirm_password="password123",
            ).model_dump()
            # Act
            response = await async_http_client.post(
                "/api/auth/register",
                json=payload,
            )
            statuses.append(response.status_code)
            if response.status_code == status.HTTP_201_CREATED:
                UserResponse.model_validate(response.json())
        # Assert
        assert statuses[:5] == [status.HTTP_201_CREATED] * 5
        assert statuses[5] == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["error"] == "rate_limited"

    @pytest.mark.asyncio
    async def test_submissions_rate_limited_per_user(
        self,
        async_http_client: AsyncClient,
        make_user: UserFactory,
        auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        """Test that submissions are limited per user, not per address."""
        # Arrange
        first = await make_user("limit-user@example.com")
        second = await make_user("limit-user-2@example.com")
        statuses: list[int] = []

        # Act
        for i in range(11):
            payload = CreateSubmissionRequest(
                url=f"https://example.com/post-{i}", title=f"Post {i}"
            ).model_dump(mode="json")
            response = await async_http_client.post(
                f"/api/users/{first.id}/submissions",
                json=payload,
                headers=auth_headers(first),
            )
            statuses.append(response.status_code)

        second_payload = CreateSubmissionRequest(
            url="https://example.com/other", title="Other"
        ).model_dump(mode="json")
        second_response = await async_http_client.post(
            f"/api/users/{second.id}/submissions",
            json=second_payload,
            headers=auth_headers(second),
        )

        # Assert
        assert statuses[:10] == [status.HTTP_201_CREATED] * 10
        assert statuses[10] == status.HTTP_429_TOO_MANY_REQUESTS
        assert second_response.status_code == status.HTTP_201_CREATED
