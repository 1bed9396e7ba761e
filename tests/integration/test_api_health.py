"""Integration tests for health API endpoints."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, status
from httpx import AsyncClient

from app.api.schemas import HealthResponse


@pytest.mark.asyncio
async def test_health(async_http_client: AsyncClient) -> None:
    """Test that the health endpoint reports a healthy server."""
    # Act
    response = await async_http_client.get("/health")

    # Assert
    assert response.status_code == status.HTTP_200_OK
    parsed = HealthResponse.model_validate(response.json())
    assert parsed.status == "healthy"
    assert parsed.server == "running"


@pytest.mark.asyncio
async def test_api_refuses_requests_while_database_unavailable(
    async_http_client: AsyncClient, async_app: FastAPI
) -> None:
    """Test that API routes answer 503 while health checks keep working."""
    # Arrange
    async_app.state.database_ready = False

    # Act
    api_response = await async_http_client.get("/api/topics")
    health_response = await async_http_client.get("/health")

    # Assert
    assert api_response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert api_response.json()["error"] == "service_unavailable"
    assert health_response.status_code == status.HTTP_200_OK
