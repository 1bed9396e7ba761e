from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI

from app.core import lifespan as lifespan_module
from app.core.lifespan import lifespan, prepare_database, verify_database_connection


@pytest.mark.asyncio
async def test_verify_database_connection_success() -> None:
    """Test that database connection verification succeeds when DB is available."""
    with patch("app.core.lifespan._ping", new_callable=AsyncMock) as mock_ping:
        await verify_database_connection(retries=3, delay_seconds=0)

        mock_ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_verify_database_connection_retries_then_succeeds() -> None:
    with patch(
        "app.core.lifespan._ping",
        new_callable=AsyncMock,
        side_effect=[ConnectionError("refused"), None],
    ) as mock_ping:
        await verify_database_connection(retries=3, delay_seconds=0)

        assert mock_ping.await_count == 2


@pytest.mark.asyncio
async def test_verify_database_connection_failure() -> None:
    """Test that database connection verification raises once every attempt fails."""
    with patch(
        "app.core.lifespan._ping",
        new_callable=AsyncMock,
        side_effect=ConnectionError("Connection failed"),
    ) as mock_ping:
        with pytest.raises(RuntimeError, match="Failed to connect to database"):
            await verify_database_connection(retries=2, delay_seconds=0)

        assert mock_ping.await_count == 2


@pytest.mark.asyncio
async def test_verify_database_connection_zero_retries_makes_no_attempt(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(lifespan_module.settings, "db_connect_retries", 5)
    with patch("app.core.lifespan._ping", new_callable=AsyncMock) as mock_ping:
        with pytest.raises(RuntimeError, match="Failed to connect to database"):
            await verify_database_connection(retries=0, delay_seconds=0)

        mock_ping.assert_not_awaited()


@pytest.mark.asyncio
async def test_prepare_database_reports_unavailable_database() -> None:
    with patch(
        "app.core.lifespan.verify_database_connection",
        new_callable=AsyncMock,
        side_effect=RuntimeError("DB failed"),
    ), patch("app.core.lifespan.initialize_database", new_callable=AsyncMock) as mock_init:
        assert await prepare_database() is False

        mock_init.assert_not_awaited()


@pytest.mark.asyncio
async def test_prepare_database_initializes_schema_and_topics() -> None:
    with patch(
        "app.core.lifespan.verify_database_connection", new_callable=AsyncMock
    ), patch("app.core.lifespan.initialize_database", new_callable=AsyncMock) as mock_init:
        assert await prepare_database() is True

        mock_init.assert_awaited_once_with(None)


@pytest.mark.asyncio
async def test_lifespan_skips_db_check_in_test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that lifespan skips database verification in test environment."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "test")
    with patch("app.core.lifespan.prepare_database", new_callable=AsyncMock) as mock_prepare:
        app = FastAPI()

        async with lifespan(app):
            assert app.state.database_ready is True

        mock_prepare.assert_not_awaited()


@pytest.mark.asyncio
async def test_lifespan_marks_database_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    """A failed startup check leaves the app running with the database marked unavailable."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "local")
    with patch(
        "app.core.lifespan.prepare_database", new_callable=AsyncMock, return_value=False
    ) as mock_prepare:
        app = FastAPI()

        async with lifespan(app):
            assert app.state.database_ready is False

        mock_prepare.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_disposes_engine_on_shutdown(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that lifespan disposes engine on shutdown."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "test")
    with patch("app.core.lifespan.dispose_engine", new_callable=AsyncMock) as mock_dispose:
        app = FastAPI()

        async with lifespan(app):
            pass

        mock_dispose.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_disposes_engine_even_if_startup_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that engine is disposed even if startup raises."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "local")
    with patch("app.core.lifespan.dispose_engine", new_callable=AsyncMock) as mock_dispose:
        with patch(
            "app.core.lifespan.prepare_database",
            new_callable=AsyncMock,
            side_effect=RuntimeError("DB failed"),
        ):
            app = FastAPI()

            with pytest.raises(RuntimeError):
                async with lifespan(app):
                    pass

            # Engine should still be disposed even if startup fails
            mock_dispose.assert_awaited_once()
