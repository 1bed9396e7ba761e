from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from app.core.config import settings
from app.db import models as _models  # noqa: F401  (registers tables on Base.metadata)
from app.db.base import Base
from app.db.session import dispose_engine, get_engine, open_session
from app.llm.client import LLMClient
from app.services.topic_service import TopicService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """FastAPI lifespan context manager for startup/shutdown events.

    A database that cannot be reached does not stop the process: the app
    starts with ``database_ready`` false and only the health endpoints answer.
    """
    try:
        # Startup
        if settings.environment != "test":
            app.state.database_ready = await prepare_database(
                getattr(app.state, "llm_client", None)
            )
        else:
            app.state.database_ready = True
        yield

        # Shutdown
    finally:
        await dispose_engine()


async def _ping() -> None:
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def verify_database_connection(
    retries: int | None = None,
    delay_seconds: float | None = None,
    timeout_seconds: float | None = None,
) -> None:
    """Verify database connectivity, retrying with a fixed delay. Raises if all attempts fail."""
    if retries is None:
        retries = settings.db_connect_retries
    if delay_seconds is None:
        delay_seconds = settings.db_connect_retry_delay_seconds
    if timeout_seconds is None:
        timeout_seconds = settings.db_connect_timeout_seconds

    last_error: Exception | None = None
    for attempt in range(1, retries + 1):
        try:
            await asyncio.wait_for(_ping(), timeout=timeout_seconds)
            return
        except Exception as e:
            last_error = e
            logger.warning(f"Database connection attempt {attempt}/{retries} failed: {e}")
            if attempt < retries and delay_seconds > 0:
                await asyncio.sleep(delay_seconds)
    raise RuntimeError(f"Failed to connect to database: {last_error}") from last_error


async def initialize_database(llm_client: LLMClient | None = None) -> None:
    """Create missing tables, seed the topic catalogue and embed topics when an LLM is set."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with open_session() as session:
        topics = TopicService(session)
        await topics.initialize_topics()
        if llm_client is not None:
            embedded = await topics.embed_missing_topics(llm_client)
            if embedded:
                logger.info(f"Embedded {embedded} topics")
        await session.commit()


async def prepare_database(llm_client: LLMClient | None = None) -> bool:
    try:
        await verify_database_connection()
        await initialize_database(llm_client)
    except Exception as e:
        logger.error(f"Database unavailable at startup, serving health checks only: {e}")
        return False
    return True
