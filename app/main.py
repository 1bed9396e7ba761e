from __future__ import annotations

import logging
import sys
import types
from importlib.metadata import PackageNotFoundError, version
from typing import Any, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ExceptionHandler

from app.api.meta_api import router as meta_router
from app.api.router import router as api_router
from app.core.config import InvalidSettingsError, MissingRequiredSettingsError
from app.core.errors import (
    http_exception_handler,
    rate_limit_exception_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from app.core.lifespan import lifespan
from app.core.logging import configure_logging
from app.core.rate_limit import limiter
from app.db.session import open_session
from app.ingestion.feeds_loader import FeedsLoader
from app.ingestion.rss_parser import RSSParser
from app.llm.client import OpenAIClient
from app.services.auth_service import auth_service_factory_provider
from app.services.classifier import Classifier, TopicEmbeddingCache
from app.services.cleanup_service import ContentCleanupService
from app.services.content_service import ContentIngestor, ContentService
from app.services.daily_drop_service import DailyDropService
from app.services.drop_service import DropService
from app.services.email_service import EmailService
from app.services.ingestion_service import IngestionService
from app.services.preference_service import preference_service_factory_provider
from app.services.social_media_service import social_media_service_factory_provider
from app.services.stats_service import StatsService
from app.services.submission_service import submission_service_factory_provider
from app.services.topic_service import TopicService

# Import settings - this may raise MissingRequiredSettingsError
try:
    from app.core.config import settings
except MissingRequiredSettingsError as e:
    print("ERROR: Missing required environment variables:", file=sys.stderr)
    for field in e.missing_fields:
        print(f"  - {field}", file=sys.stderr)
    print(
        "\nPlease set these in your .env file (see .env.example for reference)",
        file=sys.stderr,
    )
    sys.exit(1)
except InvalidSettingsError as e:
    print("ERROR: Invalid environment variable values:", file=sys.stderr)
    for field, message in e.invalid_fields:
        print(f"  - {field}: {message}", file=sys.stderr)
    print(
        "\nPlease update these in your .env file (see .env.example for reference)",
        file=sys.stderr,
    )
    sys.exit(1)


def build_services(llm_client: OpenAIClient | None) -> dict[str, Any]:
    """Service registry: callables are per-session factories, the rest are shared."""
    classifier = Classifier(
        llm_client,
        TopicEmbeddingCache(ttl_seconds=settings.topic_cache_ttl_seconds),
        min_similarity=settings.classifier_min_similarity,
        max_classifications=settings.classifier_max_classifications,
        batch_size=settings.classifier_batch_size,
        batch_delay_seconds=settings.classifier_batch_delay_seconds,
        embedding_dimensions=settings.embedding_dimensions,
    )
    ingestor = ContentIngestor(classifier)
    feeds_loader = FeedsLoader(settings.feeds_file)

    ingestion_service = IngestionService(
        open_session,
        feeds_loader,
        RSSParser(
            timeout=settings.feed_fetch_timeout_seconds,
            user_agent=settings.feed_user_agent,
        ),
        ingestor,
        reload_minutes=settings.feeds_reload_minutes,
        concurrency=settings.feed_concurrency,
        batch_delay_seconds=settings.feed_batch_delay_seconds,
        max_age_days=settings.ingestion_max_age_days,
        min_content_length=settings.ingestion_min_content_length,
        batch_size=settings.ingestion_batch_size,
    )
    daily_drop_service = DailyDropService(
        open_session,
        EmailService(),
        max_items=settings.daily_drop_max_items,
        lookback_days=settings.daily_drop_lookback_days,
        history_days=settings.daily_drop_history_days,
        embedding_dimensions=settings.embedding_dimensions,
    )
    cleanup_service = ContentCleanupService(
        open_session,
        retention_days=settings.cleanup_retention_days,
        batch_size=settings.cleanup_batch_size,
        batch_pause_seconds=settings.cleanup_batch_pause_seconds,
        schedule_total_threshold=settings.cleanup_schedule_total_threshold,
        schedule_older_threshold=settings.cleanup_schedule_older_threshold,
    )

    return {
        "auth_service": auth_service_factory_provider(),
        "topic_service": TopicService,
        "preference_service": preference_service_factory_provider(settings.embedding_dimensions),
        "content_service": ContentService,
        "drop_service": DropService,
        "submission_service": submission_service_factory_provider(ingestor),
        "social_media_service": social_media_service_factory_provider(ingestor),
        "stats_service": StatsService,
        "ingestion_service": ingestion_service,
        "daily_drop_service": daily_drop_service,
        "cleanup_service": cleanup_service,
        "feeds_loader": feeds_loader,
    }


def create_app() -> FastAPI:
    configure_logging()

    try:
        api_version = version("dropdaily-api")
    except PackageNotFoundError:
        api_version = "0.1.0"  # Fallback if package not installed
        logging.warning("dropdaily-api package not found, using fallback version 0.1.0")

    is_debug_mode = settings.environment == "local"
    app = FastAPI(
        title=settings.app_name,
        version=api_version,
        debug=is_debug_mode,
        lifespan=lifespan,
    )
    app.add_exception_handler(
        StarletteHTTPException, cast(ExceptionHandler, http_exception_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, request_validation_exception_handler)
    )
    app.add_exception_handler(
        RateLimitExceeded, cast(ExceptionHandler, rate_limit_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, unhandled_exception_handler))
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.include_router(meta_router, tags=["meta"])
    app.include_router(api_router, prefix="/api")

    llm_client = OpenAIClient() if settings.llm_enabled else None
    app.state.llm_client = llm_client
    app.state.database_ready = True
    app.state.services = types.MappingProxyType(build_services(llm_client))

    return app


app = create_app()
