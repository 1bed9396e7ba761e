from __future__ import annotations

import re

from pydantic import Field, PostgresDsn, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_POSTGRES_PARTS: tuple[str, ...] = (
    "postgres_user",
    "postgres_password",
    "postgres_host",
    "postgres_port",
    "postgres_db",
)


class MissingRequiredSettingsError(Exception):
    """Raised when required settings are missing."""

    def __init__(self, missing_fields: list[str]) -> None:
        """Initialize with list of missing field names."""
        self.missing_fields = missing_fields
        super().__init__(f"Missing required environment variables: {', '.join(missing_fields)}")


class InvalidSettingsError(Exception):
    """Raised when settings are invalid."""

    def __init__(self, invalid_fields: list[tuple[str, str]]) -> None:
        """Initialize with list of invalid field names and messages."""
        self.invalid_fields = invalid_fields
        summary = ", ".join(f"{field}: {message}" for field, message in invalid_fields)
        super().__init__(f"Invalid environment variables: {summary}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Required environment variables
    jwt_secret_key: str = Field(..., description="JWT secret key for token signing (required)")
    jwt_access_token_expire_minutes: int = Field(
        ..., description="JWT token expiration in minutes (required)"
    )

    # Database: either DATABASE_URL or the POSTGRES_* parts
    database_url: str | None = Field(default=None, description="Database connection URL")
    postgres_user: str | None = None
    postgres_password: str | None = None
    postgres_host: str | None = None
    postgres_port: int | None = None
    postgres_db: str | None = None

    # Rate limit storage: explicit url, redis parts, or in-process memory
    rate_limit_storage_url: str | None = Field(default=None, description="Rate limit storage URL")
    redis_host: str | None = None
    redis_port: int = 6379
    redis_db: int = 0

    # Without a key the classifier stays on the keyword fallback
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    chat_model: str = "gpt-4o-mini"

    # Optional environment variables (defaults provided)
    app_name: str = "dropdaily-api"
    environment: str = "local"
    log_level: str = "INFO"
    jwt_algorithm: str = "HS256"

    # Database startup checks
    db_connect_retries: int = Field(default=3, ge=1)
    db_connect_retry_delay_seconds: float = Field(default=1.0, ge=0)
    db_connect_timeout_seconds: float = Field(default=5.0, gt=0)

    # Feeds
    feeds_file: str = "feeds.json"
    feeds_reload_minutes: int = Field(default=30, ge=1)
    feed_fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    feed_user_agent: str = "DropDaily/1.0 (Content Discovery Platform)"
    feed_concurrency: int = Field(default=5, ge=1)
    feed_batch_delay_seconds: float = Field(default=1.0, ge=0)

    # Ingestion
    ingestion_max_age_days: int = Field(default=7, ge=1)
    ingestion_min_content_length: int = Field(default=50, ge=0)
    ingestion_batch_size: int = Field(default=10, ge=1)

    # Classifier
    classifier_min_similarity: float = Field(default=0.65, ge=0, le=1)
    classifier_max_classifications: int = Field(default=5, ge=1)
    classifier_batch_size: int = Field(default=5, ge=1)
    classifier_batch_delay_seconds: float = Field(default=1.0, ge=0)
    topic_cache_ttl_seconds: int = Field(default=3600, ge=0)

    # Daily drops
    daily_drop_max_items: int = Field(default=3, ge=1)
    daily_drop_lookback_days: int = Field(default=7, ge=1)
    daily_drop_history_days: int = Field(default=30, ge=1)

    # Content cleanup
    cleanup_retention_days: int = Field(default=90, ge=1)
    cleanup_batch_size: int = Field(default=1000, ge=1)
    cleanup_batch_pause_seconds: float = Field(default=0.1, ge=0)
    cleanup_schedule_total_threshold: int = Field(default=10000, ge=0)
    cleanup_schedule_older_threshold: int = Field(default=2000, ge=0)

    @model_validator(mode="after")
    def build_derived_urls(self) -> Settings:
        """Build URLs from components when missing."""
        if self.database_url is None and not self.missing_database_parts():
            self.database_url = str(
                PostgresDsn.build(
                    scheme="postgresql+asyncpg",
                    username=self.postgres_user,
                    password=self.postgres_password,
                    host=self.postgres_host or "",
                    port=self.postgres_port,
                    path=self.postgres_db,
                )
            )
        if self.rate_limit_storage_url is None:
            if self.redis_host:
                self.rate_limit_storage_url = (
                    f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"
                )
            else:
                self.rate_limit_storage_url = "memory://"
        return self

    def missing_database_parts(self) -> list[str]:
        return [name for name in _POSTGRES_PARTS if getattr(self, name) is None]

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @staticmethod
    def _is_strong_jwt_secret(secret: str) -> bool:
        if len(secret) < 32:
            return False
        has_lower = re.search(r"[a-z]", secret) is not None
        has_upper = re.search(r"[A-Z]", secret) is not None
        has_digit = re.search(r"\d", secret) is not None
        has_symbol = re.search(r"[^\w\s]", secret) is not None
        return has_lower and has_upper and has_digit and has_symbol

    @model_validator(mode="after")
    def validate_jwt_secret_strength(self) -> Settings:
        if not self._is_strong_jwt_secret(self.jwt_secret_key):
            raise ValueError(
                "JWT secret key must be at least 32 characters and include upper, lower, "
                "number, and symbol characters."
            )
        return self


def validate_settings() -> Settings:
    """Validate settings and raise exception for missing required fields.

    Raises:
        MissingRequiredSettingsError: If required environment variables are missing
        InvalidSettingsError: If values are present but invalid
    """
    try:
        loaded = Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        missing_fields: list[str] = []
        for error in e.errors():
            if error["type"] == "missing":
                field_name = error["loc"][0] if error["loc"] else "unknown"
                missing_fields.append(str(field_name).upper())

        if missing_fields:
            raise MissingRequiredSettingsError(missing_fields) from e

        invalid_fields: list[tuple[str, str]] = []
        for error in e.errors():
            field_path = ".".join(str(part) for part in error.get("loc", []))
            message = error.get("msg", "Invalid value")
            invalid_fields.append((field_path or "unknown", message))

        if invalid_fields:
            raise InvalidSettingsError(invalid_fields) from e

        # Re-raise if it's a different validation error
        raise

    if loaded.database_url is None:
        missing = ["DATABASE_URL"] + [name.upper() for name in loaded.missing_database_parts()]
        raise MissingRequiredSettingsError(missing)

    return loaded


# Validate settings at import time.
# Exceptions will propagate to the importing module (e.g., app/main.py)
settings = validate_settings()
