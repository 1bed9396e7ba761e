from __future__ import annotations

import logging

from app.core.config import settings

# Third-party loggers that log every request at INFO.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai")


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the API process and the pipeline jobs."""
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
