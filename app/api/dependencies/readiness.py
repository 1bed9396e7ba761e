from __future__ import annotations

from fastapi import Request

from app.core.errors import database_unavailable_error


async def require_database_ready(request: Request) -> None:
    """Reject requests that need the database while it is unavailable."""
    if not getattr(request.app.state, "database_ready", True):
        raise database_unavailable_error()
