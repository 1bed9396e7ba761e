"""API-layer dependencies: request-scoped wiring (UoW, current user, readiness)."""

from app.api.dependencies.current_user import (
    ensure_self_or_admin,
    get_current_user,
    require_admin,
)
from app.api.dependencies.readiness import require_database_ready
from app.api.dependencies.unit_of_work import UnitOfWork, get_uow

__all__ = [
    "UnitOfWork",
    "ensure_self_or_admin",
    "get_current_user",
    "get_uow",
    "require_admin",
    "require_database_ready",
]
