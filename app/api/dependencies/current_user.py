"""Dependencies that provide the authenticated user from the request."""

from __future__ import annotations

from fastapi import Depends, status

from app.api.dependencies.unit_of_work import UnitOfWork, get_uow
from app.core.auth import oauth2_scheme, verify_token
from app.core.errors import build_http_error, forbidden_error
from app.db.models.user import User


async def get_current_user(
    token: str = Depends(oauth2_scheme), uow: UnitOfWork = Depends(get_uow)
) -> User:
    """FastAPI dependency to get the current authenticated user."""
    credentials_exception = build_http_error(
        status_code=status.HTTP_401_UNAUTHORIZED,
        error="unauthorized",
        message="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise credentials_exception

    user = await uow.auth_service.get_user_by_id(user_id)
    if user is None:
        raise credentials_exception

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise forbidden_error("Admin access required")
    return current_user


def ensure_self_or_admin(user_id: str, current_user: User) -> None:
    """Users may only act on their own id; admins may act on any."""
    if current_user.id != user_id and not current_user.is_admin:
        raise forbidden_error()
