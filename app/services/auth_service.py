"""User service layer - business logic for user operations."""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_password_hash, normalize_email, verify_password
from app.db.models.user import User, UserRole


class AuthenticationError(Exception):
    """Base error for authentication-related failures."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class UserAlreadyExistsError(AuthenticationError):
    """Raised when attempting to register a user that already exists."""

    def __init__(self, message: str = "Email already registered") -> None:
        super().__init__(message, "user_exists")


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid."""

    def __init__(self, message: str = "Incorrect email or password") -> None:
        super().__init__(message, "invalid_credentials")


class PasswordTooLongError(AuthenticationError):
    """Raised when password exceeds the maximum allowed length (72 bytes)."""

    def __init__(
        self, message: str = "Password must not exceed 72 bytes when UTF-8 encoded"
    ) -> None:
        super().__init__(message, "password_too_long")


def _is_unique_violation(error: IntegrityError) -> bool:
    # asyncpg reports 23505; SQLite says "UNIQUE constraint failed"
    error_str = str(error.orig).lower()
    return (
        "unique" in error_str
        or "duplicate" in error_str
        or "23505" in str(error.orig)
        or "ix_users_email" in error_str
    )


class AuthService:
    """Registration, login and profile updates within one session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self._session.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: str) -> User | None:
        return await self._session.get(User, user_id)

    async def register_user(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Register a new user.

        Args:
            email: User's email address, stored lowercased
            password: Plain text password (will be hashed)
            first_name: Optional first name
            last_name: Optional last name
            role: ``user`` unless created by an operator

        Raises:
            UserAlreadyExistsError: If email is already registered
            PasswordTooLongError: If password exceeds 72 bytes when UTF-8 encoded
        """
        email = normalize_email(email)
        if await self.get_user_by_email(email) is not None:
            raise UserAlreadyExistsError()

        try:
            hashed_password = get_password_hash(password)
        except ValueError as e:
            raise PasswordTooLongError() from e

        try:
            result = await self._session.execute(
                insert(User)
                .values(
                    email=email,
                    hashed_password=hashed_password,
                    first_name=first_name,
                    last_name=last_name,
                    role=role.value,
                )
                .returning(User)
            )
            new_user = result.scalar_one()
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise UserAlreadyExistsError() from e
            raise

        return new_user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate a user with email and password.

        Raises:
            InvalidCredentialsError: If email or password is incorrect
            PasswordTooLongError: If password exceeds 72 bytes when UTF-8 encoded
        """
        user = await self.get_user_by_email(email)
        if user is None:
            raise InvalidCredentialsError()

        try:
            password_valid = verify_password(password, user.hashed_password)
        except ValueError as e:
            raise PasswordTooLongError() from e

        if not password_valid:
            raise InvalidCredentialsError()

        return user

    async def update_profile(
        self,
        user: User,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        await self._session.flush()
        return user

    async def promote_to_admin(self, user: User) -> User:
        user.role = UserRole.ADMIN.value
        await self._session.flush()
        return user


def auth_service_factory_provider() -> Callable[[AsyncSession], AuthService]:
    return AuthService
