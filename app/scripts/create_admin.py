"""Create an admin account, or promote an existing user to admin.

Usage: python -m app.scripts.create_admin --email admin@example.com --password secret
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from app.core.lifespan import initialize_database, verify_database_connection
from app.core.logging import configure_logging
from app.db.models.user import UserRole
from app.db.session import dispose_engine, open_session
from app.services.auth_service import AuthenticationError, AuthService

logger = logging.getLogger(__name__)


async def create_admin(
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> str:
    """Return the admin's user id."""
    await verify_database_connection()
    await initialize_database()

    async with open_session() as session:
        auth = AuthService(session)
        user = await auth.get_user_by_email(email)
        if user is None:
            user = await auth.register_user(
                email, password, first_name=first_name, last_name=last_name, role=UserRole.ADMIN
            )
            logger.info(f"Created admin user {user.email}")
        elif user.role != UserRole.ADMIN:
            await auth.promote_to_admin(user)
            logger.info(f"Promoted {user.email} to admin")
        else:
            logger.info(f"{user.email} is already an admin")
        await session.commit()
        return user.id


async def _run(args: argparse.Namespace) -> int:
    try:
        await create_admin(args.email, args.password, args.first_name, args.last_name)
    except AuthenticationError as e:
        logger.error(f"Could not create admin: {e}")
        return 1
    finally:
        await dispose_engine()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote a DropDaily admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    args = parser.parse_args()

    configure_logging()
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
