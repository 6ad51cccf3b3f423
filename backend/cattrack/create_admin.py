"""
Create or promote an admin account.

Registration through the API always stores role='user', so the first
admin has to be made from the command line:

    python -m cattrack.create_admin --email admin@example.com --user-name admin
    python -m cattrack.create_admin --email existing@example.com --promote
"""

import argparse
import asyncio
import getpass
import logging
import sys
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cattrack.config import settings
from cattrack.database import async_session_factory, dispose_engine
from cattrack.models.user import User
from cattrack.services.auth_service import AuthService

logger = logging.getLogger(__name__)


async def ensure_admin(
    db: AsyncSession,
    auth: AuthService,
    email: str,
    user_name: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    """
    Promote the account with this email, or create it as an admin.

    Creating requires user_name and password; promoting ignores them.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is not None:
        user.role = "admin"
        logger.info("Promoted %s to admin", user.id)
    else:
        if not user_name or not password:
            raise ValueError(f"No account for {email}; --user-name and a password are required")
        user = User(
            id=uuid.uuid4(),
            user_name=user_name,
            email=email,
            role="admin",
            password=await auth.hash_password(password),
        )
        db.add(user)
        logger.info("Created admin %s", user.id)

    await db.flush()
    return user


async def _run(args: argparse.Namespace) -> None:
    auth = AuthService(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        hash_method=settings.password_hash_method,
    )
    password = None
    if not args.promote:
        password = getpass.getpass("Password for the new admin: ")

    try:
        async with async_session_factory() as session:
            user = await ensure_admin(session, auth, args.email, args.user_name, password)
            await session.commit()
            print(f"{user.email} is an admin (id={user.id})")
    finally:
        await dispose_engine()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote a CatTrack admin.")
    parser.add_argument("--email", required=True, help="Account email (the login username)")
    parser.add_argument("--user-name", help="User name when creating a new account")
    parser.add_argument(
        "--promote",
        action="store_true",
        help="Only promote an existing account; do not prompt for a password",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    try:
        asyncio.run(_run(args))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
