"""
CatTrack Backend: Authentication Service
=========================================

What:  Password hashing, credential verification and bearer-token handling.
How:   One AuthService instance is built in create_app() from settings and
       stored on app.state; routes receive it through the get_auth_service
       dependency. Nothing is registered globally.
Who:   Used by the login route, registration/profile updates (hashing) and
       the get_current_principal dependency (token verification).

Token format (HS256 JWT by default):
    {
        "sub": "<user uuid>",
        "user_name": "...",
        "email": "...",
        "role": "user" | "admin",
        "iat": 1700000000,
        "exp": 1700086400
    }

    The principal is rebuilt from the token claims alone; no database
    lookup happens on token verification.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from werkzeug.security import check_password_hash, generate_password_hash

from cattrack.exceptions import DatabaseError
from cattrack.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request."""

    id: uuid.UUID
    user_name: str
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, user_name=user.user_name, email=user.email, role=user.role)


class AuthService:
    """
    Verifies credentials and bearer tokens.

    Args:
        secret_key: HMAC key used to sign and verify tokens
        algorithm: JWT algorithm (HS256/HS384/HS512)
        expire_minutes: token lifetime
        hash_method: werkzeug.security method string for new password hashes
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 60 * 24,
        hash_method: str = "scrypt",
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire = timedelta(minutes=expire_minutes)
        self._hash_method = hash_method
        # Checked against when the username is unknown, so both failure
        # paths spend the same hashing time
        self._placeholder_hash = generate_password_hash(
            uuid.uuid4().hex, method=hash_method
        )

    # ── Passwords ─────────────────────────────────────────────────────────

    async def hash_password(self, password: str) -> str:
        return await run_in_threadpool(
            generate_password_hash, password, method=self._hash_method
        )

    async def verify_password(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(check_password_hash, password_hash, password)

    async def verify_credentials(
        self, db: AsyncSession, username: str, password: str
    ) -> Optional[Principal]:
        """
        Check a username (account email) and password.

        Returns the Principal on success and None on any mismatch. Unknown
        usernames and wrong passwords are indistinguishable to the caller.

        Raises:
            DatabaseError: the user lookup itself failed
        """
        try:
            result = await db.execute(select(User).where(User.email == username))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Credential lookup failed: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        if user is None:
            await self.verify_password(password, self._placeholder_hash)
            logger.info("Login rejected: unknown account")
            return None

        if not await self.verify_password(password, user.password):
            logger.info("Login rejected: bad password for user %s", user.id)
            return None

        logger.info("Login accepted for user %s", user.id)
        return Principal.from_user(user)

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, principal: Principal, now: Optional[datetime] = None) -> str:
        """Sign a bearer token carrying the principal's claims."""
        issued = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(principal.id),
            "user_name": principal.user_name,
            "email": principal.email,
            "role": principal.role,
            "iat": issued,
            "exp": issued + self._expire,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify_token(self, token: str) -> Optional[Principal]:
        """
        Decode and validate a bearer token.

        Returns None for a bad signature, an expired token, missing claims
        or a malformed subject.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.debug("Token rejected: %s", str(e))
            return None

        try:
            return Principal(
                id=uuid.UUID(payload["sub"]),
                user_name=payload.get("user_name", ""),
                email=payload.get("email", ""),
                role=payload.get("role", "user"),
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("Token rejected: malformed subject")
            return None
