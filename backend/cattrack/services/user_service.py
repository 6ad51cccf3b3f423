"""
CatTrack Backend: User Service
===============================

What:  Registration, lookup and self-service update/delete of accounts.
Who:   Called by the users routes.

Visibility:
    Every read returns UserPublic (id, user_name, email). Password hashes
    and roles never leave this layer.

Ownership:
    Update and delete are keyed on the principal's own id, so a user can
    only ever touch their own account. A principal whose account has been
    removed gets NOT_FOUND.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cattrack.exceptions import DatabaseError, NotFoundError, ValidationError
from cattrack.models.user import User
from cattrack.schemas.user import UserCreate, UserPublic, UserUpdate
from cattrack.services.auth_service import AuthService, Principal
from cattrack.services.results import MutationResult

logger = logging.getLogger(__name__)


class UserService:
    """Stateless business logic for user accounts."""

    async def list_users(self, db: AsyncSession) -> List[UserPublic]:
        try:
            result = await db.execute(select(User).order_by(User.user_name))
            return [UserPublic.model_validate(u) for u in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> UserPublic:
        """
        Raises:
            NotFoundError: no user with this id (→ 404)
        """
        try:
            user = await self._get_by_id(db, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"user_id": str(user_id)},
            )
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return UserPublic.model_validate(user)

    async def create_user(
        self, db: AsyncSession, data: UserCreate, auth: AuthService
    ) -> UserPublic:
        """
        Register a new account.

        The role is always 'user' and the password is stored hashed.

        Raises:
            ValidationError: user_name or email already taken (→ 400)
        """
        user = User(
            id=uuid.uuid4(),
            user_name=data.user_name,
            email=str(data.email),
            role="user",
            password=await auth.hash_password(data.password),
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError:
            raise ValidationError(
                message="User name or email is already in use",
                field="email",
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("User registered: %s", user.id)
        return UserPublic.model_validate(user)

    async def update_current_user(
        self,
        db: AsyncSession,
        principal: Principal,
        changes: UserUpdate,
        auth: AuthService,
    ) -> MutationResult[UserPublic]:
        """Apply a partial update to the principal's own account."""
        try:
            user = await self._get_by_id(db, principal.id)
            if user is None:
                return MutationResult.not_found()

            values = changes.model_dump(exclude_unset=True)
            if "password" in values:
                values["password"] = await auth.hash_password(values["password"])
            if "email" in values:
                values["email"] = str(values["email"])
            for field, value in values.items():
                setattr(user, field, value)

            await db.flush()
        except IntegrityError:
            raise ValidationError(
                message="User name or email is already in use",
                field="email",
            )
        except SQLAlchemyError as e:
            logger.error("Database error updating user %s: %s", principal.id, str(e))
            raise DatabaseError(context={"user_id": str(principal.id)})

        logger.info("User %s updated fields: %s", user.id, sorted(values))
        return MutationResult.updated(UserPublic.model_validate(user))

    async def delete_current_user(
        self, db: AsyncSession, principal: Principal
    ) -> MutationResult[UserPublic]:
        """Delete the principal's own account; owned cats go with it."""
        try:
            user = await self._get_by_id(db, principal.id)
            if user is None:
                return MutationResult.not_found()

            deleted = UserPublic.model_validate(user)
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting user %s: %s", principal.id, str(e))
            raise DatabaseError(context={"user_id": str(principal.id)})

        logger.info("User deleted: %s", deleted.id)
        return MutationResult.deleted(deleted)

    async def _get_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


user_service = UserService()
