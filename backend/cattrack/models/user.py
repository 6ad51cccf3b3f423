"""
CatTrack Backend: User SQLAlchemy Model
========================================

What:  ORM model representing the `users` table.
Who:   Used by UserService, AuthService and the Cat owner relationship.

Table Design:
    - UUID primary key
    - user_name / email: unique, indexed (login looks users up by email)
    - role: 'user' or 'admin'; registration always stores 'user'
    - password: werkzeug.security hash string, never the plain text
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from cattrack.database import Base

USER_ROLES = ("user", "admin")


class User(Base):
    """
    Represents a registered account.

    Lifecycle:
        1. Created on registration (role forced to 'user')
        2. Updated only through /users/me by the account itself
        3. Deleted only through /users/me; owned cats are deleted with it
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="user",
        server_default=text("'user'"),
    )

    # Salted hash produced by werkzeug.security.generate_password_hash
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, user_name='{self.user_name}', role='{self.role}')>"
