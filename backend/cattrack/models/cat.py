"""
CatTrack Backend: Cat SQLAlchemy Model
=======================================

What:  ORM model representing the `cats` table.
Who:   Used by CatService for CRUD and the bounding-box query.

Table Design:
    - owner_id: FK to users.id, ON DELETE CASCADE; set from the acting
      principal at creation and never taken from client input
    - filename: relative path of the uploaded image under STORAGE_ROOT
    - latitude / longitude: one geographic point, exposed in the API as a
      GeoJSON Point ([lng, lat])

    Composite index on (latitude, longitude) serves the bounding-box
    prefilter (`latitude BETWEEN ... AND longitude BETWEEN ...`).
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cattrack.database import Base
from cattrack.models.user import User


class Cat(Base):
    """
    Represents a geotagged cat owned by exactly one user.

    Query Patterns:
        - List all / by owner: owner eagerly joined for the response
        - Get by id: primary key lookup
        - Owner-scoped mutation: WHERE id = :id AND owner_id = :principal
        - Area query: latitude/longitude range prefilter, then polygon test
    """

    __tablename__ = "cats"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    cat_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Kilograms
    weight: Mapped[float] = mapped_column(Float, nullable=False)

    birthdate: Mapped[date] = mapped_column(Date, nullable=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # lazy="joined": every cat response carries its owner, and async
    # sessions cannot lazy-load on attribute access
    owner: Mapped[User] = relationship(lazy="joined")

    __table_args__ = (
        Index("idx_cats_location", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return (
            f"<Cat(id={self.id}, cat_name='{self.cat_name}', "
            f"owner_id={self.owner_id})>"
        )
