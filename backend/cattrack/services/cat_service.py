"""
CatTrack Backend: Cat Service (Business Logic)
===============================================

What:  CRUD for cats, the owner/admin authorization gates and the
       bounding-box area query.
How:   Composes FileService (uploads, EXIF GPS), the geo helpers and the
       database session passed in by the route.
Who:   Called by the cats routes.

Create Flow (POST /cats):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Upload  │───▶│  Validate   │───▶│  Resolve     │───▶│  Store   │
    │  (Route) │    │  & Store    │    │  location    │    │  (DB)    │
    └──────────┘    │  (FileServ) │    │  form / EXIF │    └──────────┘
                    └─────────────┘    └──────────────┘
    On failure after the file is stored, the file is removed again.

Authorization Gates:
    Owner gate: the mutation query filters on id AND owner_id, so a cat
                owned by someone else is indistinguishable from a missing
                one (NOT_FOUND).
    Role gate:  admin variants check principal.role before touching the
                database and return FORBIDDEN for non-admins.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cattrack.exceptions import (
    CatTrackError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from cattrack.geo import (
    Corner,
    GeoJSON,
    point_geometry,
    polygon_bounds,
    polygon_covers,
    rectangle_bounds,
)
from cattrack.models.cat import Cat
from cattrack.models.user import User
from cattrack.schemas.cat import CatCreate, CatResponse, CatUpdate, GeoPoint, PointGeometry
from cattrack.schemas.user import UserPublic
from cattrack.services.auth_service import Principal
from cattrack.services.file_service import file_service
from cattrack.services.results import MutationResult

logger = logging.getLogger(__name__)


class CatService:
    """
    Business logic layer for cat operations.

    Error Handling Strategy:
        SQLAlchemy failures are wrapped in DatabaseError. Application
        exceptions propagate unchanged. Authorization mismatches are not
        exceptions here; they come back as MutationResult outcomes.
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_cats(self, db: AsyncSession) -> List[CatResponse]:
        return await self._fetch_all(db, select(Cat).order_by(Cat.created_at.desc()))

    async def list_cats_for_owner(
        self, db: AsyncSession, principal: Principal
    ) -> List[CatResponse]:
        query = (
            select(Cat)
            .where(Cat.owner_id == principal.id)
            .order_by(Cat.created_at.desc())
        )
        return await self._fetch_all(db, query)

    async def get_cat(self, db: AsyncSession, cat_id: uuid.UUID) -> CatResponse:
        """
        Raises:
            NotFoundError: no cat with this id (→ 404)
        """
        try:
            cat = await self._find(db, cat_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching cat %s: %s", cat_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the cat. Please try again.",
                context={"cat_id": str(cat_id)},
            )
        if cat is None:
            raise NotFoundError(resource="cat", resource_id=str(cat_id))
        return self.to_response(cat)

    async def find_in_bounding_box(
        self, db: AsyncSession, top_right: Corner, bottom_left: Corner
    ) -> List[CatResponse]:
        """Cats located inside the rectangle spanned by two corners."""
        polygon = rectangle_bounds(top_right, bottom_left)
        return await self.find_within(db, polygon)

    async def find_within(self, db: AsyncSession, polygon: GeoJSON) -> List[CatResponse]:
        """
        Cats whose location lies inside (or on the edge of) a GeoJSON polygon.

        How:
            1. Range prefilter on the polygon's bounding box (indexed columns)
            2. Exact point-in-polygon test on the remaining rows

        For the axis-aligned rectangles from find_in_bounding_box the
        prefilter is already exact; step 2 only drops rows for other
        polygon shapes.
        """
        min_lat, min_lng, max_lat, max_lng = polygon_bounds(polygon)
        query = (
            select(Cat)
            .where(
                Cat.latitude.between(min_lat, max_lat),
                Cat.longitude.between(min_lng, max_lng),
            )
            .order_by(Cat.created_at.desc())
        )
        try:
            result = await db.execute(query)
            candidates = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error in area query: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not search this area. Please try again.",
                context={"error_type": type(e).__name__},
            )

        cats = [c for c in candidates if polygon_covers(polygon, c.latitude, c.longitude)]
        logger.debug(
            "Area query matched %d of %d candidates", len(cats), len(candidates)
        )
        return [self.to_response(c) for c in cats]

    # ── Create ────────────────────────────────────────────────────────────

    async def create_cat(
        self,
        db: AsyncSession,
        principal: Principal,
        data: CatCreate,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> CatResponse:
        """
        Store the uploaded image and create a cat owned by the principal.

        The owner always comes from the principal; the location comes from
        `data.location` or, when absent, from the image's EXIF GPS block.

        Raises:
            ValidationError: bad upload, or no location available (→ 400)
            ForbiddenError:  the principal's account no longer exists (→ 403)
            FileStorageError: the image could not be written (→ 500)
        """
        absolute_path: Optional[str] = None

        try:
            absolute_path, relative_path = await file_service.validate_and_store(
                filename=filename,
                content=content,
                content_length=content_length,
            )

            location = data.location or self._location_from_image(content)

            owner = await db.get(User, principal.id)
            if owner is None:
                raise ForbiddenError(message="token not valid")

            cat = Cat(
                id=uuid.uuid4(),
                cat_name=data.cat_name,
                weight=data.weight,
                birthdate=data.birthdate,
                filename=relative_path,
                latitude=location.lat,
                longitude=location.lng,
                owner_id=owner.id,
                owner=owner,
            )
            db.add(cat)
            await db.flush()
            logger.info("Cat %s created by user %s", cat.id, owner.id)
            return self.to_response(cat)

        except Exception as e:
            if absolute_path:
                await file_service.cleanup_file(absolute_path)
            if isinstance(e, CatTrackError):
                raise
            logger.error("Unexpected error in create_cat: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving the cat. Please try again.",
                context={"original_error": type(e).__name__},
            )

    # ── Owner-scoped mutations ────────────────────────────────────────────

    async def update_cat(
        self,
        db: AsyncSession,
        principal: Principal,
        cat_id: uuid.UUID,
        changes: CatUpdate,
    ) -> MutationResult[CatResponse]:
        return await self._update(db, cat_id, changes, owner_id=principal.id)

    async def delete_cat(
        self, db: AsyncSession, principal: Principal, cat_id: uuid.UUID
    ) -> MutationResult[CatResponse]:
        return await self._delete(db, cat_id, owner_id=principal.id)

    # ── Admin mutations ───────────────────────────────────────────────────

    async def update_cat_as_admin(
        self,
        db: AsyncSession,
        principal: Principal,
        cat_id: uuid.UUID,
        changes: CatUpdate,
    ) -> MutationResult[CatResponse]:
        if not principal.is_admin:
            logger.warning("Non-admin %s attempted admin update of cat %s", principal.id, cat_id)
            return MutationResult.forbidden()
        return await self._update(db, cat_id, changes, owner_id=None)

    async def delete_cat_as_admin(
        self, db: AsyncSession, principal: Principal, cat_id: uuid.UUID
    ) -> MutationResult[CatResponse]:
        if not principal.is_admin:
            logger.warning("Non-admin %s attempted admin delete of cat %s", principal.id, cat_id)
            return MutationResult.forbidden()
        return await self._delete(db, cat_id, owner_id=None)

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def to_response(cat: Cat) -> CatResponse:
        return CatResponse(
            id=cat.id,
            cat_name=cat.cat_name,
            weight=cat.weight,
            birthdate=cat.birthdate,
            filename=cat.filename,
            location=PointGeometry(**point_geometry(cat.latitude, cat.longitude)),
            owner=UserPublic.model_validate(cat.owner),
        )

    def _location_from_image(self, content: bytes) -> GeoPoint:
        corner = file_service.read_gps_location(content)
        if corner is None:
            raise ValidationError(
                message="Image has no GPS data; provide lat and lng: location",
                field="location",
            )
        return GeoPoint(lat=corner.lat, lng=corner.lng)

    async def _find(
        self,
        db: AsyncSession,
        cat_id: uuid.UUID,
        owner_id: Optional[uuid.UUID] = None,
    ) -> Optional[Cat]:
        query = select(Cat).where(Cat.id == cat_id)
        if owner_id is not None:
            query = query.where(Cat.owner_id == owner_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def _fetch_all(self, db: AsyncSession, query) -> List[CatResponse]:
        try:
            result = await db.execute(query)
            return [self.to_response(c) for c in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing cats: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve cats. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def _update(
        self,
        db: AsyncSession,
        cat_id: uuid.UUID,
        changes: CatUpdate,
        owner_id: Optional[uuid.UUID],
    ) -> MutationResult[CatResponse]:
        try:
            cat = await self._find(db, cat_id, owner_id=owner_id)
            if cat is None:
                return MutationResult.not_found()

            values = changes.model_dump(exclude_unset=True)
            location = values.pop("location", None)
            for field, value in values.items():
                setattr(cat, field, value)
            if location is not None:
                cat.latitude = location["lat"]
                cat.longitude = location["lng"]

            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating cat %s: %s", cat_id, str(e))
            raise DatabaseError(context={"cat_id": str(cat_id)})

        logger.info("Cat %s updated", cat_id)
        return MutationResult.updated(self.to_response(cat))

    async def _delete(
        self,
        db: AsyncSession,
        cat_id: uuid.UUID,
        owner_id: Optional[uuid.UUID],
    ) -> MutationResult[CatResponse]:
        try:
            cat = await self._find(db, cat_id, owner_id=owner_id)
            if cat is None:
                return MutationResult.not_found()

            deleted = self.to_response(cat)
            await db.delete(cat)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting cat %s: %s", cat_id, str(e))
            raise DatabaseError(context={"cat_id": str(cat_id)})

        logger.info("Cat %s deleted", cat_id)
        return MutationResult.deleted(deleted)


# ── Singleton Instance ────────────────────────────────────────────────────
cat_service = CatService()
