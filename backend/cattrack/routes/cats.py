"""
CatTrack Backend: Cat Route Handlers
=====================================

What:  /api/v1/cats endpoints: listing, area search, creation with image
       upload, owner-scoped and admin mutations.
How:   Handlers parse the request, make one CatService call and shape the
       response. Authorization outcomes come back as MutationResult and are
       unwrapped into 404/403 here.

Route order matters: the fixed paths (/area, /user) are declared before
/{cat_id} so they are not captured by the id parameter.
"""

import logging
import uuid
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from cattrack.database import get_db_session
from cattrack.dependencies import get_current_principal
from cattrack.exceptions import ValidationError
from cattrack.geo import Corner, parse_corner
from cattrack.schemas.cat import CatCreate, CatMessageResponse, CatResponse, CatUpdate
from cattrack.schemas.common import ErrorResponse
from cattrack.services.auth_service import Principal
from cattrack.services.cat_service import cat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cats", tags=["Cats"])

_AUTH_RESPONSES = {
    403: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
}


def top_right_corner(
    raw: str = Query(..., alias="topRight", description="North-east corner as 'lat,lng'"),
) -> Corner:
    return parse_corner(raw, field="topRight")


def bottom_left_corner(
    raw: str = Query(..., alias="bottomLeft", description="South-west corner as 'lat,lng'"),
) -> Corner:
    return parse_corner(raw, field="bottomLeft")


# ── Reads ─────────────────────────────────────────────────────────────────


@router.get("", response_model=List[CatResponse], summary="List all cats")
async def list_cats(db: AsyncSession = Depends(get_db_session)) -> List[CatResponse]:
    return await cat_service.list_cats(db)


@router.get(
    "/area",
    response_model=List[CatResponse],
    responses={400: {"description": "Malformed corner", "model": ErrorResponse}},
    summary="Cats inside a bounding box",
)
async def list_cats_in_area(
    top_right: Corner = Depends(top_right_corner),
    bottom_left: Corner = Depends(bottom_left_corner),
    db: AsyncSession = Depends(get_db_session),
) -> List[CatResponse]:
    """
    Return cats located inside the rectangle spanned by two corners.

    The corners may be given in either diagonal order; the rectangle is
    normalized per axis.
    """
    return await cat_service.find_in_bounding_box(db, top_right, bottom_left)


@router.get(
    "/user",
    response_model=List[CatResponse],
    responses=_AUTH_RESPONSES,
    summary="Cats owned by the current user",
)
async def list_my_cats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> List[CatResponse]:
    return await cat_service.list_cats_for_owner(db, principal)


@router.get(
    "/{cat_id}",
    response_model=CatResponse,
    responses={404: {"description": "No such cat", "model": ErrorResponse}},
    summary="Get one cat",
)
async def get_cat(
    cat_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> CatResponse:
    return await cat_service.get_cat(db, cat_id)


# ── Create ────────────────────────────────────────────────────────────────


@router.post(
    "",
    status_code=201,
    response_model=CatMessageResponse,
    responses={
        400: {"description": "Invalid fields, file or missing location", "model": ErrorResponse},
        **_AUTH_RESPONSES,
    },
    summary="Create a cat with an image",
    description=(
        "Multipart upload of an image (PNG, JPG, GIF, WEBP) plus the cat's fields. "
        "The location comes from lat/lng when given, otherwise from the image's "
        "EXIF GPS data. The owner is always the authenticated user."
    ),
)
async def create_cat(
    file: UploadFile = File(..., description="Cat image"),
    cat_name: Optional[str] = Form(None),
    weight: Optional[str] = Form(None),
    birthdate: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CatMessageResponse:
    data = _cat_create_from_form(cat_name, weight, birthdate, lat, lng)
    content = await file.read()

    logger.info(
        "Received cat upload: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )

    try:
        cat = await cat_service.create_cat(
            db=db,
            principal=principal,
            data=data,
            filename=file.filename or "upload.jpg",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()

    return CatMessageResponse(message="cat created", data=cat)


def _cat_create_from_form(
    cat_name: Optional[str],
    weight: Optional[str],
    birthdate: Optional[str],
    lat: Optional[str],
    lng: Optional[str],
) -> CatCreate:
    """Assemble CatCreate from form strings, reporting every problem at once."""
    if (lat is None) != (lng is None):
        raise ValidationError(
            message="lat and lng must be given together: location",
            field="location",
        )

    raw = {"cat_name": cat_name, "weight": weight, "birthdate": birthdate}
    payload = {k: v for k, v in raw.items() if v is not None}
    if lat is not None:
        payload["location"] = {"lat": lat, "lng": lng}

    try:
        return CatCreate.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError.from_errors(e.errors())


# ── Owner-scoped mutations ────────────────────────────────────────────────


@router.put(
    "/{cat_id}",
    response_model=CatMessageResponse,
    responses={404: {"description": "No such cat owned by you", "model": ErrorResponse}, **_AUTH_RESPONSES},
    summary="Update one of your cats",
)
async def update_cat(
    cat_id: uuid.UUID,
    changes: CatUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CatMessageResponse:
    result = await cat_service.update_cat(db, principal, cat_id, changes)
    return CatMessageResponse(message="cat updated", data=result.unwrap("cat", str(cat_id)))


@router.delete(
    "/{cat_id}",
    response_model=CatMessageResponse,
    responses={404: {"description": "No such cat owned by you", "model": ErrorResponse}, **_AUTH_RESPONSES},
    summary="Delete one of your cats",
)
async def delete_cat(
    cat_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CatMessageResponse:
    result = await cat_service.delete_cat(db, principal, cat_id)
    return CatMessageResponse(message="cat deleted", data=result.unwrap("cat", str(cat_id)))


# ── Admin mutations ───────────────────────────────────────────────────────


@router.put(
    "/admin/{cat_id}",
    response_model=CatMessageResponse,
    responses={
        403: {"description": "Not an admin, or invalid token", "model": ErrorResponse},
        404: {"description": "No such cat", "model": ErrorResponse},
    },
    summary="Update any cat (admin)",
)
async def update_cat_as_admin(
    cat_id: uuid.UUID,
    changes: CatUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CatMessageResponse:
    result = await cat_service.update_cat_as_admin(db, principal, cat_id, changes)
    return CatMessageResponse(message="cat updated", data=result.unwrap("cat", str(cat_id)))


@router.delete(
    "/admin/{cat_id}",
    response_model=CatMessageResponse,
    responses={
        403: {"description": "Not an admin, or invalid token", "model": ErrorResponse},
        404: {"description": "No such cat", "model": ErrorResponse},
    },
    summary="Delete any cat (admin)",
)
async def delete_cat_as_admin(
    cat_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CatMessageResponse:
    result = await cat_service.delete_cat_as_admin(db, principal, cat_id)
    return CatMessageResponse(message="cat deleted", data=result.unwrap("cat", str(cat_id)))
