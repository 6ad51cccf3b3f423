"""
CatTrack Backend: User Route Handlers
======================================

What:  /api/v1/users endpoints: listing, registration, the token echo and
       self-service update/delete.
How:   Thin handlers over UserService. The AuthService needed for password
       hashing comes from app.state through get_auth_service.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cattrack.database import get_db_session
from cattrack.dependencies import get_auth_service, get_current_principal
from cattrack.schemas.common import ErrorResponse
from cattrack.schemas.user import UserCreate, UserMessageResponse, UserPublic, UserUpdate
from cattrack.services.auth_service import AuthService, Principal
from cattrack.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("", response_model=List[UserPublic], summary="List users")
async def list_users(db: AsyncSession = Depends(get_db_session)) -> List[UserPublic]:
    return await user_service.list_users(db)


@router.post(
    "",
    status_code=201,
    response_model=UserMessageResponse,
    responses={400: {"description": "Invalid fields or duplicate account", "model": ErrorResponse}},
    summary="Register a user",
)
async def register_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> UserMessageResponse:
    """Create an account. The role is always 'user', whatever the body says."""
    user = await user_service.create_user(db, data, auth)
    return UserMessageResponse(message="user created", data=user)


@router.get(
    "/token",
    response_model=UserPublic,
    responses={403: {"description": "Missing or invalid bearer token", "model": ErrorResponse}},
    summary="Identity carried by the bearer token",
)
async def check_token(principal: Principal = Depends(get_current_principal)) -> UserPublic:
    return UserPublic(id=principal.id, user_name=principal.user_name, email=principal.email)


@router.put(
    "/me",
    response_model=UserMessageResponse,
    responses={
        403: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Account no longer exists", "model": ErrorResponse},
    },
    summary="Update your own account",
)
async def update_me(
    changes: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> UserMessageResponse:
    result = await user_service.update_current_user(db, principal, changes, auth)
    return UserMessageResponse(message="user updated", data=result.unwrap("user", str(principal.id)))


@router.delete(
    "/me",
    response_model=UserMessageResponse,
    responses={
        403: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Account no longer exists", "model": ErrorResponse},
    },
    summary="Delete your own account and its cats",
)
async def delete_me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> UserMessageResponse:
    result = await user_service.delete_current_user(db, principal)
    return UserMessageResponse(message="user deleted", data=result.unwrap("user", str(principal.id)))


@router.get(
    "/{user_id}",
    response_model=UserPublic,
    responses={404: {"description": "No such user", "model": ErrorResponse}},
    summary="Get one user",
)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> UserPublic:
    return await user_service.get_user(db, user_id)
