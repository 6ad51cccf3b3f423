"""
CatTrack Backend: Login Route
==============================

POST /api/v1/auth/login exchanges an email and password for a bearer token.
An unknown email and a wrong password produce the same 401 response.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cattrack.database import get_db_session
from cattrack.dependencies import get_auth_service
from cattrack.exceptions import AuthenticationError
from cattrack.schemas.common import ErrorResponse
from cattrack.schemas.user import LoginRequest, LoginResponse, UserPublic
from cattrack.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Credentials rejected", "model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    principal = await auth.verify_credentials(db, credentials.username, credentials.password)
    if principal is None:
        raise AuthenticationError()

    return LoginResponse(
        token=auth.issue_token(principal),
        user=UserPublic(id=principal.id, user_name=principal.user_name, email=principal.email),
    )
