"""
CatTrack Backend: Request Dependencies
=======================================

What:  FastAPI dependencies shared by the routes: the AuthService lookup
       and the bearer-token principal.
How:   HTTPBearer runs with auto_error=False so a missing header reaches
       get_current_principal, which reports it through the same
       ForbiddenError as a bad token.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cattrack.exceptions import ForbiddenError
from cattrack.services.auth_service import AuthService, Principal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Token from POST /api/v1/auth/login")


def get_auth_service(request: Request) -> AuthService:
    """The AuthService built by create_app()."""
    return request.app.state.auth_service


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Principal:
    """
    Resolve the bearer token into a Principal.

    Raises:
        ForbiddenError: no Authorization header, wrong scheme, or a token
                        that fails verification (→ 403)
    """
    if credentials is None:
        raise ForbiddenError(message="token not valid")

    principal = auth.verify_token(credentials.credentials)
    if principal is None:
        logger.info("Rejected bearer token")
        raise ForbiddenError(message="token not valid")
    return principal
