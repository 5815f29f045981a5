"""
Penpost Backend — Request Dependencies
========================================

What:  FastAPI dependencies that hand routes their settings, services and the
       caller's identity.
How:   Everything is read from `request.app.state`, where `create_app()` put
       it. Nothing here reads the environment or holds module-level state.

Identity:
    get_optional_identity  → None without an Authorization header, the user id
                             with a valid bearer token, 401 with an invalid one
    get_current_user_id    → like the above, but a missing token is also 401
    get_write_identity     → used by every mutating post/category route;
                             requires a token when REQUIRE_AUTH_FOR_WRITES is on
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from penpost.config import Settings
from penpost.exceptions import AuthenticationError
from penpost.services.auth_service import AuthService
from penpost.services.category_service import CategoryService
from penpost.services.file_service import FileService
from penpost.services.post_service import PostService

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is decided by the dependencies below
bearer_scheme = HTTPBearer(auto_error=False, description="Token from POST /api/auth/login")


# ── Application objects ───────────────────────────────────────────────────
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service


def get_category_service(request: Request) -> CategoryService:
    return request.app.state.category_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


# ── Identity ──────────────────────────────────────────────────────────────
async def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[uuid.UUID]:
    """
    Parses `Authorization: Bearer <token>` if present.

    HTTPBearer(auto_error=False) returns None both for a missing header and
    for a header with another scheme; the second case is still an error here.
    """
    if credentials is None:
        if request.headers.get("Authorization"):
            raise AuthenticationError("Authorization header must be 'Bearer <token>'")
        return None

    return auth_service.verify(credentials.credentials)


async def get_current_user_id(
    identity: Optional[uuid.UUID] = Depends(get_optional_identity),
) -> uuid.UUID:
    if identity is None:
        raise AuthenticationError("Authentication required")
    return identity


async def get_write_identity(
    identity: Optional[uuid.UUID] = Depends(get_optional_identity),
    settings: Settings = Depends(get_settings),
) -> Optional[uuid.UUID]:
    """
    Identity for mutating routes.

    Returns None (anonymous write) only when REQUIRE_AUTH_FOR_WRITES is off.
    """
    if identity is None and settings.require_auth_for_writes:
        raise AuthenticationError("Authentication required")
    return identity
