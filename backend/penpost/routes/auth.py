"""
Penpost Backend — Authentication Routes
=========================================

What:  Registration, login and "who am I" endpoints under /api/auth.
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from penpost.database import get_db_session
from penpost.dependencies import get_auth_service, get_current_user_id
from penpost.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from penpost.schemas.common import ErrorResponse
from penpost.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=UserResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """The response never contains the password or its hash."""
    return await auth_service.register(
        db=db,
        username=body.username,
        email=body.email,
        password=body.password,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange email and password for a session token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    return await auth_service.login(db=db, email=body.email, password=body.password)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="The account the bearer token belongs to",
)
async def me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return await auth_service.get_user(db=db, user_id=user_id)
