"""
Penpost Backend — Authentication Service
==========================================

What:  Registration, login, token verification and identity lookup.
How:   Validates input with the auth schemas, hashes with bcrypt in a worker
       thread, signs tokens with PyJWT. Secret, algorithm, expiry and bcrypt
       cost all come from the Settings object handed to the constructor.
Who:   Auth routes and the identity dependency in penpost.dependencies.

Flows:
    register  validate → uniqueness check → hash → insert → UserResponse
    login     lookup by email → verify hash → token
    verify    decode token → user id (UUID)

Login failures:
    Unknown email and wrong password raise the same AuthenticationError.
    For an unknown email a throwaway bcrypt check still runs, so both
    failures take about as long.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from penpost.config import Settings
from penpost.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
)
from penpost.models.user import User
from penpost.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from penpost.schemas.common import validate_input
from penpost.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    hash_password_async,
    verify_password_async,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """
    Business logic for accounts and session tokens.

    Stateless apart from configuration; one instance per application.
    """

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.expires_minutes = settings.jwt_expires_minutes
        self.bcrypt_rounds = settings.bcrypt_rounds
        # Verified against when the email is unknown; never matches
        self._dummy_hash = hash_password(uuid.uuid4().hex, self.bcrypt_rounds)

    async def register(
        self,
        db: AsyncSession,
        username: Any,
        email: Any,
        password: Any,
    ) -> UserResponse:
        """
        Creates a user.

        Raises:
            ValidationError: missing/blank fields, bad email, password outside 6-72 bytes
            ConflictError: email already registered (also when a concurrent
                insert wins the race and the unique index fires)
            DatabaseError: any other store failure
        """
        data = validate_input(
            RegisterRequest,
            {"username": username, "email": email, "password": password},
        )

        try:
            existing = await db.execute(select(User.id).where(User.email == data.email))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(message="Email is already registered", field="email")

            user = User(
                username=data.username,
                email=data.email,
                password_hash=await hash_password_async(data.password, self.bcrypt_rounds),
            )
            db.add(user)
            await db.flush()

        except ConflictError:
            raise
        except IntegrityError:
            raise ConflictError(message="Email is already registered", field="email")
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", type(e).__name__, exc_info=True)
            raise DatabaseError(context={"operation": "register"})

        logger.info("User registered: %s", user.id)
        return UserResponse.model_validate(user)

    async def login(self, db: AsyncSession, email: Any, password: Any) -> TokenResponse:
        """
        Exchanges credentials for a session token.

        Raises:
            ValidationError: missing email/password or malformed email
            AuthenticationError: unknown email or wrong password (same message)
        """
        data = validate_input(LoginRequest, {"email": email, "password": password})

        try:
            result = await db.execute(select(User).where(User.email == data.email))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", type(e).__name__, exc_info=True)
            raise DatabaseError(context={"operation": "login"})

        if user is None:
            await verify_password_async(data.password, self._dummy_hash)
            logger.info("Login failed: unknown email")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not await verify_password_async(data.password, user.password_hash):
            logger.info("Login failed: wrong password for user %s", user.id)
            raise AuthenticationError(INVALID_CREDENTIALS)

        token = create_access_token(
            subject=str(user.id),
            secret=self.secret,
            algorithm=self.algorithm,
            expires_minutes=self.expires_minutes,
        )
        logger.info("User logged in: %s", user.id)
        return TokenResponse(token=token)

    def verify(self, token: str) -> uuid.UUID:
        """
        Returns the user id a token was issued for.

        Raises:
            AuthenticationError: bad signature/key, expired, or `sub` not a UUID
        """
        payload = decode_access_token(token, self.secret, self.algorithm)
        try:
            return uuid.UUID(str(payload["sub"]))
        except (KeyError, ValueError):
            raise AuthenticationError("Invalid token")

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> UserResponse:
        """Raises NotFoundError when the account no longer exists."""
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return UserResponse.model_validate(user)

