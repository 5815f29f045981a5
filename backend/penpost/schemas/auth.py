"""
Penpost Backend — Authentication Schemas
==========================================

What:  Request and response models for /api/auth.
How:   Input models forbid unknown fields and trim username/email. The public user
       models (`UserResponse`, `AuthorSummary`) have no password field at all,
       so a hash can never be serialized by accident.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# bcrypt only looks at the first 72 bytes of its input
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """
    Body of POST /api/auth/register.

    Username and email are trimmed; the password is taken byte for byte.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=50, description="Display name")
    email: EmailStr = Field(description="Login email, unique across users")
    password: str = Field(description="Raw password, 6 to 72 bytes")

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Password is required")
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    """Body of POST /api/auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Public representation of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    created_at: datetime


class AuthorSummary(BaseModel):
    """Author as embedded in a post."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str


class TokenResponse(BaseModel):
    token: str = Field(description="Signed session token; send as `Authorization: Bearer <token>`")
