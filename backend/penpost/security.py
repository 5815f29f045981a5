"""
Penpost Backend — Password Hashing and Session Tokens
=======================================================

What:  bcrypt password hashing and PyJWT token issue/verify.
How:   Plain functions with no settings lookups of their own; AuthService
       passes in the secret, algorithm, cost and expiry from Settings.
Who:   AuthService (register, login, verify).

Token claims:
    sub  user id as a string
    iat  issuance time (seconds since epoch)
    exp  expiry; only present when expires_minutes > 0
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from penpost.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


# ── Passwords ─────────────────────────────────────────────────────────────
def hash_password(raw_password: str, rounds: int = 10) -> str:
    """Returns a bcrypt hash (salt embedded) for `raw_password`."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(raw_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    """
    Checks `raw_password` against a stored bcrypt hash.

    A malformed stored hash is reported as a mismatch, never as an error.
    """
    try:
        return bcrypt.checkpw(raw_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


async def hash_password_async(raw_password: str, rounds: int = 10) -> str:
    # bcrypt is CPU-bound; keep it off the event loop
    return await asyncio.to_thread(hash_password, raw_password, rounds)


async def verify_password_async(raw_password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, raw_password, password_hash)


# ── Tokens ────────────────────────────────────────────────────────────────
def create_access_token(
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
    now: Optional[datetime] = None,
) -> str:
    """
    Issues a signed session token for `subject`.

    Args:
        subject: User id (stringified UUID)
        secret: HMAC signing key
        algorithm: HS256 / HS384 / HS512
        expires_minutes: Lifetime; 0 means the token carries no exp claim
        now: Issuance time, for tests; defaults to the current UTC time
    """
    issued_at = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "iat": int(issued_at.timestamp()),
    }
    if expires_minutes > 0:
        payload["exp"] = int((issued_at + timedelta(minutes=expires_minutes)).timestamp())
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Dict[str, Any]:
    """
    Verifies signature and claims and returns the payload.

    Raises:
        AuthenticationError: bad signature, wrong key, expired, malformed,
            or missing `sub`/`iat`.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Token rejected: %s", type(e).__name__)
        raise AuthenticationError("Invalid token")
