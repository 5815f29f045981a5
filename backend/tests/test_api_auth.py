"""
Penpost Backend — Auth API Tests
==================================

What:  End-to-end tests of /api/auth against a temporary SQLite database.

What we test:
    ✅ Register returns the account without any password material
    ✅ Duplicate email → 409, still one stored account
    ✅ Wrong password and unknown email produce the same 401 body
    ✅ Login → token → /me round trip
    ✅ Missing, malformed and foreign tokens → 401
"""

import jwt
import pytest
from sqlalchemy import func, select

from conftest import TEST_SECRET
from penpost.models.user import User


async def _count_users(app) -> int:
    async with app.state.database.session_factory() as session:
        result = await session.execute(select(func.count(User.id)))
        return result.scalar()


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_returns_account_without_password(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "al", "email": "a@x.com", "password": "secret"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "al"
        assert data["email"] == "a@x.com"
        assert "id" in data
        assert "password" not in data
        assert "password_hash" not in data
        assert "secret" not in response.text

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "al", "email": "  A@X.com ", "password": "secret"},
        )

        assert response.status_code == 201
        assert response.json()["email"] == "a@x.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflict(self, app, test_client):
        payload = {"username": "al", "email": "a@x.com", "password": "secret"}
        first = await test_client.post("/api/auth/register", json=payload)
        second = await test_client.post(
            "/api/auth/register", json={**payload, "username": "other", "email": "A@x.com"}
        )

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"] == "conflict"
        assert await _count_users(app) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "a@x.com", "password": "secret"},
            {"username": "al", "password": "secret"},
            {"username": "al", "email": "a@x.com"},
            {"username": "", "email": "a@x.com", "password": "secret"},
            {"username": "al", "email": "not-an-email", "password": "secret"},
            {"username": "al", "email": "a@x.com", "password": "123"},
            {"username": "al", "email": "a@x.com", "password": "secret", "admin": True},
        ],
    )
    async def test_invalid_registration(self, app, test_client, payload):
        response = await test_client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["errors"]
        assert await _count_users(app) == 0


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_token_for_user(self, test_client):
        registered = await test_client.post(
            "/api/auth/register",
            json={"username": "al", "email": "a@x.com", "password": "secret"},
        )

        response = await test_client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "secret"}
        )

        assert response.status_code == 200
        token = response.json()["token"]
        claims = jwt.decode(token, TEST_SECRET, algorithms=["HS256"])
        assert claims["sub"] == registered.json()["id"]

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, test_client, auth_headers):
        await auth_headers()

        wrong_password = await test_client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "wrong"}
        )
        unknown_email = await test_client.post(
            "/api/auth/login", json={"email": "nobody@x.com", "password": "secret"}
        )

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json()["message"] == unknown_email.json()["message"]
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, test_client):
        response = await test_client.post("/api/auth/login", json={"email": "a@x.com"})
        assert response.status_code == 400


class TestMe:

    @pytest.mark.asyncio
    async def test_me_returns_token_owner(self, test_client, auth_headers):
        headers = await auth_headers()

        response = await test_client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"
        assert response.json()["username"] == "al"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Bearer not-a-jwt"},
            {"Authorization": "Basic YWw6c2VjcmV0"},
        ],
    )
    async def test_me_rejects_missing_or_bad_token(self, test_client, headers):
        response = await test_client.get("/api/auth/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_token_signed_with_other_secret_rejected(self, test_client, auth_headers):
        await auth_headers()
        forged = jwt.encode({"sub": "00000000-0000-0000-0000-000000000000", "iat": 0}, "other", "HS256")

        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {forged}"}
        )

        assert response.status_code == 401
