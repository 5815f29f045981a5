"""
Penpost Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Unit tests use a mocked AsyncSession. API tests build a fresh app with
       `create_app()` on a temporary SQLite database (aiosqlite) and talk to
       it through httpx's ASGITransport. ASGITransport does not run the
       lifespan, so the `app` fixture creates the tables itself.

Fixture Hierarchy:
    Function-scoped:
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── temp_storage: Temporary upload directory
    ├── sample_image_bytes: Minimal PNG for upload tests
    ├── test_settings: Settings pointing at tmp_path (SQLite + uploads)
    ├── app: Application built from test_settings, tables created
    ├── test_client: HTTPX AsyncClient bound to `app`
    └── auth_headers: factory registering a user and returning Bearer headers
"""

import os
import tempfile
from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set BEFORE any penpost import: importing penpost.main builds the default app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="penpost_test_db_"), "import.db"
)
os.environ["JWT_SECRET"] = "test-secret-for-the-test-suite-only"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="penpost_test_uploads_")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from penpost.config import Settings  # noqa: E402

TEST_SECRET = os.environ["JWT_SECRET"]


def make_settings(tmp_path, **overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = dict(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'penpost.db'}",
        jwt_secret=TEST_SECRET,
        upload_dir=str(tmp_path / "uploads"),
        bcrypt_rounds=4,
        rate_limit_requests=10_000,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ══════════════════════════════════════════════════════════════════════════
# Unit-test fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = result
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=MagicMock())
    session.get = AsyncMock(return_value=None)
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """1x1 transparent PNG."""
    return (
        b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
        b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\xff"
        b"\xff?\x00\x05\xfe\x02\xfe\xa7\x35\x81\x84\x00\x00\x00\x00IEND\xaeB`\x82"
    )


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


# ══════════════════════════════════════════════════════════════════════════
# API fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(test_settings):
    from penpost.main import create_app

    application = create_app(test_settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(test_client):
    """
    Factory: registers (username, email, password) and logs in.

    Returns the Authorization header dict for the new account.
    """

    async def _make(
        username: str = "al",
        email: str = "a@x.com",
        password: str = "secret",
    ) -> Dict[str, str]:
        response = await test_client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        response = await test_client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _make
