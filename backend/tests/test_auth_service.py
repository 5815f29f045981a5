"""
Penpost Backend — Auth Service Unit Tests
===========================================

What:  AuthService register/login/verify against a mocked session.
How:   bcrypt runs for real at 4 rounds; the database is an AsyncMock.

What we test:
    ✅ Register validates input before touching the session
    ✅ Register stores a hash, never the raw password, and returns no hash
    ✅ Duplicate email (pre-check and unique-index race) → ConflictError
    ✅ Unknown email and wrong password → same AuthenticationError
    ✅ verify() maps tokens back to the user id and rejects bad tokens
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from penpost.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from penpost.models.user import User
from penpost.security import create_access_token, hash_password, verify_password
from penpost.services.auth_service import AuthService

from conftest import make_settings


def _result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


class TestRegister:

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = AuthService(make_settings(tmp_path))

    def _assign_ids_on_flush(self, session):
        async def fake_flush():
            user = session.add.call_args[0][0]
            user.id = uuid.uuid4()
            user.created_at = datetime.now(timezone.utc)

        session.flush.side_effect = fake_flush

    @pytest.mark.asyncio
    async def test_register_success(self, mock_db_session):
        mock_db_session.execute.return_value = _result(None)
        self._assign_ids_on_flush(mock_db_session)

        user = await self.service.register(mock_db_session, "al", "A@X.com", "secret")

        assert user.username == "al"
        assert user.email == "a@x.com"
        assert "password" not in user.model_dump()
        assert "password_hash" not in user.model_dump()

        stored = mock_db_session.add.call_args[0][0]
        assert isinstance(stored, User)
        assert stored.password_hash != "secret"
        assert verify_password("secret", stored.password_hash)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,email,password",
        [
            ("", "a@x.com", "secret"),
            ("   ", "a@x.com", "secret"),
            ("al", "", "secret"),
            ("al", "not-an-email", "secret"),
            ("al", "a@x.com", ""),
            ("al", "a@x.com", "short"),
            ("al", "a@x.com", "x" * 73),
            (None, "a@x.com", "secret"),
        ],
    )
    async def test_register_invalid_input_touches_nothing(
        self, mock_db_session, username, email, password
    ):
        with pytest.raises(ValidationError):
            await self.service.register(mock_db_session, username, email, password)

        mock_db_session.execute.assert_not_awaited()
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, mock_db_session):
        mock_db_session.execute.return_value = _result(uuid.uuid4())

        with pytest.raises(ConflictError):
            await self.service.register(mock_db_session, "al", "a@x.com", "secret")
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_register_unique_index_race(self, mock_db_session):
        mock_db_session.execute.return_value = _result(None)
        mock_db_session.flush.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE"))

        with pytest.raises(ConflictError):
            await self.service.register(mock_db_session, "al", "a@x.com", "secret")


class TestLogin:

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = AuthService(make_settings(tmp_path))
        self.user = User(
            id=uuid.uuid4(),
            username="al",
            email="a@x.com",
            password_hash=hash_password("secret", rounds=4),
            created_at=datetime.now(timezone.utc),
        )

    @pytest.mark.asyncio
    async def test_login_success_returns_token_for_user(self, mock_db_session):
        mock_db_session.execute.return_value = _result(self.user)

        result = await self.service.login(mock_db_session, "A@x.com", "secret")

        assert result.token
        assert self.service.verify(result.token) == self.user.id

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, mock_db_session):
        mock_db_session.execute.return_value = _result(self.user)
        with pytest.raises(AuthenticationError) as wrong_password:
            await self.service.login(mock_db_session, "a@x.com", "not-the-password")

        mock_db_session.execute.return_value = _result(None)
        with pytest.raises(AuthenticationError) as unknown_email:
            await self.service.login(mock_db_session, "b@x.com", "secret")

        assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.login(mock_db_session, "a@x.com", "")
        with pytest.raises(ValidationError):
            await self.service.login(mock_db_session, None, "secret")


class TestVerify:

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.settings = make_settings(tmp_path)
        self.service = AuthService(self.settings)

    def test_verify_round_trip(self):
        user_id = uuid.uuid4()
        token = create_access_token(str(user_id), self.settings.jwt_secret)
        assert self.service.verify(token) == user_id

    def test_verify_rejects_foreign_key(self):
        token = create_access_token(str(uuid.uuid4()), "someone-elses-secret")
        with pytest.raises(AuthenticationError):
            self.service.verify(token)

    def test_verify_rejects_expired(self):
        token = create_access_token(
            str(uuid.uuid4()),
            self.settings.jwt_secret,
            expires_minutes=1,
            now=datetime.now(timezone.utc) - timedelta(minutes=5),
        )
        with pytest.raises(AuthenticationError):
            self.service.verify(token)

    def test_verify_rejects_non_uuid_subject(self):
        token = create_access_token("not-a-uuid", self.settings.jwt_secret)
        with pytest.raises(AuthenticationError):
            self.service.verify(token)

    @pytest.mark.asyncio
    async def test_get_user_missing(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.get_user(mock_db_session, uuid.uuid4())
