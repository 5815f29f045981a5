"""
Penpost Backend — Post Service Unit Tests
===========================================

What:  PostService business rules against a mocked session and file service.

What we test:
    ✅ Invalid fields raise ValidationError with no store write and no file write
    ✅ Unknown fields are rejected
    ✅ A failed insert removes the already-stored image
    ✅ Missing posts → NotFoundError
    ✅ Ownership: other users get PermissionDeniedError, author-less posts are open
    ✅ delete returns the image name for cleanup after commit
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from penpost.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from penpost.models.post import Post
from penpost.services.file_service import ImageUpload
from penpost.services.post_service import PostService


def _post(author_id=None, image=None) -> Post:
    now = datetime.now(timezone.utc)
    return Post(
        id=uuid.uuid4(),
        title="Hello",
        content="World",
        category_id=None,
        author_id=author_id,
        image=image,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def mock_file_service():
    service = MagicMock()
    service.validate_and_store = AsyncMock(return_value="1718000000000-deadbeef.png")
    service.cleanup = AsyncMock()
    return service


class TestPostCreate:

    @pytest.fixture(autouse=True)
    def _service(self, mock_file_service):
        self.files = mock_file_service
        self.service = PostService(mock_file_service)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields",
        [
            {"title": "", "content": "body"},
            {"title": "   ", "content": "body"},
            {"title": "Title", "content": ""},
            {"content": "body"},
            {"title": "Title"},
            {"title": "x" * 201, "content": "body"},
            {"title": "Title", "content": "body", "category": "not-a-uuid"},
            {"title": "Title", "content": "body", "views": 10},
        ],
    )
    async def test_invalid_fields_write_nothing(self, mock_db_session, fields):
        image = ImageUpload(filename="a.png", content=b"png", content_type="image/png")

        with pytest.raises(ValidationError):
            await self.service.create(mock_db_session, fields, image=image)

        mock_db_session.add.assert_not_called()
        mock_db_session.flush.assert_not_awaited()
        self.files.validate_and_store.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_validation_error_lists_field(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create(mock_db_session, {"title": "", "content": "x"})

        assert exc_info.value.errors[0]["field"] == "title"

    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_image(self, mock_db_session):
        mock_db_session.flush.side_effect = OperationalError("INSERT", {}, Exception("gone"))
        image = ImageUpload(filename="a.png", content=b"png", content_type="image/png")

        with pytest.raises(DatabaseError):
            await self.service.create(
                mock_db_session, {"title": "T", "content": "C"}, image=image
            )

        self.files.cleanup.assert_awaited_once_with("1718000000000-deadbeef.png")

    @pytest.mark.asyncio
    async def test_image_rejected_before_insert(self, mock_db_session):
        self.files.validate_and_store.side_effect = ValidationError("bad image", field="image")
        image = ImageUpload(filename="a.pdf", content=b"%PDF", content_type="application/pdf")

        with pytest.raises(ValidationError, match="bad image"):
            await self.service.create(
                mock_db_session, {"title": "T", "content": "C"}, image=image
            )
        mock_db_session.add.assert_not_called()


class TestPostQueries:

    @pytest.fixture(autouse=True)
    def _service(self, mock_file_service):
        self.service = PostService(mock_file_service)

    @pytest.mark.asyncio
    async def test_get_missing_post(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.get(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_get_without_references_skips_lookups(self, mock_db_session):
        post = _post()
        mock_db_session.get.return_value = post

        result = await self.service.get(mock_db_session, post.id)

        assert result.id == post.id
        assert result.category is None
        assert result.author is None
        assert result.image_url is None
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dangling_references_resolve_to_null(self, mock_db_session):
        post = _post(author_id=uuid.uuid4())
        post.category_id = uuid.uuid4()
        mock_db_session.get.return_value = post
        mock_db_session.execute.return_value = []  # no matching rows

        result = await self.service.get(mock_db_session, post.id)

        assert result.category is None
        assert result.author is None
        assert mock_db_session.execute.await_count == 2


class TestPostOwnership:

    @pytest.fixture(autouse=True)
    def _service(self, mock_file_service):
        self.service = PostService(mock_file_service)

    @pytest.mark.asyncio
    async def test_update_by_other_user_denied(self, mock_db_session):
        post = _post(author_id=uuid.uuid4())
        mock_db_session.get.return_value = post

        with pytest.raises(PermissionDeniedError):
            await self.service.update(
                mock_db_session, post.id, {"title": "Mine now"}, actor_id=uuid.uuid4()
            )
        assert post.title == "Hello"

    @pytest.mark.asyncio
    async def test_anonymous_update_of_authored_post_denied(self, mock_db_session):
        post = _post(author_id=uuid.uuid4())
        mock_db_session.get.return_value = post

        with pytest.raises(PermissionDeniedError):
            await self.service.update(mock_db_session, post.id, {"title": "x"}, actor_id=None)

    @pytest.mark.asyncio
    async def test_update_authorless_post_allowed(self, mock_db_session):
        post = _post()
        mock_db_session.get.return_value = post

        result = await self.service.update(
            mock_db_session, post.id, {"content": "Changed"}, actor_id=uuid.uuid4()
        )

        assert result.content == "Changed"
        assert result.title == "Hello"

    @pytest.mark.asyncio
    async def test_update_rejects_blank_title(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.update(mock_db_session, uuid.uuid4(), {"title": " "})
        mock_db_session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_rejects_null_title(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.update(mock_db_session, uuid.uuid4(), {"title": None})

    @pytest.mark.asyncio
    async def test_delete_by_other_user_denied(self, mock_db_session):
        post = _post(author_id=uuid.uuid4())
        mock_db_session.get.return_value = post

        with pytest.raises(PermissionDeniedError):
            await self.service.delete(mock_db_session, post.id, actor_id=uuid.uuid4())
        mock_db_session.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_by_author_returns_image(self, mock_db_session):
        author = uuid.uuid4()
        post = _post(author_id=author, image="1718000000000-deadbeef.png")
        mock_db_session.get.return_value = post

        image = await self.service.delete(mock_db_session, post.id, actor_id=author)

        assert image == "1718000000000-deadbeef.png"
        mock_db_session.delete.assert_awaited_once_with(post)

    @pytest.mark.asyncio
    async def test_delete_missing_post(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.delete(mock_db_session, uuid.uuid4(), actor_id=uuid.uuid4())
