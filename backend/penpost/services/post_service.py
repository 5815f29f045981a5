"""
Penpost Backend — Post Service
================================

What:  CRUD for posts, with category/author resolution and image handling.
How:   Validates input with PostCreate/PostUpdate before touching the store,
       stores any image through FileService, and resolves references with one
       batched query per referenced table.
Who:   Post routes.

Create flow (POST /api/posts):
    ┌──────────┐    ┌─────────────┐    ┌─────────────┐    ┌──────────┐
    │ Validate │───▶│ Store image │───▶│ Insert post │───▶│ Resolve  │
    │ (schema) │    │ (FileServ)  │    │ (flush)     │    │ refs     │
    └──────────┘    └─────────────┘    └─────────────┘    └──────────┘

    Validation failure → ValidationError, nothing written anywhere.
    Insert failure     → the stored image is removed again.

Ownership:
    A post with an author can only be changed or deleted by that author
    (PermissionDeniedError otherwise). A post without an author can be
    changed by any caller that is allowed to write.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from penpost.exceptions import (
    DatabaseError,
    NotFoundError,
    PenpostError,
    PermissionDeniedError,
)
from penpost.models.category import Category
from penpost.models.post import Post
from penpost.models.user import User
from penpost.schemas.auth import AuthorSummary
from penpost.schemas.category import CategorySummary
from penpost.schemas.common import validate_input
from penpost.schemas.post import PostCreate, PostListResponse, PostResponse, PostUpdate
from penpost.services.file_service import FileService, ImageUpload, image_url

logger = logging.getLogger(__name__)


class PostService:
    """
    Business logic for posts.

    Holds the application's FileService; everything else arrives per call.
    """

    def __init__(self, file_service: FileService):
        self.file_service = file_service

    # ── Reference resolution ──────────────────────────────────────────────
    async def _resolve(self, db: AsyncSession, posts: Iterable[Post]) -> List[PostResponse]:
        """
        Builds responses with `category` and `author` filled in.

        One query for all referenced categories and one for all referenced
        users. Only id/username are selected from users.
        """
        posts = list(posts)
        category_ids = {p.category_id for p in posts if p.category_id is not None}
        author_ids = {p.author_id for p in posts if p.author_id is not None}

        categories: Dict[uuid.UUID, CategorySummary] = {}
        if category_ids:
            result = await db.execute(
                select(Category.id, Category.name).where(Category.id.in_(category_ids))
            )
            categories = {row.id: CategorySummary(id=row.id, name=row.name) for row in result}

        authors: Dict[uuid.UUID, AuthorSummary] = {}
        if author_ids:
            result = await db.execute(
                select(User.id, User.username).where(User.id.in_(author_ids))
            )
            authors = {row.id: AuthorSummary(id=row.id, username=row.username) for row in result}

        return [
            PostResponse(
                id=p.id,
                title=p.title,
                content=p.content,
                category=categories.get(p.category_id) if p.category_id else None,
                author=authors.get(p.author_id) if p.author_id else None,
                image=p.image,
                image_url=image_url(p.image),
                created_at=p.created_at,
                updated_at=p.updated_at,
            )
            for p in posts
        ]

    async def _load(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        try:
            post = await db.get(Post, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, type(e).__name__)
            raise DatabaseError(
                message="Could not retrieve the post. Please try again.",
                context={"post_id": str(post_id)},
            )
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    @staticmethod
    def _check_owner(post: Post, actor_id: Optional[uuid.UUID]) -> None:
        if post.author_id is not None and post.author_id != actor_id:
            logger.info(
                "Permission denied on post %s for actor %s",
                post.id,
                actor_id or "anonymous",
            )
            raise PermissionDeniedError("Only the author can modify this post")

    # ── Queries ───────────────────────────────────────────────────────────
    async def list(
        self,
        db: AsyncSession,
        limit: int = 50,
        offset: int = 0,
    ) -> PostListResponse:
        """Newest first, with resolved references and the total post count."""
        try:
            result = await db.execute(
                select(Post)
                .order_by(desc(Post.created_at), desc(Post.id))
                .limit(limit)
                .offset(offset)
            )
            posts = list(result.scalars().all())

            count_result = await db.execute(select(func.count(Post.id)))
            total_count = count_result.scalar() or 0

            items = await self._resolve(db, posts)
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", type(e).__name__, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return PostListResponse(items=items, total_count=total_count)

    async def get(self, db: AsyncSession, post_id: uuid.UUID) -> PostResponse:
        """Raises NotFoundError for an unknown id."""
        post = await self._load(db, post_id)
        return (await self._resolve(db, [post]))[0]

    # ── Mutations ─────────────────────────────────────────────────────────
    async def create(
        self,
        db: AsyncSession,
        fields: Any,
        author_id: Optional[uuid.UUID] = None,
        image: Optional[ImageUpload] = None,
    ) -> PostResponse:
        """
        Creates a post.

        Args:
            fields: PostCreate or a dict of title/content/category
            author_id: Verified caller, or None for anonymous writes
            image: Optional uploaded image

        Raises:
            ValidationError: bad fields or bad image (nothing is written)
            FileStorageError: the image could not be saved
            DatabaseError: the insert failed (the saved image is removed)
        """
        data = validate_input(PostCreate, fields)

        stored_image: Optional[str] = None
        if image is not None:
            stored_image = await self.file_service.validate_and_store(
                filename=image.filename,
                content=image.content,
                content_type=image.content_type,
                content_length=image.content_length,
            )

        try:
            post = Post(
                title=data.title,
                content=data.content,
                category_id=data.category,
                author_id=author_id,
                image=stored_image,
            )
            db.add(post)
            await db.flush()
            logger.info("Post created: %s (author=%s)", post.id, author_id)
            return (await self._resolve(db, [post]))[0]

        except Exception as e:
            await self.file_service.cleanup(stored_image)
            if isinstance(e, PenpostError):
                raise
            logger.error("Unexpected error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving the post. Please try again.",
                context={"original_error": type(e).__name__},
            )

    async def update(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        fields: Any,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PostResponse:
        """
        Applies a partial update. Only fields present in the input change.

        Raises:
            ValidationError, NotFoundError, PermissionDeniedError, DatabaseError
        """
        data = validate_input(PostUpdate, fields)
        post = await self._load(db, post_id)
        self._check_owner(post, actor_id)

        changes = data.model_dump(exclude_unset=True)
        if "title" in changes:
            post.title = changes["title"]
        if "content" in changes:
            post.content = changes["content"]
        if "category" in changes:
            post.category_id = changes["category"]
        if changes:
            post.updated_at = datetime.now(timezone.utc)

        try:
            await db.flush()
            logger.info("Post updated: %s (fields=%s)", post.id, sorted(changes))
            return (await self._resolve(db, [post]))[0]
        except SQLAlchemyError as e:
            logger.error("Database error updating post %s: %s", post_id, type(e).__name__)
            raise DatabaseError(context={"post_id": str(post_id)})

    async def delete(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Optional[str]:
        """
        Deletes a post.

        Returns:
            The stored image filename, if any. The caller removes the file once
            the transaction has committed.
        """
        post = await self._load(db, post_id)
        self._check_owner(post, actor_id)
        image = post.image

        try:
            await db.delete(post)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting post %s: %s", post_id, type(e).__name__)
            raise DatabaseError(context={"post_id": str(post_id)})

        logger.info("Post deleted: %s", post_id)
        return image
