"""
Penpost Backend — Category Service
====================================

What:  CRUD for categories.
Who:   Category routes.

Deleting a category leaves posts pointing at it untouched; PostService
resolves such dangling references to null.
"""

import logging
import uuid
from typing import Any, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from penpost.exceptions import DatabaseError, NotFoundError
from penpost.models.category import Category
from penpost.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from penpost.schemas.common import validate_input

logger = logging.getLogger(__name__)


class CategoryService:
    """Stateless; receives the session on every call like the other services."""

    async def _load(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        try:
            category = await db.get(Category, category_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching category %s: %s", category_id, type(e).__name__)
            raise DatabaseError(context={"category_id": str(category_id)})
        if category is None:
            raise NotFoundError(resource="category", resource_id=str(category_id))
        return category

    async def list(self, db: AsyncSession) -> List[CategoryResponse]:
        """All categories ordered by name."""
        try:
            result = await db.execute(select(Category).order_by(Category.name, Category.created_at))
        except SQLAlchemyError as e:
            logger.error("Database error listing categories: %s", type(e).__name__, exc_info=True)
            raise DatabaseError(message="Could not retrieve categories. Please try again.")
        return [CategoryResponse.model_validate(c) for c in result.scalars().all()]

    async def get(self, db: AsyncSession, category_id: uuid.UUID) -> CategoryResponse:
        return CategoryResponse.model_validate(await self._load(db, category_id))

    async def create(self, db: AsyncSession, fields: Any) -> CategoryResponse:
        """
        Raises:
            ValidationError: name missing, blank or longer than 100 characters
        """
        data = validate_input(CategoryCreate, fields)
        category = Category(name=data.name)
        try:
            db.add(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating category: %s", type(e).__name__, exc_info=True)
            raise DatabaseError(context={"operation": "create_category"})

        logger.info("Category created: %s", category.id)
        return CategoryResponse.model_validate(category)

    async def update(self, db: AsyncSession, category_id: uuid.UUID, fields: Any) -> CategoryResponse:
        data = validate_input(CategoryUpdate, fields)
        category = await self._load(db, category_id)
        category.name = data.name
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating category %s: %s", category_id, type(e).__name__)
            raise DatabaseError(context={"category_id": str(category_id)})

        logger.info("Category updated: %s", category.id)
        return CategoryResponse.model_validate(category)

    async def delete(self, db: AsyncSession, category_id: uuid.UUID) -> None:
        category = await self._load(db, category_id)
        try:
            await db.delete(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting category %s: %s", category_id, type(e).__name__)
            raise DatabaseError(context={"category_id": str(category_id)})

        logger.info("Category deleted: %s", category_id)
