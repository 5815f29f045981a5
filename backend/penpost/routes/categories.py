"""
Penpost Backend — Category Routes
===================================

What:  CRUD endpoints for /api/categories.
Who:   Reads are public. Writes go through `get_write_identity`, which demands
       a bearer token while REQUIRE_AUTH_FOR_WRITES is on.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from penpost.database import get_db_session
from penpost.dependencies import get_category_service, get_write_identity
from penpost.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from penpost.schemas.common import ErrorResponse
from penpost.services.category_service import CategoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["Categories"])

_WRITE_ERRORS = {
    400: {"description": "Invalid fields", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}
_NOT_FOUND = {404: {"description": "Category not found", "model": ErrorResponse}}


@router.get("", response_model=List[CategoryResponse], summary="List categories")
async def list_categories(
    db: AsyncSession = Depends(get_db_session, scope="function"),
    category_service: CategoryService = Depends(get_category_service),
) -> List[CategoryResponse]:
    return await category_service.list(db)


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    responses=_NOT_FOUND,
    summary="Get a category",
)
async def get_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    category_service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await category_service.get(db, category_id)


@router.post(
    "",
    status_code=201,
    response_model=CategoryResponse,
    responses=_WRITE_ERRORS,
    summary="Create a category",
)
async def create_category(
    body: CategoryCreate,
    identity: Optional[uuid.UUID] = Depends(get_write_identity),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    category_service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await category_service.create(db, body)


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={**_WRITE_ERRORS, **_NOT_FOUND},
    summary="Rename a category",
)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    identity: Optional[uuid.UUID] = Depends(get_write_identity),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    category_service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await category_service.update(db, category_id, body)


@router.delete(
    "/{category_id}",
    status_code=204,
    response_class=Response,
    responses={**_WRITE_ERRORS, **_NOT_FOUND},
    summary="Delete a category",
    description="Posts in the category keep their reference, which now resolves to null.",
)
async def delete_category(
    category_id: uuid.UUID,
    identity: Optional[uuid.UUID] = Depends(get_write_identity),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    category_service: CategoryService = Depends(get_category_service),
) -> Response:
    await category_service.delete(db, category_id)
    return Response(status_code=204)
