"""
Penpost Backend — Post Routes
===============================

What:  CRUD endpoints for /api/posts.
How:   Thin handlers over PostService. POST accepts either a JSON body or a
       multipart form carrying the same fields plus an optional `image` file.

Request Flow (multipart POST):
    1. Form fields are collected into a dict; the `image` part is read into memory
    2. PostService validates the fields first; a bad request writes nothing
    3. The image is validated and stored, then the post row is inserted
    4. 201 Created with the resolved post

Auth:
    Reads are public. POST/PUT/DELETE depend on `get_write_identity`; PUT and
    DELETE additionally require the caller to be the post's author.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from penpost.database import get_db_session
from penpost.dependencies import get_post_service, get_write_identity
from penpost.exceptions import ValidationError
from penpost.schemas.common import ErrorResponse
from penpost.schemas.post import PostCreate, PostResponse, PostUpdate
from penpost.services.file_service import ImageUpload
from penpost.services.post_service import PostService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

IMAGE_FIELD = "image"

_AUTH_ERRORS = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}
_FORBIDDEN = {403: {"description": "Caller is not the author", "model": ErrorResponse}}
_INVALID = {400: {"description": "Invalid fields or image", "model": ErrorResponse}}

# Documents both accepted encodings of POST /api/posts
_CREATE_REQUEST_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {"schema": PostCreate.model_json_schema()},
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "required": ["title", "content"],
                    "properties": {
                        "title": {"type": "string", "maxLength": 200},
                        "content": {"type": "string"},
                        "category": {"type": "string", "format": "uuid"},
                        IMAGE_FIELD: {"type": "string", "format": "binary"},
                    },
                }
            },
        },
    }
}


async def read_post_submission(request: Request) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """
    Extracts post fields and an optional image from the request body.

    Multipart and urlencoded forms are read with Starlette's form parser;
    anything else must be a JSON object.
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        fields: Dict[str, Any] = {}
        image: Optional[ImageUpload] = None
        try:
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    if key != IMAGE_FIELD:
                        raise ValidationError(
                            message=f"Unexpected file field '{key}'", field=key
                        )
                    # Browsers send an empty part when no file was chosen
                    if not value.filename:
                        continue
                    content = await value.read()
                    image = ImageUpload(
                        filename=value.filename,
                        content=content,
                        content_type=value.content_type,
                        content_length=value.size,
                    )
                elif key == IMAGE_FIELD and not value:
                    continue
                else:
                    fields[key] = value
        finally:
            await form.close()
        return fields, image

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError(message="Request body must be valid JSON", field="body")
    if not isinstance(body, dict):
        raise ValidationError(message="Request body must be a JSON object", field="body")
    return body, None


@router.get(
    "",
    response_model=List[PostResponse],
    summary="List posts, newest first",
    description=(
        "Each post has its category and author resolved. The total number of "
        "posts is returned in the X-Total-Count header."
    ),
)
async def list_posts(
    response: Response,
    limit: int = Query(default=50, ge=1, le=100, description="Items per page (max 100)"),
    offset: int = Query(default=0, ge=0, description="Items to skip"),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    post_service: PostService = Depends(get_post_service),
) -> List[PostResponse]:
    result = await post_service.list(db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result.items


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses=_NOT_FOUND,
    summary="Get a post",
)
async def get_post(
    post_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    post_service: PostService = Depends(get_post_service),
) -> PostResponse:
    return await post_service.get(db, post_id)


@router.post(
    "",
    status_code=201,
    response_model=PostResponse,
    responses={**_INVALID, **_AUTH_ERRORS},
    summary="Create a post",
    description=(
        "Send JSON `{title, content, category?}`, or a multipart form with the "
        "same fields and an optional `image` file (png, jpg, jpeg, gif, webp; max 5MB)."
    ),
    openapi_extra=_CREATE_REQUEST_BODY,
)
async def create_post(
    author_id: Optional[uuid.UUID] = Depends(get_write_identity),
    submission: Tuple[Dict[str, Any], Optional[ImageUpload]] = Depends(read_post_submission),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    post_service: PostService = Depends(get_post_service),
) -> PostResponse:
    fields, image = submission
    if image is not None:
        logger.info(
            "Received post with image: filename=%s, size=%d bytes",
            image.filename,
            len(image.content),
        )
    return await post_service.create(db, fields, author_id=author_id, image=image)


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    responses={**_INVALID, **_AUTH_ERRORS, **_FORBIDDEN, **_NOT_FOUND},
    summary="Update a post",
    description="Partial update: only the fields present in the body change.",
)
async def update_post(
    post_id: uuid.UUID,
    body: PostUpdate,
    actor_id: Optional[uuid.UUID] = Depends(get_write_identity),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    post_service: PostService = Depends(get_post_service),
) -> PostResponse:
    return await post_service.update(db, post_id, body, actor_id=actor_id)


@router.delete(
    "/{post_id}",
    status_code=204,
    response_class=Response,
    responses={**_AUTH_ERRORS, **_FORBIDDEN, **_NOT_FOUND},
    summary="Delete a post",
)
async def delete_post(
    post_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor_id: Optional[uuid.UUID] = Depends(get_write_identity),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    post_service: PostService = Depends(get_post_service),
) -> Response:
    image = await post_service.delete(db, post_id, actor_id=actor_id)
    if image:
        # Runs after the response is sent, which is after the commit.
        # A failed commit raises before this response exists.
        background_tasks.add_task(post_service.file_service.cleanup, image)
    return Response(status_code=204)
