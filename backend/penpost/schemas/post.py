"""
Penpost Backend — Post Schemas
================================

What:  Request and response models for /api/posts.
How:   Input models forbid unknown fields. Title and content are trimmed and
       must be non-empty; a blank `category` (as multipart forms send it)
       means "no category".

Response shape:
    References are resolved: `category` is {id, name} and `author` is
    {id, username}, or null when unset or pointing at a deleted record.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from penpost.schemas.auth import AuthorSummary
from penpost.schemas.category import CategorySummary


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostCreate(BaseModel):
    """Fields accepted by POST /api/posts (JSON body or multipart form)."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    category: Optional[uuid.UUID] = Field(default=None, description="Category id")

    @field_validator("category", mode="before")
    @classmethod
    def blank_category(cls, v: Any) -> Any:
        return _blank_to_none(v)


class PostUpdate(BaseModel):
    """
    Partial update for PUT /api/posts/{id}.

    Omitted fields are left alone. `category: null` clears the category.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[uuid.UUID] = None

    @field_validator("category", mode="before")
    @classmethod
    def blank_category(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("title", "content")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PostResponse(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    category: Optional[CategorySummary] = None
    author: Optional[AuthorSummary] = None
    image: Optional[str] = Field(default=None, description="Stored image filename")
    image_url: Optional[str] = Field(default=None, description="Path serving the image")
    created_at: datetime
    updated_at: datetime


class PostListResponse(BaseModel):
    """Returned internally by PostService.list; the route sends `items` as the body."""

    items: List[PostResponse]
    total_count: int
