"""
Penpost Backend — Category Schemas
====================================
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100, description="Category name")


class CategoryUpdate(CategoryCreate):
    """PUT replaces the name; it stays required."""


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    created_at: datetime


class CategorySummary(BaseModel):
    """Category as embedded in a post."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
