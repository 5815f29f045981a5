"""
Penpost Backend — Post SQLAlchemy Model
=========================================

What:  ORM model for the `posts` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by PostService for CRUD and listing.

Reference columns:
    `category_id` and `author_id` are plain UUID columns with no foreign-key
    constraint. Deleting a category or a user leaves the reference in place;
    PostService resolves a dangling reference to null.

    Index on created_at DESC:
        Listing is always newest first.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from penpost.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(Base):
    """
    A blog post.

    Lifecycle:
        1. Created by POST /api/posts (author = verified caller, or null)
        2. Updated by its author; `updated_at` moves forward on every change
        3. Deleted by its author; the stored image is removed afterwards
    """

    __tablename__ = "posts"

    # ── Primary Key ───────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Content ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # ── References (unenforced) ───────────────────────────────────────────
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)

    # ── Image ─────────────────────────────────────────────────────────────
    # Stored filename inside UPLOAD_DIR, e.g. 1718000000000-1a2b3c4d.png
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title[:30]}')>"
