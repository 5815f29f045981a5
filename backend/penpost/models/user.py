"""
Penpost Backend — User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table (the credential store).
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by AuthService for registration, login and identity lookups, and by
       PostService to resolve post authors.

Table Design:
    - id: UUID generated in Python, so SQLite and PostgreSQL behave the same
    - email: stored lower-cased, unique index (`ix_users_email`)
    - password_hash: bcrypt output only; no response schema exposes it
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from penpost.database import Base


class User(Base):
    """A registered account that can sign in and author posts."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False)

    # Lower-cased by AuthService before insert and before lookup
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        # password_hash deliberately left out
        return f"<User(id={self.id}, username='{self.username}')>"
