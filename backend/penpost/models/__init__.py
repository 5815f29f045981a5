"""
Penpost Backend — ORM Models
==============================

Importing this package registers every table on `Base.metadata`, which
`Database.create_all()` and Alembic autogenerate both rely on.
"""

from penpost.models.category import Category
from penpost.models.post import Post
from penpost.models.user import User

__all__ = ["Category", "Post", "User"]
