"""
Penpost Backend — Application Package Initializer
===================================================

What: Marks the `penpost` directory as a Python package.
Who:  Imported by uvicorn (`penpost.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is split into layers:

    ┌─────────────────────────────────────┐
    │     Routes + Dependencies (HTTP)    │  ← status codes, headers, auth header parsing
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth, posts, categories, uploads
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Settings, the database handle and the services are built once by
    `create_app()` and reach handlers through FastAPI dependencies.
"""

__version__ = "1.0.0"
