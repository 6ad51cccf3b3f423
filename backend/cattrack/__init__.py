"""
CatTrack Backend: Application Package Initializer
=================================================

What: Marks the `cattrack` directory as a Python package.
Who:  Used by uvicorn (cattrack.main:app), Alembic and pytest.

Architecture Note:
    The backend is layered:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (auth, cats, users, files)│  ← Authorization, orchestration
    ├─────────────────────────────────────┤
    │   Models, Schemas & Geo helpers     │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never talk to the database directly; services never build HTTP
    responses. Authorization outcomes travel back to routes as
    MutationResult values and are turned into status codes there.
"""

__version__ = "1.0.0"
