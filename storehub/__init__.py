"""
StoreHub Backend: Application Package
======================================

What: Store directory backend (create, browse, tag, search, map, heart stores).
How:  Layered the same way throughout:

    ┌─────────────────────────────────────┐
    │     Routes (pages + JSON API)       │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (repositories, uploads)   │  ← queries, validation, files
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
