"""
StoreHub Backend: Database Engine & Sessions
=============================================

What:  Async SQLAlchemy engine, session factory, declarative base.
How:   The engine is created at import from settings.database_url. Repositories
       receive `async_session_factory` at startup and open one session per
       operation.

Connection Pooling:
    pool_size=20, max_overflow=10 → at most 30 PostgreSQL connections.
    SQLite URLs (tests, local runs) skip the pool options because the
    aiosqlite dialect chooses its own pool class.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storehub.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine with pool options suited to the backend."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: repositories hand ORM objects back after the
    # session closes, so loaded attributes must survive the commit
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
async_session_factory = build_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


async def dispose_engine() -> None:
    """Close all pooled connections (application shutdown)."""
    await engine.dispose()
