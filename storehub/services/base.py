"""
StoreHub Backend: Repository Base
==================================

What:  Session handling shared by the repositories.
How:   Each repository operation runs in its own session and transaction:
       commit when the block finishes, rollback when it raises. SQLAlchemy
       failures are logged and re-raised as DatabaseError so callers never
       see driver exceptions; application errors (NotFoundError, ...) pass
       through untouched after the rollback.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storehub.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", action, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not complete the request. Please try again.",
                context={"action": action, "error_type": type(e).__name__},
            ) from e
