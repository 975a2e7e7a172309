"""
StoreHub Backend: User Repository (Hearts)
===========================================

What:  Reads users supplied by the identity provider and toggles their hearts.

Toggle semantics:
    The heart row is deleted if it exists; when nothing was deleted a new
    row is inserted. Both statements run in one transaction and the database
    decides which branch applies, so no stale in-memory hearts list is
    consulted. Toggling twice restores the original set.

    Two concurrent toggles of the same (user, store) pair can both try to
    insert; the loser fails on the primary key and surfaces as DatabaseError.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import delete

from storehub.exceptions import NotFoundError
from storehub.models.store import Store
from storehub.models.user import User, UserHeart
from storehub.services.base import Repository

logger = logging.getLogger(__name__)


class UserRepository(Repository):

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        async with self._transaction("get user") as session:
            return await session.get(User, user_id)

    async def toggle_favorite(self, user_id: uuid.UUID, store_id: uuid.UUID) -> User:
        """
        Add `store_id` to the user's hearts, or remove it when present.

        Returns:
            The user with the updated hearts.

        Raises:
            NotFoundError: unknown user, or unknown store when adding
        """
        async with self._transaction("toggle heart") as session:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))

            result = await session.execute(
                delete(UserHeart)
                .where(UserHeart.user_id == user_id, UserHeart.store_id == store_id)
                .execution_options(synchronize_session=False)
            )
            hearted = result.rowcount == 0

            if hearted:
                if await session.get(Store, store_id) is None:
                    raise NotFoundError(resource="store", resource_id=str(store_id))
                session.add(UserHeart(user_id=user_id, store_id=store_id))

            await session.flush()
            await session.refresh(user, attribute_names=["heart_links"])

        logger.info(
            "User %s %s store %s (%d hearts)",
            user_id,
            "hearted" if hearted else "unhearted",
            store_id,
            len(user.heart_links),
        )
        return user
