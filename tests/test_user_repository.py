"""
StoreHub Backend: Heart Toggle Tests
=====================================

What we test:
    ✅ First toggle adds the store, second removes it (involution)
    ✅ Hearts of different users are independent
    ✅ Unknown store or user raises NotFoundError
"""

import uuid

import pytest

from storehub.exceptions import NotFoundError


async def _create_store(store_repository, author, name: str):
    return await store_repository.create({"name": name}, author_id=author.id)


class TestToggleFavorite:

    @pytest.mark.asyncio
    async def test_toggle_adds_then_removes(self, store_repository, user_repository, author, visitor):
        store = await _create_store(store_repository, author, "Loved")

        hearted = await user_repository.toggle_favorite(visitor.id, store.id)
        assert hearted.hearts == [store.id]

        unhearted = await user_repository.toggle_favorite(visitor.id, store.id)
        assert unhearted.hearts == []

    @pytest.mark.asyncio
    async def test_other_hearts_untouched(self, store_repository, user_repository, author, visitor):
        first = await _create_store(store_repository, author, "First")
        second = await _create_store(store_repository, author, "Second")

        await user_repository.toggle_favorite(visitor.id, first.id)
        await user_repository.toggle_favorite(visitor.id, second.id)
        user = await user_repository.toggle_favorite(visitor.id, first.id)

        assert user.hearts == [second.id]

    @pytest.mark.asyncio
    async def test_users_are_independent(self, store_repository, user_repository, author, visitor):
        store = await _create_store(store_repository, author, "Shared")

        await user_repository.toggle_favorite(visitor.id, store.id)
        author_after = await user_repository.toggle_favorite(author.id, store.id)
        visitor_after = await user_repository.get(visitor.id)

        assert author_after.hearts == [store.id]
        assert visitor_after.hearts == [store.id]

    @pytest.mark.asyncio
    async def test_unknown_store(self, user_repository, visitor):
        with pytest.raises(NotFoundError):
            await user_repository.toggle_favorite(visitor.id, uuid.uuid4())

        user = await user_repository.get(visitor.id)
        assert user.hearts == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, store_repository, user_repository, author):
        store = await _create_store(store_repository, author, "Lonely")

        with pytest.raises(NotFoundError):
            await user_repository.toggle_favorite(uuid.uuid4(), store.id)

    @pytest.mark.asyncio
    async def test_get_unknown_user_is_none(self, user_repository):
        assert await user_repository.get(uuid.uuid4()) is None
