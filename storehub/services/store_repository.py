"""
StoreHub Backend: Store Repository
===================================

What:  Every query and write the store routes need.
Who:   Built once by the app factory and handed to routes through
       `get_store_repository`.

Operations:
    create(data, author_id)           validated insert, slug assigned here
    list_all()                        every store, newest first
    list_by_ids(ids)                  stores for a hearts page
    get_by_slug(slug)                 detail page, author loaded
    get_by_id(store_id)               edit form
    list_by_tag(tag)                  stores + tag counts, read concurrently
    get_tags_list()                   tags in use, most used first
    update(store_id, data, requester) owner-only partial update
    search_by_text(query)             PostgreSQL full-text, top N by rank
    list_near(lng, lat, max_distance) bounding box + haversine, nearest first

Query plans:
    search_by_text uses the GIN index idx_stores_text_search, which is built
    on exactly the `text_document` expression below. list_near narrows rows
    with idx_stores_lat_lng before distances are computed in Python.
"""

import asyncio
import logging
import uuid
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import ColumnElement, Select, String, func, literal_column, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from storehub.config import settings
from storehub.exceptions import DatabaseError, NotFoundError, ValidationError
from storehub.models.store import Store, StoreTag
from storehub.schemas.store import StoreFields, TagCount
from storehub.services.base import Repository
from storehub.services.geo import bounding_box, haversine_m, validate_point
from storehub.services.ownership import confirm_owner
from storehub.services.slugs import next_available_slug, slugify
from storehub.services.validation import ValidationResult, validate_store_fields

logger = logging.getLogger(__name__)

TEXT_SEARCH_CONFIG = literal_column("'english'::regconfig")
_SPACE = literal_column("' '", String)

# Inserts that lose a concurrent race for the same slug get one more try
_SLUG_ATTEMPTS = 2


def text_document() -> ColumnElement:
    """The tsvector searched by search_by_text (must match the index)."""
    return func.to_tsvector(TEXT_SEARCH_CONFIG, Store.name + _SPACE + Store.description)


def _raise_for(result: ValidationResult[StoreFields]) -> StoreFields:
    if not result.ok:
        error = result.first_error
        raise ValidationError(
            message=error.message,
            field=error.field,
            context={"errors": [{"field": e.field, "message": e.message} for e in result.errors]},
        )
    return result.value


def _base_slug(name: str) -> str:
    base = slugify(name)
    if not base:
        raise ValidationError(
            message="Store names need at least one letter or number.",
            field="name",
            context={"name": name},
        )
    return base


class StoreRepository(Repository):
    """Store persistence and queries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_photo: Optional[str] = None,
        search_limit: Optional[int] = None,
        near_limit: Optional[int] = None,
        near_max_distance: Optional[int] = None,
    ):
        super().__init__(session_factory)
        self.default_photo = settings.default_photo if default_photo is None else default_photo
        self.search_limit = settings.search_limit if search_limit is None else search_limit
        self.near_limit = settings.near_limit if near_limit is None else near_limit
        self.near_max_distance = (
            settings.near_max_distance if near_max_distance is None else near_max_distance
        )

    # ── Writes ────────────────────────────────────────────────────────────

    async def _unique_slug(
        self,
        session: AsyncSession,
        base: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> str:
        # Slugs only hold [a-z0-9-], so the LIKE pattern needs no escaping
        stmt = select(Store.slug).where(
            or_(Store.slug == base, Store.slug.like(f"{base}-%"))
        )
        if exclude_id is not None:
            stmt = stmt.where(Store.id != exclude_id)
        existing = (await session.execute(stmt)).scalars().all()
        return next_available_slug(base, existing)

    async def create(self, store_data: Mapping[str, Any], author_id: uuid.UUID) -> Store:
        """
        Validate and insert a new store owned by `author_id`.

        A concurrent create can claim the chosen slug between the lookup and
        the insert; the unique constraint rejects the loser, which picks a
        fresh slug and tries once more.

        Raises:
            ValidationError: missing name, bad coordinates, empty slug
            DatabaseError: the insert failed
        """
        fields = _raise_for(validate_store_fields(store_data))
        base = _base_slug(fields.name)

        for attempt in range(1, _SLUG_ATTEMPTS + 1):
            try:
                store = await self._insert(fields, base, author_id)
                break
            except DatabaseError as e:
                if attempt == _SLUG_ATTEMPTS or not isinstance(e.__cause__, IntegrityError):
                    raise
                logger.warning("Slug for %r taken concurrently, retrying", base)

        logger.info("Store created: %s (slug=%s, author=%s)", store.id, store.slug, author_id)
        return store

    async def _insert(self, fields: StoreFields, base: str, author_id: uuid.UUID) -> Store:
        async with self._transaction("create store") as session:
            store = Store(
                name=fields.name,
                slug=await self._unique_slug(session, base),
                description=fields.description or "",
                longitude=fields.longitude,
                latitude=fields.latitude,
                address=fields.address,
                photo=fields.photo or self.default_photo,
                author_id=author_id,
            )
            store.tags = fields.tags or []
            session.add(store)
            await session.flush()
        return store

    async def update(
        self,
        store_id: uuid.UUID,
        store_data: Mapping[str, Any],
        requester_id: uuid.UUID,
    ) -> Store:
        """
        Apply a partial update on behalf of `requester_id`.

        Ownership is checked before the submission is validated, so a
        non-author always gets AuthorizationError.

        Raises:
            NotFoundError: no store with that id
            AuthorizationError: requester is not the author
            ValidationError: the submitted values are invalid
        """
        async with self._transaction("update store") as session:
            store = await session.get(Store, store_id)
            if store is None:
                raise NotFoundError(resource="store", resource_id=str(store_id))
            confirm_owner(store, requester_id)

            fields = _raise_for(validate_store_fields(store_data, partial=True))
            changes = fields.model_dump(exclude_unset=True)

            if "name" in changes and changes["name"] != store.name:
                store.slug = await self._unique_slug(
                    session, _base_slug(changes["name"]), exclude_id=store.id
                )

            for key, value in changes.items():
                if key == "tags":
                    store.tags = value
                elif key == "description":
                    store.description = value or ""
                else:
                    setattr(store, key, value)

            await session.flush()

        logger.info("Store updated: %s (fields=%s)", store.id, sorted(changes))
        return store

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_all(self) -> List[Store]:
        async with self._transaction("list stores") as session:
            result = await session.execute(select(Store).order_by(Store.created_at.desc()))
            return list(result.scalars().all())

    async def list_by_ids(self, store_ids: Sequence[uuid.UUID]) -> List[Store]:
        if not store_ids:
            return []
        async with self._transaction("list stores by id") as session:
            result = await session.execute(
                select(Store)
                .where(Store.id.in_(list(store_ids)))
                .order_by(Store.created_at.desc())
            )
            return list(result.scalars().all())

    async def get_by_slug(self, slug: str) -> Store:
        """Store with its author loaded, or NotFoundError."""
        async with self._transaction("get store by slug") as session:
            store = await session.scalar(
                select(Store).options(selectinload(Store.author)).where(Store.slug == slug)
            )
        if store is None:
            raise NotFoundError(resource="store", resource_id=slug)
        return store

    async def get_by_id(self, store_id: uuid.UUID) -> Store:
        async with self._transaction("get store by id") as session:
            store = await session.get(Store, store_id)
        if store is None:
            raise NotFoundError(resource="store", resource_id=str(store_id))
        return store

    async def _list_tagged(self, tag: Optional[str]) -> List[Store]:
        stmt = select(Store).order_by(Store.created_at.desc())
        if tag:
            stmt = stmt.where(Store.tag_links.any(StoreTag.tag == tag))
        else:
            stmt = stmt.where(Store.tag_links.any())
        async with self._transaction("list stores by tag") as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_tags_list(self) -> List[TagCount]:
        store_count = func.count(StoreTag.store_id).label("store_count")
        stmt = (
            select(StoreTag.tag, store_count)
            .group_by(StoreTag.tag)
            .order_by(store_count.desc(), StoreTag.tag)
        )
        async with self._transaction("list tags") as session:
            rows = (await session.execute(stmt)).all()
        return [TagCount(tag=tag, count=count) for tag, count in rows]

    async def list_by_tag(self, tag: Optional[str] = None) -> Tuple[List[Store], List[TagCount]]:
        """
        Stores carrying `tag` (or any tag when None) plus every tag in use.

        The two reads are independent and run concurrently, each in its own
        session.
        """
        stores, tags = await asyncio.gather(self._list_tagged(tag), self.get_tags_list())
        return stores, tags

    # ── Search ────────────────────────────────────────────────────────────

    def text_search_statement(self, query: str) -> Select:
        document = text_document()
        ts_query = func.websearch_to_tsquery(TEXT_SEARCH_CONFIG, query)
        score = func.ts_rank(document, ts_query).label("score")
        return (
            select(Store, score)
            .where(document.op("@@")(ts_query))
            .order_by(score.desc())
            .limit(self.search_limit)
        )

    async def search_by_text(self, query: str) -> List[Tuple[Store, float]]:
        """Top stores for `query`, best match first, with their rank."""
        query = (query or "").strip()
        if not query:
            return []
        async with self._transaction("search stores") as session:
            rows = (await session.execute(self.text_search_statement(query))).all()
        return [(store, float(score)) for store, score in rows]

    def nearby_candidates_statement(
        self,
        longitude: float,
        latitude: float,
        max_distance: float,
    ) -> Select:
        box = bounding_box(longitude, latitude, max_distance)
        stmt = select(Store).where(Store.latitude.between(box.south, box.north))
        if box.west is None:
            return stmt.where(Store.longitude.is_not(None))
        if box.wraps:
            return stmt.where(or_(Store.longitude >= box.west, Store.longitude <= box.east))
        return stmt.where(Store.longitude.between(box.west, box.east))

    async def list_near(
        self,
        longitude: float,
        latitude: float,
        max_distance: Optional[float] = None,
    ) -> List[Store]:
        """
        Stores within `max_distance` meters of the point, nearest first.

        Raises:
            ValidationError: coordinates out of range
        """
        longitude, latitude = validate_point(longitude, latitude)
        if max_distance is None:
            max_distance = self.near_max_distance

        async with self._transaction("list stores near") as session:
            result = await session.execute(
                self.nearby_candidates_statement(longitude, latitude, max_distance)
            )
            candidates = list(result.scalars().all())

        ranked = []
        for store in candidates:
            distance = haversine_m(longitude, latitude, store.longitude, store.latitude)
            if distance <= max_distance:
                ranked.append((distance, store))
        ranked.sort(key=lambda pair: pair[0])
        return [store for _, store in ranked[: self.near_limit]]
