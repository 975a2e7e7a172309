"""
StoreHub Backend: Store ORM Model
==================================

What:  The `stores` table and its `store_tags` association table.
How:   Tags are rows keyed by (store_id, tag), so a store's tag set cannot hold
       duplicates. Location is stored as plain longitude/latitude columns next
       to a postal address; proximity queries prefilter on those columns.

Table notes:
    - slug is unique: the repository derives it from the name and suffixes
      collisions (`cafe`, `cafe-2`, `cafe-3`, ...)
    - photo holds a filename inside the upload directory, never a path
    - author_id is required: every store has exactly one owner
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storehub.database import Base

if TYPE_CHECKING:
    from storehub.models.user import User


class StoreTag(Base):
    """One tag attached to one store."""

    __tablename__ = "store_tags"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stores.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag: Mapped[str] = mapped_column(String(100), primary_key=True)

    __table_args__ = (Index("idx_store_tags_tag", "tag"),)

    def __repr__(self) -> str:
        return f"<StoreTag(store_id={self.store_id}, tag='{self.tag}')>"


class Store(Base):
    """
    A store listed in the directory.

    Lifecycle:
        1. Created from the add form by a signed-in user (the author)
        2. Edited only by its author; a renamed store gets a fresh slug
        3. Never deleted by this service
    """

    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Location ──────────────────────────────────────────────────────────
    # Both coordinates are set together or both are NULL
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    photo: Mapped[str] = mapped_column(String(255), nullable=False, default="store.png")

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # selectin: stores leave their session before serialization, so tags
    # must always arrive with the row
    tag_links: Mapped[List[StoreTag]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=StoreTag.tag,
    )

    # Loaded explicitly (selectinload) by the queries that need it
    author: Mapped["User"] = relationship(lazy="raise")

    __table_args__ = (
        Index("idx_stores_lat_lng", "latitude", "longitude"),
        Index("idx_stores_created_at", created_at.desc()),
    )

    @property
    def tags(self) -> List[str]:
        return [link.tag for link in self.tag_links]

    @tags.setter
    def tags(self, values: List[str]) -> None:
        # Reuse rows for tags that stay so only real changes are flushed
        existing = {link.tag: link for link in self.tag_links}
        self.tag_links = [existing.get(value) or StoreTag(tag=value) for value in values]

    @property
    def location(self) -> Optional[dict]:
        """GeoJSON-style point, or None when the store has no coordinates."""
        if self.longitude is None or self.latitude is None:
            return None
        return {
            "type": "Point",
            "coordinates": [self.longitude, self.latitude],
            "address": self.address,
        }

    def __repr__(self) -> str:
        return f"<Store(id={self.id}, slug='{self.slug}')>"
