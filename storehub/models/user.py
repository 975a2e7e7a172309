"""
StoreHub Backend: User ORM Model
=================================

What:  The `users` table and the `user_hearts` set of hearted stores.
Who:   Users are created by the identity provider; this service reads them
       and only ever changes their hearts.
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storehub.database import Base


class UserHeart(Base):
    """A user's heart on a store; the composite key makes hearts a set."""

    __tablename__ = "user_hearts"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stores.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    heart_links: Mapped[List[UserHeart]] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by=UserHeart.created_at,
    )

    @property
    def hearts(self) -> List[uuid.UUID]:
        return [link.store_id for link in self.heart_links]

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
