"""Create users, stores, store_tags and user_hearts

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema for the store directory.
How:   PostgreSQL-specific pieces: UUID keys, TIMESTAMP WITH TIME ZONE and the
       GIN index behind full-text search. The index expression must stay
       identical to `text_document()` in storehub/services/store_repository.py
       or the planner will not use it.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "stores",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "slug",
            sa.String(255),
            nullable=False,
            comment="URL key derived from the name; collisions get -2, -3, ...",
        ),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column(
            "photo",
            sa.String(255),
            nullable=False,
            server_default=sa.text("'store.png'"),
            comment="Filename inside the upload directory",
        ),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_stores_slug"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], name="fk_stores_author"),
        sa.CheckConstraint(
            "(longitude IS NULL) = (latitude IS NULL)",
            name="ck_stores_coordinates_paired",
        ),
    )

    op.create_index("idx_stores_created_at", "stores", [sa.text("created_at DESC")])
    op.create_index("idx_stores_lat_lng", "stores", ["latitude", "longitude"])
    op.create_index(
        "idx_stores_text_search",
        "stores",
        [sa.text("to_tsvector('english'::regconfig, name || ' ' || description)")],
        postgresql_using="gin",
    )

    op.create_table(
        "store_tags",
        sa.Column("store_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tag", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("store_id", "tag"),
        sa.ForeignKeyConstraint(
            ["store_id"], ["stores.id"], name="fk_store_tags_store", ondelete="CASCADE"
        ),
    )
    op.create_index("idx_store_tags_tag", "store_tags", ["tag"])

    op.create_table(
        "user_hearts",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("store_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "store_id"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_hearts_user", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["store_id"], ["stores.id"], name="fk_user_hearts_store", ondelete="CASCADE"
        ),
    )


def downgrade() -> None:
    """Drop every table. All stores, tags and hearts are lost."""
    op.drop_table("user_hearts")
    op.drop_index("idx_store_tags_tag", table_name="store_tags")
    op.drop_table("store_tags")
    op.drop_index("idx_stores_text_search", table_name="stores")
    op.drop_index("idx_stores_lat_lng", table_name="stores")
    op.drop_index("idx_stores_created_at", table_name="stores")
    op.drop_table("stores")
    op.drop_table("users")
