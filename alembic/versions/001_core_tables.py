"""Core tables: achievements, collections, collection items, notifications.

Revision ID: 001_core_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001_core_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_json = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # --- Achievements ---
    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("payload", _json, nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("owner_id", "kind", name="uq_user_achievements_owner_kind"),
    )
    op.create_index("ix_user_achievements_owner_id", "user_achievements", ["owner_id"])
    op.create_index("ix_user_achievements_kind", "user_achievements", ["kind"])

    # --- Collections ---
    op.create_table(
        "user_collections",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("color", sa.String(16), nullable=False, server_default="#8B5CF6"),
        sa.Column("icon", sa.String(16), nullable=False, server_default="\U0001f4da"),
        sa.Column("items_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("items_count >= 0", name="ck_user_collections_items_count"),
    )
    op.create_index("ix_user_collections_owner_id", "user_collections", ["owner_id"])
    op.create_index("ix_user_collections_is_public", "user_collections", ["is_public"])

    # --- Collection items ---
    op.create_table(
        "collection_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "collection_id",
            sa.Uuid(),
            sa.ForeignKey("user_collections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("resource_id", sa.String(256), nullable=False),
        sa.Column("category_id", sa.String(64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("collection_id", "resource_id", name="uq_collection_items_collection_resource"),
    )
    op.create_index("ix_collection_items_collection_id", "collection_items", ["collection_id"])
    op.create_index("ix_collection_items_resource_id", "collection_items", ["resource_id"])

    # --- Notifications ---
    op.create_table(
        "user_notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("payload", _json, nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_notifications_owner_id", "user_notifications", ["owner_id"])
    op.create_index("ix_user_notifications_is_read", "user_notifications", ["is_read"])


def downgrade() -> None:
    op.drop_table("user_notifications")
    op.drop_table("collection_items")
    op.drop_table("user_collections")
    op.drop_table("user_achievements")
