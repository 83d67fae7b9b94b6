"""artists, artist urls and artist versions

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "artists",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=170), nullable=False),
        sa.Column("other_names", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("group_name", sa.String(length=170), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_artists_name", "artists", ["name"], unique=True)
    op.create_index("ix_artists_group_name", "artists", ["group_name"])

    op.create_table(
        "artist_urls",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "artist_id",
            sa.Integer(),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("normalized_url", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "artist_id", "normalized_url", name="uq_artist_urls_artist_normalized_url"
        ),
    )
    op.create_index("ix_artist_urls_artist_id", "artist_urls", ["artist_id"])
    # Prefix lookups walk directory levels with LIKE 'prefix%'.
    op.execute(
        "CREATE INDEX ix_artist_urls_normalized_url ON artist_urls "
        "(normalized_url text_pattern_ops)"
    )

    op.create_table(
        "artist_versions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("artists.id"), nullable=False),
        sa.Column("name", sa.String(length=170), nullable=False),
        sa.Column("other_names", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("group_name", sa.String(length=170), nullable=True),
        sa.Column("urls", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updater_id", UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_artist_versions_artist_id_id", "artist_versions", ["artist_id", "id"]
    )
    op.create_index("ix_artist_versions_updater_id", "artist_versions", ["updater_id"])


def downgrade() -> None:
    op.drop_index("ix_artist_versions_updater_id", table_name="artist_versions")
    op.drop_index("ix_artist_versions_artist_id_id", table_name="artist_versions")
    op.drop_table("artist_versions")
    op.drop_index("ix_artist_urls_normalized_url", table_name="artist_urls")
    op.drop_index("ix_artist_urls_artist_id", table_name="artist_urls")
    op.drop_table("artist_urls")
    op.drop_index("ix_artists_group_name", table_name="artists")
    op.drop_index("ix_artists_name", table_name="artists")
    op.drop_table("artists")
