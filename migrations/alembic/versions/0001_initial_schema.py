"""Initial schema - users, groups, group_memberships, assets, group_assets

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Identifiers are application-generated UUID strings. Contact identifiers are
stored only as SHA-256 hex digests.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("public_key", sa.Text(), nullable=False),
        sa.Column("private_key", sa.Text(), nullable=False),
        sa.Column("schema_version", sa.Text(), server_default="1", nullable=False),
        sa.Column("phone_hash", sa.String(64), nullable=True),
        sa.Column("email_hash", sa.String(64), nullable=True),
        sa.Column("apple_id_hash", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subject", name="uq_users_subject"),
    )
    op.create_index("ix_users_phone_hash", "users", ["phone_hash"])
    op.create_index("ix_users_email_hash", "users", ["email_hash"])

    # ==========================================================================
    # groups table
    # ==========================================================================
    op.create_table(
        "groups",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # group_memberships table
    # ==========================================================================
    op.create_table(
        "group_memberships",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("group_id", sa.String(64), nullable=False),
        # Group key wrapped with this member's public key
        sa.Column("group_key", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="invited", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "group_id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "status IN ('invited', 'joined')",
            name="ck_group_memberships_status",
        ),
    )
    op.create_index("ix_group_memberships_group_id", "group_memberships", ["group_id"])

    # ==========================================================================
    # assets table
    # ==========================================================================
    op.create_table(
        "assets",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("type", sa.Text(), server_default="photo", nullable=False),
        sa.Column("remote_path", sa.Text(), nullable=False),
        sa.Column("remote_path_original", sa.Text(), nullable=True),
        sa.Column("create_date", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("duration", sa.Text(), nullable=True),
        sa.Column("original_filename", sa.Text(), nullable=True),
        sa.Column("original_uti", sa.Text(), nullable=True),
        sa.Column("pixel_width", sa.Integer(), nullable=False),
        sa.Column("pixel_height", sa.Integer(), nullable=False),
        sa.Column("md5", sa.Text(), server_default="", nullable=False),
        sa.Column("key", sa.Text(), nullable=False),
        # NULL until the original representation has been probed
        sa.Column("total_size", sa.BigInteger(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["owner_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "pixel_width <> 0 AND pixel_height <> 0",
            name="ck_assets_pixel_dimensions",
        ),
    )
    op.create_index("ix_assets_owner_id", "assets", ["owner_id"])

    # ==========================================================================
    # group_assets table
    # ==========================================================================
    op.create_table(
        "group_assets",
        sa.Column("group_id", sa.String(64), nullable=False),
        sa.Column("asset_id", sa.String(64), nullable=False),
        # Asset key wrapped with the group key; NULL means in the album but not shared
        sa.Column("shared_key", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("group_id", "asset_id"),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["asset_id"],
            ["assets.id"],
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_group_assets_asset_id", "group_assets", ["asset_id"])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_index("ix_group_assets_asset_id", table_name="group_assets")
    op.drop_table("group_assets")
    op.drop_index("ix_assets_owner_id", table_name="assets")
    op.drop_table("assets")
    op.drop_index("ix_group_memberships_group_id", table_name="group_memberships")
    op.drop_table("group_memberships")
    op.drop_table("groups")
    op.drop_index("ix_users_email_hash", table_name="users")
    op.drop_index("ix_users_phone_hash", table_name="users")
    op.drop_table("users")
