"""Create marketplace tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  builds, build_flags, buyer_profiles and purchases.
How:   PostgreSQL types (UUID, JSONB, TIMESTAMPTZ); see buildmarket/models
       for column rationale.

Rollback: downgrade() drops all four tables (destructive).
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


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "builds",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("seller_name", sa.String(64), nullable=False),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("game_type", sa.String(20), nullable=False),
        sa.Column("position", sa.String(20), nullable=False),
        sa.Column("archetype", sa.String(60), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column(
            "import_code",
            sa.Text(),
            nullable=True,
            comment="Revealed to the buyer only after purchase",
        ),
        sa.Column(
            "build_vector",
            postgresql.JSONB(),
            nullable=True,
            comment="8 playstyle ints 1-10, same order as buyer_profiles.playstyle_vector",
        ),
        sa.Column("performance", postgresql.JSONB(), nullable=True),
        sa.Column("attributes", postgresql.JSONB(), nullable=True),
        sa.Column("overall_rating", sa.Integer(), nullable=True),
        sa.Column("height_in", sa.Integer(), nullable=True),
        sa.Column("weight_lbs", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("featured", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price_cents > 0", name="ck_builds_price_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'rejected', 'sold')",
            name="ck_builds_status",
        ),
    )
    op.create_index("ix_builds_seller_id", "builds", ["seller_id"])
    op.create_index(
        "idx_builds_status_created_at",
        "builds",
        ["status", sa.text("created_at DESC")],
    )

    op.create_table(
        "build_flags",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("build_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reporter_id", sa.String(64), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("resolved", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["build_id"], ["builds.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_build_flags_build_id", "build_flags", ["build_id"])

    op.create_table(
        "buyer_profiles",
        sa.Column("buyer_id", sa.String(64), nullable=False),
        sa.Column("preferred_sport", sa.String(20), nullable=True),
        sa.Column("playstyle_vector", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("buyer_id"),
    )

    op.create_table(
        "purchases",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("build_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("buyer_id", sa.String(64), nullable=False),
        sa.Column("buyer_name", sa.String(64), nullable=False),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["build_id"], ["builds.id"]),
        # One sale per build
        sa.UniqueConstraint("build_id", name="uq_purchases_build_id"),
    )
    op.create_index("ix_purchases_buyer_id", "purchases", ["buyer_id"])
    op.create_index("ix_purchases_seller_id", "purchases", ["seller_id"])


def downgrade() -> None:
    op.drop_index("ix_purchases_seller_id", table_name="purchases")
    op.drop_index("ix_purchases_buyer_id", table_name="purchases")
    op.drop_table("purchases")
    op.drop_table("buyer_profiles")
    op.drop_index("ix_build_flags_build_id", table_name="build_flags")
    op.drop_table("build_flags")
    op.drop_index("idx_builds_status_created_at", table_name="builds")
    op.drop_index("ix_builds_seller_id", table_name="builds")
    op.drop_table("builds")
