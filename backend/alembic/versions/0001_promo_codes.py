"""Promo codes and redemptions.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


discount_type = sa.Enum("PERCENTAGE", "FIXED", name="discounttype")


def upgrade() -> None:
    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(length=20), nullable=False, unique=True),
        sa.Column("description", sa.String(length=255)),
        sa.Column("discount_type", discount_type, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("max_discount", sa.Numeric(12, 2)),
        sa.Column(
            "min_purchase_amount",
            sa.Numeric(12, 2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("usage_limit", sa.Integer()),
        sa.Column("usage_per_user", sa.Integer(), server_default="1"),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("applicable_trips", sa.JSON(), nullable=False),
        sa.Column("applicable_vendors", sa.JSON(), nullable=False),
        sa.Column("applicable_categories", sa.JSON(), nullable=False),
        sa.Column("excluded_vendors", sa.JSON(), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("created_by", sa.String(length=64)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_promo_codes_validity", "promo_codes", ["valid_from", "valid_until"]
    )
    op.create_index("ix_promo_codes_is_active", "promo_codes", ["is_active"])

    op.create_table(
        "promo_code_usages",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "promo_code_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("promo_codes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("booking_id", sa.String(length=64)),
        sa.Column(
            "discount_applied",
            sa.Numeric(12, 2),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "used_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_promo_code_usages_promo_user",
        "promo_code_usages",
        ["promo_code_id", "user_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_promo_code_usages_promo_user", table_name="promo_code_usages")
    op.drop_table("promo_code_usages")
    op.drop_index("ix_promo_codes_is_active", table_name="promo_codes")
    op.drop_index("ix_promo_codes_validity", table_name="promo_codes")
    op.drop_table("promo_codes")
    discount_type.drop(op.get_bind(), checkfirst=True)
