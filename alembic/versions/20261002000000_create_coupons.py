"""Create coupons and coupon_claims tables.

Revision ID: 20261002000000
Revises: 20261001000000
Create Date: 2026-10-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261002000000"
down_revision: Union[str, None] = "20261001000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "coupons",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("discount_type", sa.String(length=16), nullable=False),
        sa.Column("discount_value", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("store_name", sa.String(length=100), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("uploaded_by_id", sa.Integer(), nullable=False),
        sa.Column("claim_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["uploaded_by_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_coupons_category"), "coupons", ["category"])
    op.create_index(op.f("ix_coupons_expires_at"), "coupons", ["expires_at"])
    op.create_index(op.f("ix_coupons_uploaded_by_id"), "coupons", ["uploaded_by_id"])

    op.create_table(
        "coupon_claims",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("coupon_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["coupon_id"], ["coupons.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("coupon_id", "user_id", name="uq_coupon_claims_coupon_user"),
    )
    op.create_index(op.f("ix_coupon_claims_coupon_id"), "coupon_claims", ["coupon_id"])
    op.create_index(op.f("ix_coupon_claims_user_id"), "coupon_claims", ["user_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_coupon_claims_user_id"), table_name="coupon_claims")
    op.drop_index(op.f("ix_coupon_claims_coupon_id"), table_name="coupon_claims")
    op.drop_table("coupon_claims")
    op.drop_index(op.f("ix_coupons_uploaded_by_id"), table_name="coupons")
    op.drop_index(op.f("ix_coupons_expires_at"), table_name="coupons")
    op.drop_index(op.f("ix_coupons_category"), table_name="coupons")
    op.drop_table("coupons")
