"""initial_marketplace_schema

Revision ID: 3f9c2b7e1a40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2b7e1a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("balance_paise", sa.BigInteger(), nullable=False),
        sa.Column("total_earnings_paise", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "items",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("condition", sa.String(length=20), nullable=False),
        sa.Column("daily_price_paise", sa.BigInteger(), nullable=False),
        sa.Column("item_value_paise", sa.BigInteger(), nullable=False),
        sa.Column("deposit_percentage", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("min_rental_days", sa.Integer(), nullable=False),
        sa.Column("max_rental_days", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("reservation_version", sa.Integer(), nullable=False),
        sa.Column("stats_bookings", sa.Integer(), nullable=False),
        sa.Column("stats_total_earnings_paise", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("daily_price_paise > 0", name="ck_items_daily_price_positive"),
        sa.CheckConstraint("item_value_paise > 0", name="ck_items_item_value_positive"),
        sa.CheckConstraint(
            "deposit_percentage >= 0 AND deposit_percentage <= 100",
            name="ck_items_deposit_percentage_range",
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_items_owner_id", "items", ["owner_id"])
    op.create_index("ix_items_category", "items", ["category"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("item_id", sa.UUID(), nullable=False),
        sa.Column("borrower_id", sa.UUID(), nullable=False),
        sa.Column("lender_id", sa.UUID(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("daily_price_paise", sa.BigInteger(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("subtotal_paise", sa.BigInteger(), nullable=False),
        sa.Column("deposit_amount_paise", sa.BigInteger(), nullable=False),
        sa.Column("platform_fee_paise", sa.BigInteger(), nullable=False),
        sa.Column("total_amount_paise", sa.BigInteger(), nullable=False),
        sa.Column("lender_earnings_paise", sa.BigInteger(), nullable=False),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False),
        sa.Column("deposit_refunded", sa.Boolean(), nullable=False),
        sa.Column("final_payment_made", sa.Boolean(), nullable=False),
        sa.Column("lender_paid", sa.Boolean(), nullable=False),
        sa.Column("return_condition", sa.String(length=20), nullable=True),
        sa.Column("return_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("start_date < end_date", name="ck_bookings_date_order"),
        sa.CheckConstraint(
            "total_amount_paise = subtotal_paise + deposit_amount_paise + platform_fee_paise",
            name="ck_bookings_total_amount",
        ),
        sa.CheckConstraint(
            "lender_earnings_paise = subtotal_paise - platform_fee_paise",
            name="ck_bookings_lender_earnings",
        ),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["borrower_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["lender_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bookings_item_id", "bookings", ["item_id"])
    op.create_index("ix_bookings_borrower_id", "bookings", ["borrower_id"])
    op.create_index("ix_bookings_lender_id", "bookings", ["lender_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index(
        "ix_bookings_item_status_dates",
        "bookings",
        ["item_id", "status", "start_date", "end_date"],
    )

    op.create_table(
        "booking_timeline",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("booking_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("note", sa.String(length=500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_booking_timeline_booking_id", "booking_timeline", ["booking_id"])

    op.create_table(
        "booking_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("booking_id", sa.UUID(), nullable=False),
        sa.Column("sender_id", sa.UUID(), nullable=False),
        sa.Column("text", sa.String(length=500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_booking_messages_booking_id", "booking_messages", ["booking_id"])

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("booking_id", sa.UUID(), nullable=True),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("amount_paise", sa.BigInteger(), nullable=False),
        sa.Column("balance_after_paise", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount_paise > 0", name="ck_wallet_transactions_amount_positive"),
        sa.CheckConstraint("type IN ('credit', 'debit')", name="ck_wallet_transactions_type"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_wallet_transactions_user_id_id", "wallet_transactions", ["user_id", "id"])
    op.create_index("ix_wallet_transactions_booking_id", "wallet_transactions", ["booking_id"])


def downgrade() -> None:
    op.drop_index("ix_wallet_transactions_booking_id", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_user_id_id", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")
    op.drop_index("ix_booking_messages_booking_id", table_name="booking_messages")
    op.drop_table("booking_messages")
    op.drop_index("ix_booking_timeline_booking_id", table_name="booking_timeline")
    op.drop_table("booking_timeline")
    op.drop_index("ix_bookings_item_status_dates", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_lender_id", table_name="bookings")
    op.drop_index("ix_bookings_borrower_id", table_name="bookings")
    op.drop_index("ix_bookings_item_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_items_category", table_name="items")
    op.drop_index("ix_items_owner_id", table_name="items")
    op.drop_table("items")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
