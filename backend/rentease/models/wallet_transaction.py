"""Wallet transaction model — append-only ledger history."""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rentease.database import Base, utcnow


class WalletTransaction(Base):
    """One credit or debit against a user's wallet.

    Rows are written only by the ledger service and never updated or deleted,
    so a user's balance always equals the signed sum of their transactions.
    """

    __tablename__ = "wallet_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # credit, debit
    amount_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("amount_paise > 0", name="ck_wallet_transactions_amount_positive"),
        CheckConstraint("type IN ('credit', 'debit')", name="ck_wallet_transactions_type"),
        Index("ix_wallet_transactions_user_id_id", "user_id", "id"),
    )

    @property
    def signed_amount_paise(self) -> int:
        return self.amount_paise if self.type == "credit" else -self.amount_paise

    def __repr__(self) -> str:
        return f"<WalletTransaction(id={self.id}, type={self.type!r}, amount_paise={self.amount_paise})>"
