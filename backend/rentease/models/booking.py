"""Booking model — item reservations with pricing snapshot, timeline, and messages."""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentease.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

BOOKING_STATUSES = ("pending", "approved", "active", "completed", "cancelled")
RETURN_CONDITIONS = ("excellent", "good", "fair", "poor", "damaged")


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A borrower's reservation of an item over ``[start_date, end_date)``.

    The pricing columns are a snapshot taken at creation and only changed by an
    explicit extension. Status moves only through
    ``rentease.services.booking_service.transition``.
    """

    __tablename__ = "bookings"

    item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    borrower_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # Copied from the item's owner at creation, never re-derived.
    lender_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        nullable=False,
        index=True,
    )  # pending, approved, active, completed, cancelled

    # Pricing snapshot (paise)
    daily_price_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deposit_amount_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    platform_fee_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_amount_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    lender_earnings_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Payment flags, each flipped false -> true at most once
    deposit_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deposit_refunded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    final_payment_made: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lender_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Return condition, recorded on completion
    return_condition: Mapped[str | None] = mapped_column(String(20), nullable=True)
    return_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    item: Mapped["Item"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    timeline: Mapped[list["BookingTimelineEntry"]] = relationship(
        back_populates="booking",
        lazy="selectin",
        order_by="BookingTimelineEntry.id",
    )
    messages: Mapped[list["BookingMessage"]] = relationship(
        back_populates="booking",
        lazy="selectin",
        order_by="BookingMessage.id",
    )

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_bookings_date_order"),
        CheckConstraint(
            "total_amount_paise = subtotal_paise + deposit_amount_paise + platform_fee_paise",
            name="ck_bookings_total_amount",
        ),
        CheckConstraint(
            "lender_earnings_paise = subtotal_paise - platform_fee_paise",
            name="ck_bookings_lender_earnings",
        ),
        Index("ix_bookings_item_status_dates", "item_id", "status", "start_date", "end_date"),
    )

    def add_timeline_entry(self, status: str, note: str = "") -> "BookingTimelineEntry":
        entry = BookingTimelineEntry(status=status, note=note)
        self.timeline.append(entry)
        return entry

    def is_party(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.borrower_id, self.lender_id)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, item_id={self.item_id}, borrower_id={self.borrower_id}, status={self.status})>"


class BookingTimelineEntry(Base):
    """Append-only audit row: one per status transition or extension."""

    __tablename__ = "booking_timeline"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="timeline", lazy="raise")

    def __repr__(self) -> str:
        return f"<BookingTimelineEntry(booking_id={self.booking_id}, status={self.status!r})>"


class BookingMessage(Base):
    """A message between borrower and lender attached to a booking."""

    __tablename__ = "booking_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="messages", lazy="raise")

    def __repr__(self) -> str:
        return f"<BookingMessage(booking_id={self.booking_id}, sender_id={self.sender_id})>"
