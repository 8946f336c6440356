"""Item model — things members list for rent."""

import uuid

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentease.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Item(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A rentable item owned by a user.

    ``is_available`` is a projection kept in sync by the booking service:
    approval clears it, completion and cancellation of a reserving booking set
    it again. Pricing terms are read once, when a booking is created.
    """

    __tablename__ = "items"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    condition: Mapped[str] = mapped_column(String(20), default="good")  # excellent, good, fair, poor

    # Pricing terms
    daily_price_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    item_value_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deposit_percentage: Mapped[int] = mapped_column(Integer, default=20, nullable=False)

    # Availability
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    min_rental_days: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_rental_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Bumped by every approval and extension; concurrent reservers compare it.
    reservation_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Stats
    stats_bookings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stats_total_earnings_paise: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Relationships
    owner: Mapped["User"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("daily_price_paise > 0", name="ck_items_daily_price_positive"),
        CheckConstraint("item_value_paise > 0", name="ck_items_item_value_positive"),
        CheckConstraint(
            "deposit_percentage >= 0 AND deposit_percentage <= 100",
            name="ck_items_deposit_percentage_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, title={self.title!r}, available={self.is_available})>"
