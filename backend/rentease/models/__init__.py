"""SQLAlchemy models for RentEase.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from rentease.models.booking import Booking, BookingMessage, BookingTimelineEntry
from rentease.models.item import Item
from rentease.models.user import User
from rentease.models.wallet_transaction import WalletTransaction

__all__ = [
    "Booking",
    "BookingMessage",
    "BookingTimelineEntry",
    "Item",
    "User",
    "WalletTransaction",
]
