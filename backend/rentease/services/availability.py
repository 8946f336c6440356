"""Availability checker — date-conflict detection for item reservations."""

import uuid
from datetime import datetime

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.models.booking import Booking

# Only a lender's approval reserves the item; pending requests never block.
BLOCKING_STATUSES = ("approved", "active")


async def has_conflict(
    db: AsyncSession,
    item_id: uuid.UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: uuid.UUID | None = None,
) -> bool:
    """Return True if an approved or active booking on the item overlaps ``[start, end]``.

    Overlap is inclusive, so a booking ending exactly when the proposed one
    starts still counts as a conflict.
    """
    conditions = [
        Booking.item_id == item_id,
        Booking.status.in_(BLOCKING_STATUSES),
        Booking.start_date <= end,
        Booking.end_date >= start,
    ]
    if exclude_booking_id is not None:
        conditions.append(Booking.id != exclude_booking_id)

    return bool(await db.scalar(select(exists().where(*conditions))))
