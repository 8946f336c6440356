"""Bookings API router.

Thin HTTP layer over ``rentease.services.booking_service``. Domain errors
raised by the service propagate to the application's ``RentEaseError``
handler; the request's session commits only if the whole operation
succeeded.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.api.deps import get_current_active_user, get_db, require_not_in_maintenance
from rentease.models.booking import Booking
from rentease.models.user import User
from rentease.schemas.booking import (
    BookingCreate,
    BookingExtend,
    BookingListResponse,
    BookingMessageCreate,
    BookingResponse,
    BookingStatusUpdate,
)
from rentease.services import booking_service

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking",
    dependencies=[Depends(require_not_in_maintenance)],
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Request an item for a date range. No money moves until the lender approves."""
    return await booking_service.create_booking(
        db,
        item_id=body.item_id,
        borrower_id=current_user.id,
        start=body.start_date,
        end=body.end_date,
    )


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List the current user's bookings",
)
async def list_bookings(
    role: str = Query("all", pattern="^(all|borrower|lender)$", description="Which side of the booking"),
    status_filter: str | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(10, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Return bookings where the user is borrower and/or lender, newest first."""
    items, total = await booking_service.list_bookings(
        db,
        current_user.id,
        role=role,
        status=status_filter,
        skip=skip,
        limit=limit,
    )
    return {"items": items, "total": total}


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking with timeline and messages",
)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    return await booking_service.get_booking(db, booking_id, current_user.id)


@router.put(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Approve, cancel, start, or complete a booking",
    dependencies=[Depends(require_not_in_maintenance)],
)
async def update_booking_status(
    booking_id: uuid.UUID,
    body: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Move the booking to ``body.status`` and settle the wallet side effects."""
    return await booking_service.transition(
        db,
        booking_id,
        current_user.id,
        body.status,
        note=body.note,
        return_condition=body.return_condition,
        return_notes=body.return_notes,
    )


@router.post(
    "/{booking_id}/extend",
    response_model=BookingResponse,
    summary="Extend an approved or active rental",
    dependencies=[Depends(require_not_in_maintenance)],
)
async def extend_booking(
    booking_id: uuid.UUID,
    body: BookingExtend,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Push the end date out; the borrower is charged for the extra days immediately."""
    return await booking_service.extend_booking(db, booking_id, current_user.id, body.new_end_date)


@router.post(
    "/{booking_id}/messages",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message on a booking",
    dependencies=[Depends(require_not_in_maintenance)],
)
async def add_message(
    booking_id: uuid.UUID,
    body: BookingMessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    return await booking_service.add_message(db, booking_id, current_user.id, body.text)
