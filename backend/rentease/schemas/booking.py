"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from rentease.schemas.common import PaiseAsRupees

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for requesting a booking.

    Date order is checked by the booking service so that a reversed range
    reports the same ``ValidationError`` as every other entry point.
    """

    item_id: uuid.UUID
    start_date: datetime
    end_date: datetime


class BookingStatusUpdate(BaseModel):
    """Schema for moving a booking to a new status."""

    status: str = Field(..., pattern="^(approved|cancelled|active|completed)$")
    note: str | None = Field(None, max_length=500)
    return_condition: str | None = Field(None, pattern="^(excellent|good|fair|poor|damaged)$")
    return_notes: str | None = Field(None, max_length=1000)


class BookingExtend(BaseModel):
    new_end_date: datetime


class BookingMessageCreate(BaseModel):
    # Length is checked after trimming by the booking service.
    text: str


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TimelineEntryResponse(BaseModel):
    status: str
    note: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingMessageResponse(BaseModel):
    sender_id: uuid.UUID
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingItemSummary(BaseModel):
    id: uuid.UUID
    title: str
    category: str

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    """Booking with its pricing snapshot (rupees), timeline, and messages."""

    id: uuid.UUID
    item_id: uuid.UUID
    item: BookingItemSummary | None = None
    borrower_id: uuid.UUID
    lender_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    status: str

    daily_price: PaiseAsRupees = Field(validation_alias="daily_price_paise")
    total_days: int
    subtotal: PaiseAsRupees = Field(validation_alias="subtotal_paise")
    deposit_amount: PaiseAsRupees = Field(validation_alias="deposit_amount_paise")
    platform_fee: PaiseAsRupees = Field(validation_alias="platform_fee_paise")
    total_amount: PaiseAsRupees = Field(validation_alias="total_amount_paise")
    lender_earnings: PaiseAsRupees = Field(validation_alias="lender_earnings_paise")

    deposit_paid: bool
    deposit_refunded: bool
    final_payment_made: bool
    lender_paid: bool

    return_condition: str | None = None
    return_notes: str | None = None

    timeline: list[TimelineEntryResponse] = []
    messages: list[BookingMessageResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingResponse]
    total: int
