"""Pydantic v2 request/response schemas for item endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rentease.schemas.common import PaiseAsRupees, RupeeAmount

ITEM_CATEGORIES = (
    "electronics",
    "tools",
    "sports",
    "music",
    "books",
    "clothing",
    "furniture",
    "vehicles",
    "other",
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ItemCreate(BaseModel):
    """Schema for listing a new item. Prices are in rupees."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    category: str = Field(..., pattern=f"^({'|'.join(ITEM_CATEGORIES)})$")
    condition: str = Field("good", pattern="^(excellent|good|fair|poor)$")
    daily_price: RupeeAmount
    item_value: RupeeAmount
    deposit_percentage: int = Field(20, ge=0, le=100)
    min_rental_days: int = Field(1, ge=1)
    max_rental_days: int = Field(30, ge=1, le=365)

    @model_validator(mode="after")
    def check_rental_days(self) -> "ItemCreate":
        """Validate that the minimum rental length does not exceed the maximum."""
        if self.min_rental_days > self.max_rental_days:
            raise ValueError("min_rental_days must not exceed max_rental_days")
        return self


class ItemUpdate(BaseModel):
    """Schema for partially updating a listing. All fields optional.

    Price changes apply to bookings created afterwards; existing bookings keep
    the terms they were priced with.
    """

    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    category: str | None = Field(None, pattern=f"^({'|'.join(ITEM_CATEGORIES)})$")
    condition: str | None = Field(None, pattern="^(excellent|good|fair|poor)$")
    daily_price: RupeeAmount | None = None
    item_value: RupeeAmount | None = None
    deposit_percentage: int | None = Field(None, ge=0, le=100)
    min_rental_days: int | None = Field(None, ge=1)
    max_rental_days: int | None = Field(None, ge=1, le=365)

    @model_validator(mode="after")
    def check_required_not_null(self) -> "ItemUpdate":
        """Only the description may be cleared with an explicit null."""
        for field in self.model_fields_set - {"description"}:
            if getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ItemOwner(BaseModel):
    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class ItemResponse(BaseModel):
    """Public item information returned from the API."""

    id: uuid.UUID
    owner_id: uuid.UUID
    owner: ItemOwner | None = None
    title: str
    description: str | None = None
    category: str
    condition: str
    daily_price: PaiseAsRupees = Field(validation_alias="daily_price_paise")
    item_value: PaiseAsRupees = Field(validation_alias="item_value_paise")
    deposit_percentage: int
    is_available: bool
    min_rental_days: int
    max_rental_days: int
    stats_bookings: int
    stats_total_earnings: PaiseAsRupees = Field(validation_alias="stats_total_earnings_paise")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ItemListResponse(BaseModel):
    """Paginated list of items."""

    items: list[ItemResponse]
    total: int
