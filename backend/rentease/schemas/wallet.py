"""Pydantic v2 request/response schemas for wallet endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from rentease.schemas.common import PaiseAsRupees, RupeeAmount


class TopUpRequest(BaseModel):
    """Self-serve wallet top-up, in rupees."""

    # Upper bound is settings.max_top_up, checked by the router.
    amount: RupeeAmount


class WalletTransactionResponse(BaseModel):
    id: int
    type: str
    amount: PaiseAsRupees = Field(validation_alias="amount_paise")
    balance_after: PaiseAsRupees = Field(validation_alias="balance_after_paise")
    description: str
    booking_id: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletResponse(BaseModel):
    """Current balance with a page of transaction history (newest first)."""

    balance: PaiseAsRupees
    total_earnings: PaiseAsRupees
    transactions: list[WalletTransactionResponse]
    total: int
