"""Wallet API router — balance, transaction history, and top-ups."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.api.deps import get_current_active_user, get_db, require_not_in_maintenance
from rentease.config import settings
from rentease.exceptions import ValidationError
from rentease.models.user import User
from rentease.money import format_rupees, to_paise
from rentease.schemas.wallet import TopUpRequest, WalletResponse
from rentease.services import ledger

router = APIRouter(prefix="/api/v1/wallet", tags=["wallet"])


async def _wallet_view(db: AsyncSession, user: User, skip: int, limit: int) -> dict:
    # Balances are changed by SQL increments; read them from the table, not the instance.
    row = (
        await db.execute(
            select(User.balance_paise, User.total_earnings_paise).where(User.id == user.id)
        )
    ).one()
    transactions, total = await ledger.list_transactions(db, user.id, skip=skip, limit=limit)
    return {
        "balance": row.balance_paise,
        "total_earnings": row.total_earnings_paise,
        "transactions": transactions,
        "total": total,
    }


@router.get(
    "",
    response_model=WalletResponse,
    summary="Get wallet balance and transaction history",
)
async def get_wallet(
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=200, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    return await _wallet_view(db, current_user, skip, limit)


@router.post(
    "/top-up",
    response_model=WalletResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add funds to the wallet",
    dependencies=[Depends(require_not_in_maintenance)],
)
async def top_up(
    body: TopUpRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Credit the wallet with a simulated payment. Amount is in rupees."""
    if body.amount > settings.max_top_up:
        raise ValidationError(f"Top-up amount cannot exceed {format_rupees(to_paise(settings.max_top_up))}")
    await ledger.top_up(db, current_user.id, to_paise(body.amount))
    return await _wallet_view(db, current_user, skip=0, limit=50)
