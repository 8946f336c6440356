"""Wallet ledger — the only code path that changes a user's balance.

Every mutation is one atomic ``UPDATE users SET balance_paise = balance_paise ± x``
followed by an append to ``wallet_transactions`` in the same database
transaction. The increment is evaluated by the database, so concurrent
settlements touching the same user serialize on the row instead of losing
updates. Nothing here commits; the caller's session boundary does.
"""

import logging
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.exceptions import InsufficientFundsError, NotFoundError, ValidationError
from rentease.models.user import User
from rentease.models.wallet_transaction import WalletTransaction
from rentease.money import format_rupees

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500


def _check_request(amount_paise: int, description: str, kind: str) -> None:
    if amount_paise <= 0:
        raise ValidationError(f"{kind} amount must be positive")
    if not description or len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Transaction description must be 1-{MAX_DESCRIPTION_LENGTH} characters")


async def get_balance(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Return the user's current balance in paise, read straight from the database."""
    balance = await db.scalar(select(User.balance_paise).where(User.id == user_id))
    if balance is None:
        raise NotFoundError("User")
    return balance


async def credit(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount_paise: int,
    description: str,
    booking_id: uuid.UUID | None = None,
    count_as_earnings: bool = False,
) -> WalletTransaction:
    """Add ``amount_paise`` to a user's wallet and record the credit.

    Args:
        db: Database session (transaction managed by caller).
        user_id: Wallet owner.
        amount_paise: Positive amount to add.
        description: Human-readable reason shown in the history.
        booking_id: Booking that caused the credit, if any.
        count_as_earnings: Also add the amount to the user's lifetime
            ``total_earnings_paise`` stat (rental earnings for lenders).

    Raises:
        ValidationError: If the amount is not positive or the
            description is empty or too long.
        NotFoundError: If the user does not exist.
    """
    _check_request(amount_paise, description, "Credit")

    values = {User.balance_paise: User.balance_paise + amount_paise}
    if count_as_earnings:
        values[User.total_earnings_paise] = User.total_earnings_paise + amount_paise

    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(values)
        .returning(User.balance_paise)
        .execution_options(synchronize_session=False)
    )
    balance_after = result.scalar_one_or_none()
    if balance_after is None:
        raise NotFoundError("User")

    txn = await _append(db, user_id, "credit", amount_paise, balance_after, description, booking_id)
    logger.info("Credited %s paise to user %s (balance %s): %s", amount_paise, user_id, balance_after, description)
    return txn


async def debit(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount_paise: int,
    description: str,
    booking_id: uuid.UUID | None = None,
    allow_overdraft: bool = False,
) -> WalletTransaction:
    """Take ``amount_paise`` from a user's wallet and record the debit.

    The sufficiency check is part of the ``UPDATE``'s ``WHERE`` clause, so two
    concurrent debits can never both pass it against the same balance.

    Raises:
        ValidationError: If the amount is not positive or the
            description is empty or too long.
        NotFoundError: If the user does not exist.
        InsufficientFundsError: If the balance is below the amount and
            ``allow_overdraft`` is false. Nothing is written in that case.
    """
    _check_request(amount_paise, description, "Debit")

    stmt = update(User).where(User.id == user_id)
    if not allow_overdraft:
        stmt = stmt.where(User.balance_paise >= amount_paise)

    result = await db.execute(
        stmt.values({User.balance_paise: User.balance_paise - amount_paise})
        .returning(User.balance_paise)
        .execution_options(synchronize_session=False)
    )
    balance_after = result.scalar_one_or_none()
    if balance_after is None:
        # Distinguish a missing user from a short balance.
        await get_balance(db, user_id)
        raise InsufficientFundsError("Insufficient wallet balance")

    txn = await _append(db, user_id, "debit", amount_paise, balance_after, description, booking_id)
    logger.info("Debited %s paise from user %s (balance %s): %s", amount_paise, user_id, balance_after, description)
    return txn


async def top_up(db: AsyncSession, user_id: uuid.UUID, amount_paise: int) -> WalletTransaction:
    """Self-serve wallet top-up with no booking context."""
    return await credit(db, user_id, amount_paise, f"Wallet top-up of {format_rupees(amount_paise)}")


async def list_transactions(
    db: AsyncSession,
    user_id: uuid.UUID,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[WalletTransaction], int]:
    """Return a page of the user's transactions (newest first) and the total count."""
    total = await db.scalar(
        select(func.count()).select_from(WalletTransaction).where(WalletTransaction.user_id == user_id)
    )
    result = await db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def ledger_sum(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Signed sum of all transactions for a user; equals the balance when the ledger is consistent."""
    credits = await db.scalar(
        select(func.coalesce(func.sum(WalletTransaction.amount_paise), 0)).where(
            WalletTransaction.user_id == user_id, WalletTransaction.type == "credit"
        )
    )
    debits = await db.scalar(
        select(func.coalesce(func.sum(WalletTransaction.amount_paise), 0)).where(
            WalletTransaction.user_id == user_id, WalletTransaction.type == "debit"
        )
    )
    return int(credits) - int(debits)


async def _append(
    db: AsyncSession,
    user_id: uuid.UUID,
    type_: str,
    amount_paise: int,
    balance_after: int,
    description: str,
    booking_id: uuid.UUID | None,
) -> WalletTransaction:
    txn = WalletTransaction(
        user_id=user_id,
        booking_id=booking_id,
        type=type_,
        amount_paise=amount_paise,
        balance_after_paise=balance_after,
        description=description,
    )
    db.add(txn)
    await db.flush()
    return txn
