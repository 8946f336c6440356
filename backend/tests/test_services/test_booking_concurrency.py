"""Status and reservation races between two independent sessions.

Uses a file-backed SQLite database so each session has its own connection
and sees only what the other has committed.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from rentease.auth.security import hash_password
from rentease.database import Base
from rentease.exceptions import DateConflictError, InvalidTransitionError
from rentease.models.booking import Booking
from rentease.models.item import Item
from rentease.models.user import User
from rentease.models.wallet_transaction import WalletTransaction
from rentease.money import to_paise
from rentease.services import booking_service, ledger

T0 = datetime(2026, 11, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sessions(file_engine) -> AsyncGenerator[tuple[AsyncSession, AsyncSession], None]:
    factory = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as first, factory() as second:
        yield first, second


@pytest_asyncio.fixture
async def pending_booking(sessions):
    """Commit a lender, a funded borrower, an item, and a pending booking."""
    db, _ = sessions
    lender = User(email="lender@race.test", hashed_password=hash_password("testpass123"), name="Lender")
    borrower = User(email="borrower@race.test", hashed_password=hash_password("testpass123"), name="Borrower")
    db.add_all([lender, borrower])
    await db.flush()
    await ledger.credit(db, borrower.id, to_paise(10000), "Test funding")

    item = Item(
        owner_id=lender.id,
        title="Race Camera",
        category="electronics",
        daily_price_paise=to_paise(100),
        item_value_paise=to_paise(10000),
        deposit_percentage=20,
    )
    db.add(item)
    await db.flush()

    booking = await booking_service.create_booking(db, item.id, borrower.id, T0, T0 + timedelta(days=5))
    await db.commit()
    return booking, lender, borrower


async def _debit_count(db: AsyncSession, user_id) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(WalletTransaction)
        .where(WalletTransaction.user_id == user_id, WalletTransaction.type == "debit")
    )


class TestConcurrentApproval:
    async def test_stale_compare_and_set_loses(self, sessions, pending_booking):
        first, second = sessions
        booking, lender, _ = pending_booking

        # Both sessions observed the booking as pending
        assert await booking_service.compare_and_set_status(first, booking.id, "pending", "approved") is True
        await first.commit()

        assert await booking_service.compare_and_set_status(second, booking.id, "pending", "approved") is False

    async def test_second_approval_fails_and_debits_once(self, sessions, pending_booking):
        first, second = sessions
        booking, lender, borrower = pending_booking

        # Second session loads the booking while it is still pending
        stale = await booking_service.get_booking(second, booking.id, lender.id)
        assert stale.status == "pending"

        await booking_service.transition(first, booking.id, lender.id, "approved")
        await first.commit()

        with pytest.raises(InvalidTransitionError):
            await booking_service.transition(second, booking.id, lender.id, "approved")
        await second.rollback()

        assert await _debit_count(second, borrower.id) == 1
        assert await ledger.get_balance(second, borrower.id) == to_paise(10000 - 2525)

    async def test_cancel_racing_approval(self, sessions, pending_booking):
        first, second = sessions
        booking, lender, borrower = pending_booking

        await booking_service.transition(first, booking.id, lender.id, "cancelled")
        await first.commit()

        with pytest.raises(InvalidTransitionError):
            await booking_service.transition(second, booking.id, lender.id, "approved")
        await second.rollback()

        assert await _debit_count(second, borrower.id) == 0
        assert await ledger.get_balance(second, borrower.id) == to_paise(10000)


def _approve_rival_after_first_check(monkeypatch, first, second, rival_id, lender_id) -> None:
    """Make ``first``'s availability check pass, then let ``second`` approve
    ``rival_id`` and commit before ``first`` carries on."""
    real_has_conflict = booking_service.has_conflict
    interleaved = False

    async def has_conflict(db, *args, **kwargs):
        nonlocal interleaved
        conflict = await real_has_conflict(db, *args, **kwargs)
        if db is first and not interleaved:
            interleaved = True
            await booking_service.transition(second, rival_id, lender_id, "approved")
            await second.commit()
        return conflict

    monkeypatch.setattr(booking_service, "has_conflict", has_conflict)


async def _approved_ids(db: AsyncSession, item_id) -> set:
    rows = await db.scalars(select(Booking.id).where(Booking.item_id == item_id, Booking.status == "approved"))
    return set(rows)


class TestConcurrentReservations:
    async def test_overlapping_approvals_reserve_once(self, monkeypatch, sessions, pending_booking):
        first, second = sessions
        booking, lender, borrower = pending_booking
        rival = await booking_service.create_booking(
            second, booking.item_id, borrower.id, T0 + timedelta(days=2), T0 + timedelta(days=4)
        )
        await second.commit()

        _approve_rival_after_first_check(monkeypatch, first, second, rival.id, lender.id)

        with pytest.raises(DateConflictError):
            await booking_service.transition(first, booking.id, lender.id, "approved")
        await first.rollback()

        assert await _approved_ids(second, booking.item_id) == {rival.id}
        assert await _debit_count(second, borrower.id) == 1
        assert await ledger.get_balance(second, borrower.id) == to_paise(10000) - rival.total_amount_paise

    async def test_extension_loses_to_overlapping_approval(self, monkeypatch, sessions, pending_booking):
        first, second = sessions
        booking, lender, borrower = pending_booking
        rival = await booking_service.create_booking(
            second, booking.item_id, borrower.id, T0 + timedelta(days=7), T0 + timedelta(days=9)
        )
        await second.commit()
        await booking_service.transition(first, booking.id, lender.id, "approved")
        await first.commit()

        _approve_rival_after_first_check(monkeypatch, first, second, rival.id, lender.id)

        with pytest.raises(DateConflictError):
            await booking_service.extend_booking(first, booking.id, lender.id, T0 + timedelta(days=8))
        await first.rollback()

        extended = await booking_service.get_booking(second, booking.id, lender.id)
        assert extended.end_date.replace(tzinfo=timezone.utc) == T0 + timedelta(days=5)
        assert await _approved_ids(second, booking.item_id) == {booking.id, rival.id}
        assert await _debit_count(second, borrower.id) == 2
