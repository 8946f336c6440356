"""Tests for the wallet ledger service."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.exceptions import InsufficientFundsError, NotFoundError, ValidationError
from rentease.models.user import User
from rentease.models.wallet_transaction import WalletTransaction
from rentease.money import to_paise
from rentease.services import ledger


async def _txn_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    return await db.scalar(
        select(func.count()).select_from(WalletTransaction).where(WalletTransaction.user_id == user_id)
    )


class TestCredit:
    async def test_credit_increases_balance_and_records_row(self, db_session: AsyncSession, make_user):
        user = await make_user("Asha")

        txn = await ledger.credit(db_session, user.id, to_paise(250), "Gift")

        assert await ledger.get_balance(db_session, user.id) == to_paise(250)
        assert txn.type == "credit"
        assert txn.amount_paise == to_paise(250)
        assert txn.balance_after_paise == to_paise(250)
        assert txn.description == "Gift"
        assert txn.booking_id is None

    async def test_earnings_counted_only_when_requested(self, db_session: AsyncSession, make_user):
        user = await make_user("Asha")

        await ledger.credit(db_session, user.id, to_paise(100), "Refund")
        await ledger.credit(db_session, user.id, to_paise(300), "Earnings", count_as_earnings=True)

        earnings = await db_session.scalar(select(User.total_earnings_paise).where(User.id == user.id))
        assert earnings == to_paise(300)
        assert await ledger.get_balance(db_session, user.id) == to_paise(400)

    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_amount_rejected(self, db_session: AsyncSession, make_user, amount):
        user = await make_user("Asha")
        with pytest.raises(ValidationError):
            await ledger.credit(db_session, user.id, amount, "Nope")
        assert await _txn_count(db_session, user.id) == 0

    async def test_unknown_user(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await ledger.credit(db_session, uuid.uuid4(), 100, "Ghost")

    @pytest.mark.parametrize("description", ["", "x" * 501])
    async def test_description_is_validated_not_truncated(self, db_session: AsyncSession, make_user, description):
        user = await make_user("Asha")
        with pytest.raises(ValidationError):
            await ledger.credit(db_session, user.id, to_paise(10), description)
        assert await ledger.get_balance(db_session, user.id) == 0
        assert await _txn_count(db_session, user.id) == 0

    async def test_description_at_column_limit_is_kept_whole(self, db_session: AsyncSession, make_user):
        user = await make_user("Asha")
        txn = await ledger.credit(db_session, user.id, to_paise(10), "x" * 500)
        assert txn.description == "x" * 500


class TestDebit:
    async def test_debit_decreases_balance(self, db_session: AsyncSession, make_user):
        user = await make_user("Ravi", balance=1000)

        txn = await ledger.debit(db_session, user.id, to_paise(600), "Booking payment for Drill")

        assert await ledger.get_balance(db_session, user.id) == to_paise(400)
        assert txn.type == "debit"
        assert txn.balance_after_paise == to_paise(400)

    async def test_debit_of_entire_balance_allowed(self, db_session: AsyncSession, make_user):
        user = await make_user("Ravi", balance=1000)
        await ledger.debit(db_session, user.id, to_paise(1000), "All of it")
        assert await ledger.get_balance(db_session, user.id) == 0

    async def test_insufficient_funds_writes_nothing(self, db_session: AsyncSession, make_user):
        user = await make_user("Ravi", balance=100)
        before = await _txn_count(db_session, user.id)

        with pytest.raises(InsufficientFundsError):
            await ledger.debit(db_session, user.id, to_paise(100.01), "Too much")

        assert await ledger.get_balance(db_session, user.id) == to_paise(100)
        assert await _txn_count(db_session, user.id) == before

    async def test_overdraft_allowed_when_requested(self, db_session: AsyncSession, make_user):
        user = await make_user("Ravi", balance=100)
        await ledger.debit(db_session, user.id, to_paise(150), "Overdraft", allow_overdraft=True)
        assert await ledger.get_balance(db_session, user.id) == to_paise(-50)

    async def test_unknown_user_is_not_found(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await ledger.debit(db_session, uuid.uuid4(), 100, "Ghost")

    async def test_zero_amount_rejected(self, db_session: AsyncSession, make_user):
        user = await make_user("Ravi", balance=100)
        with pytest.raises(ValidationError):
            await ledger.debit(db_session, user.id, 0, "Nothing")

    async def test_overlong_description_writes_nothing(self, db_session: AsyncSession, make_user):
        user = await make_user("Ravi", balance=1000)
        with pytest.raises(ValidationError):
            await ledger.debit(db_session, user.id, to_paise(100), "y" * 501)
        assert await ledger.get_balance(db_session, user.id) == to_paise(1000)
        assert await ledger.ledger_sum(db_session, user.id) == to_paise(1000)


class TestTopUpAndHistory:
    async def test_top_up_description(self, db_session: AsyncSession, make_user):
        user = await make_user("Meera")
        txn = await ledger.top_up(db_session, user.id, to_paise(1250))
        assert txn.description == "Wallet top-up of ₹1,250"

    async def test_top_up_description_keeps_paise(self, db_session: AsyncSession, make_user):
        user = await make_user("Meera")
        txn = await ledger.top_up(db_session, user.id, to_paise("99.50"))
        assert txn.description == "Wallet top-up of ₹99.50"

    async def test_history_is_newest_first_and_paginated(self, db_session: AsyncSession, make_user):
        user = await make_user("Meera")
        for amount in (10, 20, 30):
            await ledger.top_up(db_session, user.id, to_paise(amount))

        rows, total = await ledger.list_transactions(db_session, user.id, skip=0, limit=2)

        assert total == 3
        assert [r.amount_paise for r in rows] == [to_paise(30), to_paise(20)]

        rows, _ = await ledger.list_transactions(db_session, user.id, skip=2, limit=2)
        assert [r.amount_paise for r in rows] == [to_paise(10)]


class TestLedgerInvariant:
    async def test_balance_equals_signed_sum(self, db_session: AsyncSession, make_user):
        user = await make_user("Kiran", balance=500)
        await ledger.top_up(db_session, user.id, to_paise(250))
        await ledger.debit(db_session, user.id, to_paise(600), "Rental")
        await ledger.credit(db_session, user.id, to_paise(75), "Deposit refund")
        with pytest.raises(InsufficientFundsError):
            await ledger.debit(db_session, user.id, to_paise(1000), "Too much")

        balance = await ledger.get_balance(db_session, user.id)
        assert balance == to_paise(225)
        assert await ledger.ledger_sum(db_session, user.id) == balance

    async def test_balance_after_tracks_running_total(self, db_session: AsyncSession, make_user):
        user = await make_user("Kiran")
        await ledger.top_up(db_session, user.id, to_paise(100))
        await ledger.debit(db_session, user.id, to_paise(40), "Rental")
        await ledger.top_up(db_session, user.id, to_paise(5))

        rows, _ = await ledger.list_transactions(db_session, user.id)
        running = 0
        for row in reversed(rows):
            running += row.signed_amount_paise
            assert row.balance_after_paise == running
