"""Booking service — booking lifecycle, money movement, and availability sync.

States::

    pending -> approved -> active -> completed
       |          |
       +----------+--> cancelled

Every status change goes through ``transition``, which claims the change with
a compare-and-set ``UPDATE ... WHERE status = :expected`` before touching the
ledger. Of two concurrent callers only one sees the expected status and
proceeds; the other gets ``InvalidTransitionError`` and writes nothing.

Approvals and extensions of different bookings on the same item are
serialized per item: the item row is locked before the availability check and
its ``reservation_version`` is bumped with a guarded ``UPDATE`` before the
booking changes, so two overlapping reservations cannot both pass the check.

Nothing in this module commits. Booking state, ledger rows, and item flags are
flushed into the caller's transaction and committed (or rolled back) together
at the session boundary.
"""

import logging
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.exceptions import (
    DateConflictError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidOperationError,
    InvalidTransitionError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from rentease.models.booking import RETURN_CONDITIONS, Booking, BookingMessage
from rentease.models.item import Item
from rentease.services import ledger
from rentease.services.availability import BLOCKING_STATUSES, has_conflict
from rentease.services.pricing import PricingSnapshot, calculate_extension, calculate_pricing

logger = logging.getLogger(__name__)

# (from, to) pairs reachable through ``transition``.
ALLOWED_TRANSITIONS: frozenset[tuple[str, str]] = frozenset(
    {
        ("pending", "approved"),
        ("pending", "cancelled"),
        ("approved", "cancelled"),
        ("approved", "active"),
        ("active", "completed"),
    }
)
LENDER_ONLY_TARGETS = frozenset({"approved", "cancelled"})
EXTENDABLE_STATUSES = ("approved", "active")
MAX_MESSAGE_LENGTH = 500


def _as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime (SQLite hands back naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _snapshot(booking: Booking) -> PricingSnapshot:
    return PricingSnapshot(
        daily_price_paise=booking.daily_price_paise,
        total_days=booking.total_days,
        subtotal_paise=booking.subtotal_paise,
        deposit_amount_paise=booking.deposit_amount_paise,
        platform_fee_paise=booking.platform_fee_paise,
        total_amount_paise=booking.total_amount_paise,
        lender_earnings_paise=booking.lender_earnings_paise,
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def _load_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    """Fetch a booking with item, timeline, and messages, refreshing any cached copy."""
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking")
    return booking


async def get_booking(db: AsyncSession, booking_id: uuid.UUID, user_id: uuid.UUID) -> Booking:
    """Return a booking visible to ``user_id`` (its borrower or lender)."""
    booking = await _load_booking(db, booking_id)
    if not booking.is_party(user_id):
        raise ForbiddenError("Not authorized to view this booking")
    return booking


async def list_bookings(
    db: AsyncSession,
    user_id: uuid.UUID,
    role: str = "all",
    status: str | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[Booking], int]:
    """Return a page of the user's bookings (newest first) and the total count.

    ``role`` narrows to bookings where the user is the ``borrower`` or the
    ``lender``; anything else returns both sides.
    """
    if role == "borrower":
        filters = [Booking.borrower_id == user_id]
    elif role == "lender":
        filters = [Booking.lender_id == user_id]
    else:
        filters = [or_(Booking.borrower_id == user_id, Booking.lender_id == user_id)]

    if status is not None and status != "all":
        filters.append(Booking.status == status)

    total = await db.scalar(select(func.count()).select_from(Booking).where(*filters))
    result = await db.execute(
        select(Booking).where(*filters).order_by(Booking.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total or 0


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def create_booking(
    db: AsyncSession,
    item_id: uuid.UUID,
    borrower_id: uuid.UUID,
    start: datetime,
    end: datetime,
    platform_fee_percent: Decimal | None = None,
) -> Booking:
    """Create a pending booking request.

    The borrower's balance is checked against the total but not held; money
    only moves when the lender approves.

    Raises:
        ValidationError: If ``end`` is not after ``start`` or the rental
            length is outside the item's limits.
        NotFoundError: If the item does not exist or is delisted.
        InvalidOperationError: If the borrower owns the item.
        UnavailableError: If the item is currently not bookable.
        DateConflictError: If an approved or active booking overlaps.
        InsufficientFundsError: If the borrower cannot cover the total.
    """
    start, end = _as_utc(start), _as_utc(end)
    if end <= start:
        raise ValidationError("End date must be after start date")

    item = await db.get(Item, item_id)
    if item is None or not item.is_active:
        raise NotFoundError("Item")

    if item.owner_id == borrower_id:
        raise InvalidOperationError("You cannot book your own item")

    if not item.is_available:
        raise UnavailableError("Item is not available for booking")

    pricing = calculate_pricing(
        item.daily_price_paise,
        item.item_value_paise,
        item.deposit_percentage,
        start,
        end,
        platform_fee_percent,
    )
    if not item.min_rental_days <= pricing.total_days <= item.max_rental_days:
        raise ValidationError(
            f"Rental must be between {item.min_rental_days} and {item.max_rental_days} days"
        )

    if await has_conflict(db, item.id, start, end):
        raise DateConflictError("Item is not available for the selected dates")

    balance = await ledger.get_balance(db, borrower_id)
    if balance < pricing.total_amount_paise:
        raise InsufficientFundsError("Insufficient wallet balance")

    booking = Booking(
        item=item,
        borrower_id=borrower_id,
        lender_id=item.owner_id,
        start_date=start,
        end_date=end,
        status="pending",
        **asdict(pricing),
    )
    booking.add_timeline_entry("pending", "Booking request created")
    db.add(booking)
    await db.flush()

    logger.info(
        "Booking %s requested for item %s by %s (%s days, total %s paise)",
        booking.id,
        item.id,
        borrower_id,
        pricing.total_days,
        pricing.total_amount_paise,
    )
    return await _load_booking(db, booking.id)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


async def compare_and_set_status(
    db: AsyncSession,
    booking_id: uuid.UUID,
    expected: str,
    target: str,
) -> bool:
    """Atomically move a booking from ``expected`` to ``target``.

    Returns False, changing nothing, when the stored status is no longer
    ``expected``.
    """
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected)
        .values(status=target)
        .returning(Booking.id)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none() is not None


async def _lock_item(db: AsyncSession, item_id: uuid.UUID) -> int:
    """Lock a listed item's row and return the reservation version seen under the lock."""
    row = (
        await db.execute(
            select(Item.reservation_version, Item.is_active).where(Item.id == item_id).with_for_update()
        )
    ).one()
    if not row.is_active:
        raise UnavailableError("Item is no longer listed")
    return row.reservation_version


async def _claim_item(db: AsyncSession, item_id: uuid.UUID, seen_version: int) -> bool:
    """Bump the item's reservation version if nobody else has since ``seen_version``.

    Where ``FOR UPDATE`` is honoured the lock already serializes reservers and
    this always succeeds. Elsewhere it is the only guard: a reserver whose
    availability check ran before another reservation committed loses here.
    """
    result = await db.execute(
        update(Item)
        .where(Item.id == item_id, Item.reservation_version == seen_version)
        .values(reservation_version=Item.reservation_version + 1)
        .returning(Item.id)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none() is not None


async def _set_item_available(db: AsyncSession, item_id: uuid.UUID, available: bool) -> None:
    await db.execute(
        update(Item)
        .where(Item.id == item_id)
        .values(is_available=available)
        .execution_options(synchronize_session=False)
    )


async def _release_item(db: AsyncSession, booking: Booking) -> None:
    """Make the item bookable again unless another booking still reserves it."""
    still_reserved = await db.scalar(
        select(func.count())
        .select_from(Booking)
        .where(
            Booking.item_id == booking.item_id,
            Booking.id != booking.id,
            Booking.status.in_(BLOCKING_STATUSES),
        )
    )
    if still_reserved:
        logger.info("Item %s stays unavailable: %s other reservation(s)", booking.item_id, still_reserved)
        return
    await _set_item_available(db, booking.item_id, True)


async def transition(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor_id: uuid.UUID,
    target: str,
    note: str | None = None,
    return_condition: str | None = None,
    return_notes: str | None = None,
) -> Booking:
    """Move a booking to ``target`` and apply that transition's side effects.

    * pending -> approved (lender): debit borrower the total, mark deposit
      paid, item unavailable.
    * pending|approved -> cancelled (lender): refund the borrower in full if
      they were charged, release the item if this booking reserved it.
    * approved -> active (either party): pickup confirmed.
    * active -> completed (either party): pay the lender their earnings,
      refund the deposit, release the item, bump item stats.

    Raises:
        NotFoundError: Unknown booking.
        ForbiddenError: Actor is not a party, or not the lender for
            approve/cancel.
        InvalidTransitionError: ``target`` is not reachable from the current
            status, including a concurrent caller having moved it first.
        DateConflictError: Approving over another approved/active booking,
            including one approved concurrently.
        UnavailableError: The item has been delisted.
        InsufficientFundsError: Borrower can no longer cover the total.
        ValidationError: Return condition given for a non-completion or
            outside the known values.
    """
    booking = await _load_booking(db, booking_id)

    if not booking.is_party(actor_id):
        raise ForbiddenError("Not authorized to update this booking")
    if target in LENDER_ONLY_TARGETS and actor_id != booking.lender_id:
        raise ForbiddenError("Only the lender can approve or cancel bookings")

    source = booking.status
    if (source, target) not in ALLOWED_TRANSITIONS:
        raise InvalidTransitionError(f"Cannot change booking status from {source} to {target}")

    if return_condition is not None:
        if target != "completed":
            raise ValidationError("Return condition can only be recorded when completing a booking")
        if return_condition not in RETURN_CONDITIONS:
            raise ValidationError(f"Return condition must be one of: {', '.join(RETURN_CONDITIONS)}")
        if actor_id != booking.lender_id:
            raise ForbiddenError("Only the lender can record the return condition")

    title = booking.item.title

    # Checks that can fail run before the status is claimed.
    if target == "approved":
        seen_version = await _lock_item(db, booking.item_id)
        if await has_conflict(db, booking.item_id, booking.start_date, booking.end_date, booking.id):
            raise DateConflictError("Item is already reserved for overlapping dates")
        if await ledger.get_balance(db, booking.borrower_id) < booking.total_amount_paise:
            raise InsufficientFundsError("Borrower has insufficient wallet balance")
        if not await _claim_item(db, booking.item_id, seen_version):
            logger.warning("Lost reservation race on item %s (booking %s)", booking.item_id, booking.id)
            raise DateConflictError("Item was reserved concurrently; reload and retry")

    if not await compare_and_set_status(db, booking.id, source, target):
        logger.warning("Lost status race on booking %s (%s -> %s)", booking.id, source, target)
        raise InvalidTransitionError(f"Booking is no longer {source}")
    booking.status = target

    if target == "approved":
        await ledger.debit(db, booking.borrower_id, booking.total_amount_paise, f"Booking payment for {title}", booking.id)
        booking.deposit_paid = True
        await _set_item_available(db, booking.item_id, False)
        booking.add_timeline_entry("approved", note or "Booking approved by lender")

    elif target == "cancelled":
        if booking.deposit_paid:
            await ledger.credit(
                db,
                booking.borrower_id,
                booking.total_amount_paise,
                f"Refund for cancelled booking: {title}",
                booking.id,
            )
        if source == "approved":
            await _release_item(db, booking)
        booking.add_timeline_entry("cancelled", note or "Booking cancelled")

    elif target == "active":
        await _set_item_available(db, booking.item_id, False)
        booking.add_timeline_entry("active", note or "Item pickup completed")

    elif target == "completed":
        if booking.lender_earnings_paise > 0:
            await ledger.credit(
                db,
                booking.lender_id,
                booking.lender_earnings_paise,
                f"Earnings from rental: {title}",
                booking.id,
                count_as_earnings=True,
            )
        if booking.deposit_amount_paise > 0:
            await ledger.credit(
                db,
                booking.borrower_id,
                booking.deposit_amount_paise,
                f"Deposit refund for: {title}",
                booking.id,
            )
        booking.final_payment_made = True
        booking.lender_paid = True
        booking.deposit_refunded = True
        booking.return_condition = return_condition
        booking.return_notes = return_notes
        await _release_item(db, booking)
        await db.execute(
            update(Item)
            .where(Item.id == booking.item_id)
            .values(
                stats_bookings=Item.stats_bookings + 1,
                stats_total_earnings_paise=Item.stats_total_earnings_paise + booking.lender_earnings_paise,
            )
            .execution_options(synchronize_session=False)
        )
        booking.add_timeline_entry("completed", note or "Booking completed successfully")

    await db.flush()
    logger.info("Booking %s moved %s -> %s by %s", booking.id, source, target, actor_id)

    await db.refresh(booking.item)
    return await _load_booking(db, booking.id)


# ---------------------------------------------------------------------------
# Extension
# ---------------------------------------------------------------------------


async def extend_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor_id: uuid.UUID,
    new_end: datetime,
) -> Booking:
    """Extend an approved or active rental and charge the borrower for the extra days.

    Raises:
        NotFoundError: Unknown booking.
        ForbiddenError: Actor does not own the item.
        InvalidTransitionError: Booking is not approved or active, or was
            changed concurrently.
        ValidationError: ``new_end`` is not after the current end date.
        DateConflictError: Another reservation overlaps the extra days.
        UnavailableError: The item has been delisted.
        InsufficientFundsError: Borrower cannot cover the extra cost.
    """
    booking = await _load_booking(db, booking_id)

    if booking.item.owner_id != actor_id:
        raise ForbiddenError("Not authorized to extend this rental")
    if booking.status not in EXTENDABLE_STATUSES:
        raise InvalidTransitionError("Can only extend approved or active bookings")

    new_end = _as_utc(new_end)
    current_end = _as_utc(booking.end_date)
    extension = calculate_extension(_snapshot(booking), current_end, new_end)

    seen_version = await _lock_item(db, booking.item_id)
    if await has_conflict(db, booking.item_id, current_end, new_end, booking.id):
        raise DateConflictError("Item is reserved during the requested extension")
    if await ledger.get_balance(db, booking.borrower_id) < extension.additional_cost_paise:
        raise InsufficientFundsError("Borrower has insufficient balance for extension")
    if not await _claim_item(db, booking.item_id, seen_version):
        logger.warning("Lost reservation race on item %s (extending booking %s)", booking.item_id, booking.id)
        raise DateConflictError("Item was reserved concurrently; reload and retry")

    pricing = extension.pricing
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking.id,
            Booking.status.in_(EXTENDABLE_STATUSES),
            Booking.end_date == booking.end_date,
        )
        .values(
            end_date=new_end,
            total_days=pricing.total_days,
            subtotal_paise=pricing.subtotal_paise,
            total_amount_paise=pricing.total_amount_paise,
            lender_earnings_paise=pricing.lender_earnings_paise,
        )
        .returning(Booking.id)
        .execution_options(synchronize_session=False)
    )
    if result.scalar_one_or_none() is None:
        logger.warning("Lost extension race on booking %s", booking.id)
        raise InvalidTransitionError("Booking was modified concurrently; reload and retry")

    await ledger.debit(
        db,
        booking.borrower_id,
        extension.additional_cost_paise,
        f"Extension payment for {booking.item.title}",
        booking.id,
    )
    booking.add_timeline_entry(
        "extended",
        f"Rental extended by {extension.additional_days} days until {new_end:%a %b %d %Y}",
    )
    await db.flush()

    logger.info(
        "Booking %s extended by %s days (+%s paise)",
        booking.id,
        extension.additional_days,
        extension.additional_cost_paise,
    )
    return await _load_booking(db, booking.id)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


async def add_message(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor_id: uuid.UUID,
    text: str,
) -> Booking:
    """Append a message from the borrower or lender; status is untouched."""
    booking = await _load_booking(db, booking_id)
    if not booking.is_party(actor_id):
        raise ForbiddenError("Not authorized to message in this booking")

    text = text.strip()
    if not 1 <= len(text) <= MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be between 1 and {MAX_MESSAGE_LENGTH} characters")

    booking.messages.append(BookingMessage(sender_id=actor_id, text=text))
    await db.flush()
    return await _load_booking(db, booking.id)
