"""Seed the database with a small marketplace: two members, a few items, and bookings.

Bookings are created and advanced through the booking service, so wallet
balances, ledger rows, and item availability are all consistent.

Run inside Docker:
    docker compose exec backend python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, or_, select

from rentease.auth.security import hash_password
from rentease.config import settings
from rentease.database import async_session_factory
from rentease.models.booking import Booking
from rentease.models.item import Item
from rentease.models.user import User
from rentease.models.wallet_transaction import WalletTransaction
from rentease.money import to_paise, to_rupees
from rentease.services import booking_service, ledger

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_USERS = [
    {"email": "lender@rentease.dev", "password": "demo1234", "name": "Priya Lender"},
    {"email": "borrower@rentease.dev", "password": "demo1234", "name": "Arjun Borrower"},
]

ITEMS = [
    {
        "title": "Canon EOS 90D DSLR",
        "description": "32.5MP body with 18-135mm lens, two batteries and a 64GB card.",
        "category": "electronics",
        "condition": "excellent",
        "daily_price": Decimal("250"),
        "item_value": Decimal("10000"),
        "deposit_percentage": 20,
    },
    {
        "title": "Bosch Cordless Drill",
        "description": "18V drill driver with bit set. Great for weekend projects.",
        "category": "tools",
        "condition": "good",
        "daily_price": Decimal("120"),
        "item_value": Decimal("4500"),
        "deposit_percentage": 25,
    },
    {
        "title": "4-Person Camping Tent",
        "description": "Waterproof dome tent, sets up in ten minutes.",
        "category": "sports",
        "condition": "good",
        "daily_price": Decimal("180"),
        "item_value": Decimal("6000"),
        "deposit_percentage": 15,
        "min_rental_days": 2,
    },
]


async def _clear_demo_data(session) -> None:
    result = await session.execute(select(User.id).where(User.email.in_([u["email"] for u in DEMO_USERS])))
    user_ids = list(result.scalars().all())
    if not user_ids:
        return

    print("⚠️  Demo users already exist. Deleting and re-seeding...")
    booking_filter = or_(Booking.borrower_id.in_(user_ids), Booking.lender_id.in_(user_ids))
    booking_ids = select(Booking.id).where(booking_filter)
    await session.execute(delete(WalletTransaction).where(WalletTransaction.user_id.in_(user_ids)))
    await session.execute(delete(Booking).where(Booking.id.in_(booking_ids)))
    await session.execute(delete(Item).where(Item.owner_id.in_(user_ids)))
    await session.execute(delete(User).where(User.id.in_(user_ids)))
    await session.flush()


# ---------------------------------------------------------------------------
# Main seed function
# ---------------------------------------------------------------------------


async def seed() -> None:
    """Populate the database with demo members, items, and bookings.

    Idempotent: deletes any existing demo users and everything they own first.
    """
    async with async_session_factory() as session:
        await _clear_demo_data(session)

        # ------------------------------------------------------------------
        # 1. Members, each with the welcome bonus
        # ------------------------------------------------------------------
        users: list[User] = []
        for data in DEMO_USERS:
            user = User(email=data["email"], hashed_password=hash_password(data["password"]), name=data["name"])
            session.add(user)
            await session.flush()
            await ledger.credit(session, user.id, to_paise(settings.welcome_bonus), "Welcome bonus")
            users.append(user)
            print(f"✅ Created user: {user.email} (id={user.id})")
        lender, borrower = users

        await ledger.top_up(session, borrower.id, to_paise(Decimal("5000")))

        # ------------------------------------------------------------------
        # 2. Items owned by the lender
        # ------------------------------------------------------------------
        items: list[Item] = []
        for data in ITEMS:
            data = dict(data)
            item = Item(
                owner_id=lender.id,
                daily_price_paise=to_paise(data.pop("daily_price")),
                item_value_paise=to_paise(data.pop("item_value")),
                **data,
            )
            session.add(item)
            await session.flush()
            items.append(item)
            print(f"   📦 {item.title} — ₹{to_rupees(item.daily_price_paise)}/day")

        # ------------------------------------------------------------------
        # 3. Bookings: one completed, one approved, one pending
        # ------------------------------------------------------------------
        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        completed = await booking_service.create_booking(
            session, items[1].id, borrower.id, today - timedelta(days=10), today - timedelta(days=7)
        )
        for target in ("approved", "active", "completed"):
            await booking_service.transition(session, completed.id, lender.id, target)

        await booking_service.create_booking(
            session, items[2].id, borrower.id, today + timedelta(days=3), today + timedelta(days=6)
        )

        approved = await booking_service.create_booking(
            session, items[0].id, borrower.id, today + timedelta(days=1), today + timedelta(days=5)
        )
        await booking_service.transition(session, approved.id, lender.id, "approved", note="Pick up after 6pm")

        await session.commit()

        lender_balance = await ledger.get_balance(session, lender.id)
        borrower_balance = await ledger.get_balance(session, borrower.id)

        print()
        print("=" * 60)
        print("📊 Seed Summary")
        print("=" * 60)
        print("   Users:     2 (lender@rentease.dev / borrower@rentease.dev, password demo1234)")
        print(f"   Items:     {len(items)}")
        print("   Bookings:  3 (completed, approved, pending)")
        print(f"   Balances:  lender ₹{to_rupees(lender_balance)}, borrower ₹{to_rupees(borrower_balance)}")
        print("=" * 60)
        print("🎉 Done! You can now log in at /api/v1/auth/login")


if __name__ == "__main__":
    asyncio.run(seed())
