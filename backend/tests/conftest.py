"""Shared test configuration and fixtures.

Each test gets a fresh in-memory SQLite database (aiosqlite), so tests are
fully isolated and need no external services. Routers share the test's
session, so anything an endpoint flushes is visible to assertions.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rentease.auth.security import create_token_pair, hash_password
from rentease.database import Base, get_db
from rentease.main import app
from rentease.models.item import Item
from rentease.models.user import User
from rentease.money import to_paise
from rentease.services import ledger

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database with all tables for a single test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on the per-test database."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


async def create_user(db: AsyncSession, name: str, balance: Decimal | int = 0) -> User:
    """Insert a user and fund the wallet through the ledger."""
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{name.lower()}-{unique}@test.com",
        hashed_password=hash_password("testpass123"),
        name=name,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    if balance:
        await ledger.credit(db, user.id, to_paise(balance), "Test funding")
    return user


async def create_item(
    db: AsyncSession,
    owner: User,
    daily_price: Decimal | int = 100,
    item_value: Decimal | int = 10000,
    deposit_percentage: int = 20,
    **overrides,
) -> Item:
    """Insert an active, available item. Prices are given in rupees."""
    item = Item(
        owner_id=owner.id,
        title=overrides.pop("title", "Test Camera"),
        category=overrides.pop("category", "electronics"),
        daily_price_paise=to_paise(daily_price),
        item_value_paise=to_paise(item_value),
        deposit_percentage=deposit_percentage,
        **overrides,
    )
    db.add(item)
    await db.flush()
    await db.refresh(item)
    return item


def headers_for(user: User) -> dict[str, str]:
    tokens = create_token_pair(user.id)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


# ---------------------------------------------------------------------------
# Convenience fixtures: lender, borrower, outsider, item
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def lender(db_session: AsyncSession) -> User:
    return await create_user(db_session, "Lender")


@pytest_asyncio.fixture
async def borrower(db_session: AsyncSession) -> User:
    """Borrower with ₹10,000 in the wallet."""
    return await create_user(db_session, "Borrower", balance=10000)


@pytest_asyncio.fixture
async def outsider(db_session: AsyncSession) -> User:
    return await create_user(db_session, "Outsider", balance=10000)


@pytest_asyncio.fixture
async def item(db_session: AsyncSession, lender: User) -> Item:
    """Item at ₹100/day worth ₹10,000 with a 20% deposit."""
    return await create_item(db_session, lender)


@pytest_asyncio.fixture
async def lender_headers(lender: User) -> dict[str, str]:
    return headers_for(lender)


@pytest_asyncio.fixture
async def borrower_headers(borrower: User) -> dict[str, str]:
    return headers_for(borrower)


@pytest_asyncio.fixture
async def outsider_headers(outsider: User) -> dict[str, str]:
    return headers_for(outsider)


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory fixture: ``await make_user("Name", balance=500)``."""

    async def _make(name: str, balance: Decimal | int = 0) -> User:
        return await create_user(db_session, name, balance)

    return _make


@pytest_asyncio.fixture
async def make_item(db_session: AsyncSession) -> Callable[..., Awaitable[Item]]:
    """Factory fixture: ``await make_item(owner, daily_price=70, item_value=1000)``."""

    async def _make(owner: User, **kwargs) -> Item:
        return await create_item(db_session, owner, **kwargs)

    return _make


@pytest.fixture
def auth_headers_for() -> Callable[[User], dict[str, str]]:
    """Return a helper that builds Bearer headers for any user."""
    return headers_for
