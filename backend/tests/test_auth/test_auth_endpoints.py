"""Tests for authentication endpoints — register, login, me, refresh."""

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.config import settings
from rentease.models.user import User
from rentease.models.wallet_transaction import WalletTransaction

pytestmark = pytest.mark.asyncio

PASSWORD = "securepass123"


def _email(prefix: str = "member") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@test.com"


async def _register(client: AsyncClient, email: str | None = None, **overrides):
    payload = {"email": email or _email(), "password": PASSWORD, "name": "New Member", **overrides}
    return await client.post("/api/v1/auth/register", json=payload)


# ---------------------------------------------------------------------------
# POST /api/v1/auth/register
# ---------------------------------------------------------------------------


class TestRegister:
    async def test_register_success(self, client: AsyncClient) -> None:
        email = _email("newuser")
        response = await _register(client, email, phone="+91 98765 43210")
        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == email
        assert data["user"]["name"] == "New Member"
        assert data["user"]["phone"] == "+91 98765 43210"
        assert data["user"]["role"] == "user"
        assert data["user"]["is_active"] is True
        assert data["tokens"]["access_token"]
        assert data["tokens"]["refresh_token"]
        assert data["tokens"]["token_type"] == "bearer"

    async def test_welcome_bonus_is_a_ledger_credit(self, client: AsyncClient, db_session: AsyncSession) -> None:
        response = await _register(client)
        user = response.json()["user"]
        assert user["balance"] == "1000.00"
        assert user["total_earnings"] == "0.00"

        rows = (
            await db_session.execute(
                select(WalletTransaction).where(WalletTransaction.user_id == uuid.UUID(user["id"]))
            )
        ).scalars().all()
        assert [(r.type, r.amount_paise, r.description, r.balance_after_paise) for r in rows] == [
            ("credit", 100000, "Welcome bonus", 100000)
        ]

    async def test_zero_welcome_bonus_writes_no_ledger_row(
        self, client: AsyncClient, db_session: AsyncSession, monkeypatch
    ) -> None:
        monkeypatch.setattr(settings, "welcome_bonus", Decimal("0"))
        response = await _register(client)
        assert response.status_code == 201
        assert response.json()["user"]["balance"] == "0.00"

        rows = (await db_session.execute(select(WalletTransaction))).scalars().all()
        assert rows == []

    async def test_email_is_normalized(self, client: AsyncClient, db_session: AsyncSession) -> None:
        response = await _register(client, "Mixed.Case@Example.com")
        assert response.status_code == 201
        assert response.json()["user"]["email"] == "mixed.case@example.com"

        duplicate = await _register(client, "MIXED.CASE@example.com")
        assert duplicate.status_code == 409

    async def test_register_duplicate_email(self, client: AsyncClient) -> None:
        email = _email("dup")
        assert (await _register(client, email)).status_code == 201

        response = await _register(client, email)
        assert response.status_code == 409
        assert response.json()["detail"] == "Email already registered"

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "someone@test.com", "password": "short", "name": "Short"},
            {"email": "not-an-email", "password": PASSWORD, "name": "Bad Email"},
            {"email": "noname@test.com", "password": PASSWORD},
            {"email": "blank@test.com", "password": PASSWORD, "name": ""},
        ],
    )
    async def test_register_validation(self, client: AsyncClient, payload: dict) -> None:
        response = await client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# POST /api/v1/auth/login
# ---------------------------------------------------------------------------


class TestLogin:
    async def test_login_success(self, client: AsyncClient) -> None:
        email = _email("login")
        await _register(client, email)

        response = await client.post("/api/v1/auth/login", json={"email": email.upper(), "password": PASSWORD})
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == email
        assert data["user"]["balance"] == "1000.00"
        assert data["tokens"]["access_token"]

    async def test_login_wrong_password(self, client: AsyncClient) -> None:
        email = _email("wrongpw")
        await _register(client, email)

        response = await client.post("/api/v1/auth/login", json={"email": email, "password": "wrongpassword"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_login_nonexistent_user(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/login", json={"email": "nobody@nowhere.com", "password": PASSWORD})
        assert response.status_code == 401

    async def test_login_inactive_user(self, client: AsyncClient, db_session: AsyncSession) -> None:
        email = _email("inactive")
        user_id = (await _register(client, email)).json()["user"]["id"]
        user = await db_session.get(User, uuid.UUID(user_id))
        user.is_active = False
        await db_session.flush()

        response = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# GET /api/v1/auth/me
# ---------------------------------------------------------------------------


class TestMe:
    async def test_me_authenticated(self, client: AsyncClient, borrower_headers: dict, borrower: User) -> None:
        response = await client.get("/api/v1/auth/me", headers=borrower_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(borrower.id)
        assert data["email"] == borrower.email
        assert data["balance"] == "10000.00"

    async def test_me_reflects_latest_balance(self, client: AsyncClient, borrower_headers: dict) -> None:
        await client.post("/api/v1/wallet/top-up", json={"amount": "250"}, headers=borrower_headers)
        response = await client.get("/api/v1/auth/me", headers=borrower_headers)
        assert response.json()["balance"] == "10250.00"

    async def test_me_unauthenticated(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/me")
        assert response.status_code in (401, 403)


# ---------------------------------------------------------------------------
# POST /api/v1/auth/refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    async def test_refresh_success(self, client: AsyncClient) -> None:
        tokens = (await _register(client)).json()["tokens"]

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"

    async def test_refresh_invalid_token(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": "totally.invalid.token"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired refresh token"

    async def test_refresh_with_access_token_fails(self, client: AsyncClient) -> None:
        tokens = (await _register(client)).json()["tokens"]
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401
