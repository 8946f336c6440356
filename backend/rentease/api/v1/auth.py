"""Auth API router — register (with welcome bonus), login, refresh, me."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rentease.auth.dependencies import get_current_active_user
from rentease.auth.security import (
    REFRESH_TOKEN,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)
from rentease.config import settings
from rentease.database import get_db
from rentease.models.user import User
from rentease.money import to_paise
from rentease.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from rentease.services import ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**create_token_pair(user.id)),
    )


async def _find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Create a member account.

    The wallet starts at zero and the configured welcome bonus is credited
    through the ledger, so it appears in the transaction history like any
    other credit.
    """
    if await _find_by_email(db, body.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        name=body.name,
        phone=body.phone,
    )
    db.add(user)
    await db.flush()

    bonus_paise = to_paise(settings.welcome_bonus)
    if bonus_paise > 0:
        await ledger.credit(db, user.id, bonus_paise, "Welcome bonus")
    await db.refresh(user)

    logger.info("Registered user %s", user.id)
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    user = await _find_by_email(db, body.email)
    if user is None or not verify_password(body.password, user.hashed_password):
        raise _unauthorized("Invalid email or password")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return _auth_response(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    try:
        user_id = decode_token(body.refresh_token, REFRESH_TOKEN)
    except JWTError:
        raise _unauthorized("Invalid or expired refresh token") from None

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    return TokenResponse(**create_token_pair(user.id))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    """Return the current member's profile and wallet balance."""
    return UserResponse.model_validate(current_user)
