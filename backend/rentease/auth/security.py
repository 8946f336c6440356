"""Credentials for RentEase members: bcrypt password hashes and JWT bearer tokens.

Access tokens authenticate API calls; refresh tokens can only be exchanged
for a new pair at ``/api/v1/auth/refresh``. Both carry the member id in
``sub`` and their kind in ``type``.
"""

import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from rentease.config import settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Hash a plain-text password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def _encode(user_id: uuid.UUID | str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "type": token_type, "iat": now, "exp": now + lifetime}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: uuid.UUID | str, expires_delta: timedelta | None = None) -> str:
    """Short-lived token sent as ``Authorization: Bearer``.

    Defaults to ``settings.jwt_access_token_expire_minutes``.
    """
    lifetime = expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    return _encode(user_id, ACCESS_TOKEN, lifetime)


def create_refresh_token(user_id: uuid.UUID | str, expires_delta: timedelta | None = None) -> str:
    """Long-lived token used only to mint a new pair.

    Defaults to ``settings.jwt_refresh_token_expire_days``.
    """
    lifetime = expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days)
    return _encode(user_id, REFRESH_TOKEN, lifetime)


def create_token_pair(user_id: uuid.UUID | str) -> dict[str, str]:
    """Return ``access_token``, ``refresh_token`` and ``token_type`` for a member."""
    return {
        "access_token": create_access_token(user_id),
        "refresh_token": create_refresh_token(user_id),
        "token_type": "bearer",
    }


def decode_token(token: str, expected_type: str) -> uuid.UUID:
    """Verify a token and return the member id it was issued for.

    Raises:
        jose.JWTError: If the signature or expiry is invalid, the token is of
            another type, or ``sub`` is not a UUID.
    """
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != expected_type:
        raise JWTError(f"Expected a {expected_type} token")
    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise JWTError("Token subject is not a member id") from None
