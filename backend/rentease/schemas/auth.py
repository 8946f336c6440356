"""Request/response schemas for registration, login, and the member profile."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from rentease.schemas.common import PaiseAsRupees


class _Credentials(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RegisterRequest(_Credentials):
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=20)


class LoginRequest(_Credentials):
    pass


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Member profile with wallet balance and lifetime rental earnings, in rupees."""

    id: uuid.UUID
    email: str
    name: str
    phone: str | None = None
    is_active: bool
    role: str
    balance: PaiseAsRupees = Field(validation_alias="balance_paise")
    total_earnings: PaiseAsRupees = Field(validation_alias="total_earnings_paise")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    user: UserResponse
    tokens: TokenResponse


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
