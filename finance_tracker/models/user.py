from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator

from finance_tracker.core.config import settings


class AuthProvider(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: EmailStr
    password_hash: Optional[str] = None
    google_id: Optional[str] = None
    avatar: str = ""
    provider: AuthProvider = AuthProvider.LOCAL
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class UserPublic(BaseModel):
    id: str
    name: str
    email: EmailStr
    avatar: str = ""
    provider: AuthProvider = AuthProvider.LOCAL

    @classmethod
    def from_record(cls, user: dict) -> "UserPublic":
        return cls(
            id=user["user_id"],
            name=user.get("name", ""),
            email=user["email"],
            avatar=user.get("avatar") or "",
            provider=user.get("provider", AuthProvider.LOCAL),
        )


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
    token_type: str = "bearer"
    message: Optional[str] = None


class ProviderProfile(BaseModel):
    """Identity returned by an external provider after a successful handshake."""

    provider_id: str
    email: EmailStr
    display_name: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)
