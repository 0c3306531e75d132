"""API schemas for registration, login and the current user."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from patissio.api.schemas.profile import ProfileResponse


class RegisterRequest(BaseModel):
    """Request body for creating an account.

    Patissiers also choose their shop slug and business name.
    """

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=200)
    role: Literal["patissier", "client"] = "patissier"
    slug: str | None = Field(default=None, max_length=100)
    business_name: str | None = Field(default=None, min_length=1, max_length=200)

    model_config = {"json_schema_extra": {"example": {
        "email": "eloise@example.com",
        "password": "correct-horse-battery",
        "full_name": "Éloïse Martin",
        "role": "patissier",
        "slug": "patisserie-eloise",
        "business_name": "Pâtisserie Éloïse",
    }}}


class LoginRequest(BaseModel):
    """Request body for signing in."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """A user account, without credentials."""

    id: UUID
    email: str
    full_name: str | None = None
    role: str
    suspended_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """A signed-in user and their bearer token."""

    user: UserResponse
    token: str = Field(..., description="Bearer token, sent as `Authorization: Bearer <token>`")
    profile: ProfileResponse | None = None


class MeResponse(BaseModel):
    """The current user and, for patissiers, their shop."""

    user: UserResponse
    profile: ProfileResponse | None = None
