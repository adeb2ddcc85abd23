"""Pydantic schemas for accounts and token sessions.

Learn: Request bodies validate shape only (lengths, non-empty). Whether
credentials or tokens are *valid* is the auth service's call, so a bad
password and an unknown email produce the same 401 rather than
different validation errors.
"""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain:
        raise ValueError("Invalid email address")
    return value


Email = Annotated[str, Field(max_length=255), AfterValidator(_normalize_email)]


# ─── Requests ────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: Email
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: Email


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


# ─── Responses ───────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MeRead(UserRead):
    """The caller's own account, plus their candidate profile id if any."""
    last_login_at: Optional[datetime] = None
    candidate_id: Optional[uuid.UUID] = None
