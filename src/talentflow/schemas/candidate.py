"""Pydantic schemas for candidate profiles."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProfileOwner(BaseModel):
    id: uuid.UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class CandidateProfileRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    phone: Optional[str]
    resume: Optional[str]
    skills: list[str]
    created_at: datetime
    user: ProfileOwner

    model_config = {"from_attributes": True}


class CandidateProfileUpdate(BaseModel):
    """Partial update: only the fields present in the body are changed."""
    phone: Optional[str] = Field(None, max_length=30)
    resume: Optional[str] = None
    skills: Optional[list[str]] = Field(None, max_length=100)
