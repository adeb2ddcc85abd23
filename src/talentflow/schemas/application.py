"""Pydantic schemas for job applications.

Learn: One small body per lifecycle action instead of a generic
"set status" payload. The target status is never client-supplied;
it's whatever lifecycle.decide() says the action leads to.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class ApplicationCreate(BaseModel):
    job_id: uuid.UUID
    cover_letter: Optional[str] = Field(None, max_length=10_000)


class ReviewRequest(BaseModel):
    notes: Optional[str] = None
    score: Optional[int] = Field(None, ge=0, le=100)


class InterviewRequest(BaseModel):
    interview_date: datetime
    notes: Optional[str] = None

    @field_validator("interview_date")
    @classmethod
    def must_be_future(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= datetime.now(timezone.utc):
            raise ValueError("interview_date must be in the future")
        return value


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class ApplicationRead(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    candidate_id: uuid.UUID
    cover_letter: Optional[str]
    status: str
    version: int
    applied_at: datetime
    reviewed_at: Optional[datetime]
    reviewed_by: Optional[uuid.UUID]
    notes: Optional[str]
    score: Optional[int]
    interview_date: Optional[datetime]
    interview_notes: Optional[str]
    rejection_reason: Optional[str]
    updated_at: datetime

    model_config = {"from_attributes": True}


class ApplicationStats(BaseModel):
    total: int
    by_status: dict[str, int]


class EventRead(BaseModel):
    id: int
    type: str
    data: dict[str, Any]
    meta: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
