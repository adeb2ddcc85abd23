"""Pydantic schemas for job postings."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from talentflow.services.job_service import JobStatus


class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="")
    location: Optional[str] = Field(None, max_length=200)
    status: JobStatus = JobStatus.DRAFT


class JobStatusChange(BaseModel):
    status: JobStatus


class JobRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    location: Optional[str]
    status: str
    created_by: uuid.UUID
    applications_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        # title and description are NOT NULL; only location can be cleared
        return {k: v for k, v in data.items() if v is not None or k == "location"}
