"""Job service: thin CRUD over job postings.

Learn: Jobs matter to the core for exactly two things: only 'published'
jobs accept applications, and applications_count, which is only ever
changed by the application lifecycle with an atomic SQL increment.
"""

import uuid
from enum import Enum
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.jwt import Identity
from talentflow.db.models import Application, Job
from talentflow.errors import NotFound
from talentflow.events.store import EventStore
from talentflow.events.types import JOB_CREATED, JOB_DELETED, JOB_STATUS_CHANGED, JOB_UPDATED

logger = structlog.get_logger()

EDITABLE_FIELDS = ("title", "description", "location")


class JobStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class JobService:
    """Business logic for job postings."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)

    async def create_job(
        self,
        identity: Identity,
        title: str,
        description: str = "",
        location: Optional[str] = None,
        status: JobStatus = JobStatus.DRAFT,
    ) -> Job:
        job = Job(
            title=title,
            description=description,
            location=location,
            status=JobStatus(status).value,
            created_by=uuid.UUID(identity.subject_id),
        )
        self.db.add(job)
        await self.db.flush()

        await self.events.append(
            stream_id=f"job:{job.id}",
            event_type=JOB_CREATED,
            data={"title": title, "status": job.status},
            actor_id=identity.subject_id,
        )
        await self.db.commit()
        logger.info("job.created", job_id=str(job.id), status=job.status)
        return job

    async def get_job(self, job_id: uuid.UUID) -> Job:
        result = await self.db.execute(
            select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
        )
        job = result.scalars().first()
        if not job:
            raise NotFound("Job not found")
        return job

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Job]:
        query = select(Job).order_by(Job.created_at.desc()).limit(limit).offset(offset)
        if status:
            query = query.where(Job.status == JobStatus(status).value)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def change_status(
        self, identity: Identity, job_id: uuid.UUID, status: JobStatus
    ) -> Job:
        job = await self.get_job(job_id)
        old_status = job.status
        job.status = JobStatus(status).value

        await self.events.append(
            stream_id=f"job:{job.id}",
            event_type=JOB_STATUS_CHANGED,
            data={"from": old_status, "to": job.status},
            actor_id=identity.subject_id,
        )
        await self.db.commit()
        logger.info("job.status_changed", job_id=str(job.id), old=old_status, new=job.status)
        return job

    async def update_job(
        self, identity: Identity, job_id: uuid.UUID, changes: dict
    ) -> Job:
        """Edit title, description or location. Status has its own route."""
        job = await self.get_job(job_id)
        edited = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        for field, value in edited.items():
            setattr(job, field, value)

        await self.events.append(
            stream_id=f"job:{job.id}",
            event_type=JOB_UPDATED,
            data={"fields": sorted(edited)},
            actor_id=identity.subject_id,
        )
        await self.db.commit()
        logger.info("job.updated", job_id=str(job.id), fields=sorted(edited))
        return job

    async def delete_job(self, identity: Identity, job_id: uuid.UUID) -> None:
        """Delete a job and every application made to it."""
        job = await self.get_job(job_id)
        title = job.title
        # SQLite only honours ON DELETE CASCADE with foreign_keys=ON
        removed = await self.db.execute(delete(Application).where(Application.job_id == job.id))
        await self.db.delete(job)

        await self.events.append(
            stream_id=f"job:{job_id}",
            event_type=JOB_DELETED,
            data={"title": title, "applications_removed": removed.rowcount},
            actor_id=identity.subject_id,
        )
        await self.db.commit()
        logger.info("job.deleted", job_id=str(job_id), applications_removed=removed.rowcount)
