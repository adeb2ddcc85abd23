"""Job posting routes.

Learn: Any authenticated caller can browse jobs; only admins create, edit
or delete them and move them between draft / published / closed. The
application list for a job lives here too since it's addressed by job id.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.dependencies import CurrentIdentity, require_admin
from talentflow.db.engine import get_db
from talentflow.lifecycle import ApplicationStatus
from talentflow.schemas.application import ApplicationRead
from talentflow.schemas.job import JobCreate, JobRead, JobStatusChange, JobUpdate
from talentflow.services.application_service import ApplicationService
from talentflow.services.job_service import JobService, JobStatus

router = APIRouter()


def _job_svc(db: AsyncSession = Depends(get_db)) -> JobService:
    return JobService(db)


def _app_svc(db: AsyncSession = Depends(get_db)) -> ApplicationService:
    return ApplicationService(db)


@router.post("/jobs", response_model=JobRead, status_code=201)
async def create_job(
    body: JobCreate,
    identity: CurrentIdentity = Depends(require_admin),
    svc: JobService = Depends(_job_svc),
):
    return await svc.create_job(
        identity,
        title=body.title,
        description=body.description,
        location=body.location,
        status=body.status,
    )


@router.get("/jobs", response_model=list[JobRead])
async def list_jobs(
    status: Optional[JobStatus] = Query(None, description="Filter by status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: JobService = Depends(_job_svc),
):
    return await svc.list_jobs(status=status, limit=limit, offset=offset)


@router.get("/jobs/{job_id}", response_model=JobRead)
async def get_job(job_id: uuid.UUID, svc: JobService = Depends(_job_svc)):
    return await svc.get_job(job_id)


@router.put("/jobs/{job_id}", response_model=JobRead)
async def update_job(
    job_id: uuid.UUID,
    body: JobUpdate,
    identity: CurrentIdentity = Depends(require_admin),
    svc: JobService = Depends(_job_svc),
):
    return await svc.update_job(identity, job_id, body.changes())


@router.delete("/jobs/{job_id}", status_code=204)
async def delete_job(
    job_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_admin),
    svc: JobService = Depends(_job_svc),
):
    """Delete a job. Its applications go with it."""
    await svc.delete_job(identity, job_id)
    return Response(status_code=204)


@router.post("/jobs/{job_id}/status", response_model=JobRead)
async def change_job_status(
    job_id: uuid.UUID,
    body: JobStatusChange,
    identity: CurrentIdentity = Depends(require_admin),
    svc: JobService = Depends(_job_svc),
):
    """Publish, close or re-draft a job. Only published jobs take applications."""
    return await svc.change_status(identity, job_id, body.status)


@router.get(
    "/jobs/{job_id}/applications",
    response_model=list[ApplicationRead],
    dependencies=[Depends(require_admin)],
)
async def list_job_applications(
    job_id: uuid.UUID,
    status: Optional[ApplicationStatus] = Query(None, description="Filter by status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.list_job_applications(job_id, status=status, limit=limit, offset=offset)
