"""Job application routes — the HTTP face of the application lifecycle.

Learn: Each lifecycle action gets its own POST endpoint, gated by role
up front. The service still runs lifecycle.decide() on every call, so
an out-of-order action (accepting a pending application, say) comes
back as 409 invalid_transition no matter which route it arrives on.

Error mapping (see main.py):
- 401 unauthenticated, 403 forbidden, 404 not_found
- 409 invalid_transition / duplicate_application / stale_state
"""

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    require_admin,
    require_candidate,
)
from talentflow.db.engine import get_db
from talentflow.schemas.application import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationStats,
    EventRead,
    InterviewRequest,
    RejectRequest,
    ReviewRequest,
)
from talentflow.services.application_service import ApplicationService

router = APIRouter(prefix="/applications")


def _app_svc(db: AsyncSession = Depends(get_db)) -> ApplicationService:
    return ApplicationService(db)


# ═══════════════════════════════════════════════════════════
# Candidate
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=ApplicationRead, status_code=201)
async def submit_application(
    body: ApplicationCreate,
    identity: CurrentIdentity = Depends(require_candidate),
    svc: ApplicationService = Depends(_app_svc),
):
    """Apply to a published job. A second application to the same job is a 409."""
    return await svc.submit_application(identity, body.job_id, body.cover_letter)


@router.get("/mine", response_model=list[ApplicationRead])
async def list_my_applications(
    identity: CurrentIdentity = Depends(require_candidate),
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.list_my_applications(identity)


@router.delete("/{application_id}", status_code=204)
async def withdraw_application(
    application_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_candidate),
    svc: ApplicationService = Depends(_app_svc),
):
    """Withdraw (delete) your own pending or reviewing application."""
    await svc.withdraw_application(identity, application_id)
    return Response(status_code=204)


# ═══════════════════════════════════════════════════════════
# Admin
# ═══════════════════════════════════════════════════════════


@router.get("/stats", response_model=ApplicationStats, dependencies=[Depends(require_admin)])
async def application_stats(svc: ApplicationService = Depends(_app_svc)):
    counts = await svc.status_counts()
    return {"total": sum(counts.values()), "by_status": counts}


@router.post("/{application_id}/review", response_model=ApplicationRead)
async def review_application(
    application_id: uuid.UUID,
    body: ReviewRequest,
    identity: CurrentIdentity = Depends(require_admin),
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.review_application(
        identity, application_id, notes=body.notes, score=body.score
    )


@router.post("/{application_id}/interview", response_model=ApplicationRead)
async def schedule_interview(
    application_id: uuid.UUID,
    body: InterviewRequest,
    identity: CurrentIdentity = Depends(require_admin),
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.schedule_interview(
        identity, application_id, body.interview_date, notes=body.notes
    )


@router.post("/{application_id}/reject", response_model=ApplicationRead)
async def reject_application(
    application_id: uuid.UUID,
    body: RejectRequest,
    identity: CurrentIdentity = Depends(require_admin),
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.reject_application(identity, application_id, reason=body.reason)


@router.post("/{application_id}/accept", response_model=ApplicationRead)
async def accept_application(
    application_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_admin),
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.accept_application(identity, application_id)


@router.get(
    "/{application_id}/history",
    response_model=list[EventRead],
    dependencies=[Depends(require_admin)],
)
async def application_history(
    application_id: uuid.UUID,
    svc: ApplicationService = Depends(_app_svc),
):
    return await svc.history(application_id)


# ═══════════════════════════════════════════════════════════
# Both roles
# ═══════════════════════════════════════════════════════════


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application(
    application_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ApplicationService = Depends(_app_svc),
):
    """Admins can read any application; candidates only their own (404 otherwise)."""
    return await svc.get_application(identity, application_id)
