"""Application service — the job-application lifecycle.

Learn: Every status change follows the same four steps:
1. Fresh read of the application
2. lifecycle.decide(current status, event, caller role, ownership)
   → target status, or Forbidden / InvalidTransition with nothing written
3. Conditional write on (status, version) via the store
4. Audit event + commit

If step 3 loses a race (StaleStateError) we go back to step 1 exactly
once: the fresh read may show the transition is now illegal, in which
case the caller gets InvalidTransition. A second lost race is surfaced
as a conflict rather than retried forever.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.jwt import Identity
from talentflow.auth.roles import Role
from talentflow.db.models import Application, Candidate, Event, Job, utcnow
from talentflow.errors import (
    DuplicateApplication,
    InvalidRequest,
    NotFound,
    StaleStateError,
)
from talentflow.events.store import EventStore
from talentflow.events.types import (
    APPLICATION_ACCEPTED,
    APPLICATION_INTERVIEW_SCHEDULED,
    APPLICATION_REJECTED,
    APPLICATION_REVIEWED,
    APPLICATION_SUBMITTED,
    APPLICATION_WITHDRAWN,
)
from talentflow.lifecycle import ApplicationEvent, ApplicationStatus, decide
from talentflow.services.account_store import AccountStore
from talentflow.services.application_store import ApplicationStore
from talentflow.services.job_service import JobStatus

logger = structlog.get_logger()

MAX_ATTEMPTS = 2  # initial try + one retry after a lost race

EVENT_TYPES: dict[ApplicationEvent, str] = {
    ApplicationEvent.SUBMIT: APPLICATION_SUBMITTED,
    ApplicationEvent.MARK_REVIEWED: APPLICATION_REVIEWED,
    ApplicationEvent.SCHEDULE_INTERVIEW: APPLICATION_INTERVIEW_SCHEDULED,
    ApplicationEvent.REJECT: APPLICATION_REJECTED,
    ApplicationEvent.ACCEPT: APPLICATION_ACCEPTED,
    ApplicationEvent.WITHDRAW: APPLICATION_WITHDRAWN,
}


def _stream(application_id: uuid.UUID) -> str:
    return f"application:{application_id}"


class ApplicationService:
    """Sole authority for creating, advancing and withdrawing applications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = ApplicationStore(db)
        self.accounts = AccountStore(db)
        self.events = EventStore(db)

    # ─── Submit ──────────────────────────────────────────

    async def submit_application(
        self,
        identity: Identity,
        job_id: uuid.UUID,
        cover_letter: Optional[str] = None,
    ) -> Application:
        """Candidate applies to a published job → 'pending'.

        Raises:
            Forbidden: caller is not a candidate
            NotFound: no candidate profile, or no such job
            InvalidRequest: job is not published
            DuplicateApplication: already applied (also under concurrency)
        """
        decide(None, ApplicationEvent.SUBMIT, identity.role)
        candidate = await self._candidate_profile(identity)

        job = await self.db.get(Job, job_id)
        if not job:
            raise NotFound("Job not found")
        if job.status != JobStatus.PUBLISHED.value:
            raise InvalidRequest("This job is not accepting applications")

        # A lost insert race rolls the session back and expires loaded rows
        candidate_id = candidate.id
        try:
            application = await self.store.insert_if_absent(job_id, candidate_id, cover_letter)
        except DuplicateApplication:
            logger.info(
                "application.duplicate_rejected",
                job_id=str(job_id),
                candidate_id=str(candidate_id),
            )
            raise

        await self.db.execute(
            update(Job)
            .where(Job.id == job_id)
            .values(applications_count=Job.applications_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.events.append(
            stream_id=_stream(application.id),
            event_type=APPLICATION_SUBMITTED,
            data={
                "job_id": str(job_id),
                "candidate_id": str(candidate_id),
                "to": ApplicationStatus.PENDING.value,
            },
            actor_id=identity.subject_id,
        )
        await self.db.commit()
        logger.info(
            "application.submitted",
            application_id=str(application.id),
            job_id=str(job_id),
        )
        return application

    # ─── Admin transitions ───────────────────────────────

    async def review_application(
        self,
        identity: Identity,
        application_id: uuid.UUID,
        notes: Optional[str] = None,
        score: Optional[int] = None,
    ) -> Application:
        """pending|reviewing → reviewing; stamps reviewed_at / reviewed_by."""
        if score is not None and not 0 <= score <= 100:
            raise InvalidRequest("score must be between 0 and 100")

        changes: dict[str, Any] = {
            "reviewed_at": utcnow(),
            "reviewed_by": uuid.UUID(identity.subject_id),
        }
        if notes is not None:
            changes["notes"] = notes
        if score is not None:
            changes["score"] = score
        return await self._transition(
            identity,
            application_id,
            ApplicationEvent.MARK_REVIEWED,
            changes,
            detail={"score": score},
        )

    async def schedule_interview(
        self,
        identity: Identity,
        application_id: uuid.UUID,
        interview_date: datetime,
        notes: Optional[str] = None,
    ) -> Application:
        """reviewing → interview; stamps interview_date."""
        changes: dict[str, Any] = {"interview_date": interview_date}
        if notes is not None:
            changes["interview_notes"] = notes
        return await self._transition(
            identity,
            application_id,
            ApplicationEvent.SCHEDULE_INTERVIEW,
            changes,
            detail={"interview_date": interview_date.isoformat()},
        )

    async def reject_application(
        self,
        identity: Identity,
        application_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Application:
        """pending|reviewing|interview → rejected (terminal)."""
        changes = {"rejection_reason": reason} if reason is not None else {}
        return await self._transition(
            identity,
            application_id,
            ApplicationEvent.REJECT,
            changes,
            detail={"reason": reason},
        )

    async def accept_application(
        self, identity: Identity, application_id: uuid.UUID
    ) -> Application:
        """interview → accepted (terminal)."""
        return await self._transition(
            identity, application_id, ApplicationEvent.ACCEPT, {}
        )

    async def _transition(
        self,
        identity: Identity,
        application_id: uuid.UUID,
        event: ApplicationEvent,
        changes: dict[str, Any],
        detail: Optional[dict] = None,
    ) -> Application:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            application = await self._load(application_id)
            current = application.status
            target = decide(current, event, identity.role)

            try:
                updated = await self.store.update_status(
                    application.id,
                    expected_status=current,
                    expected_version=application.version,
                    values={**changes, "status": target.value, "updated_at": utcnow()},
                )
            except StaleStateError:
                if attempt == MAX_ATTEMPTS:
                    logger.warning(
                        "application.stale_state",
                        application_id=str(application_id),
                        action=event.value,
                    )
                    raise
                logger.info(
                    "application.stale_state_retry",
                    application_id=str(application_id),
                    action=event.value,
                )
                continue

            await self.events.append(
                stream_id=_stream(application.id),
                event_type=EVENT_TYPES[event],
                data={"from": current, "to": target.value, **(detail or {})},
                actor_id=identity.subject_id,
            )
            await self.db.commit()
            logger.info(
                "application.status_changed",
                application_id=str(application.id),
                old=current,
                new=target.value,
            )
            return updated

        raise AssertionError("unreachable")  # pragma: no cover

    # ─── Withdraw ────────────────────────────────────────

    async def withdraw_application(
        self, identity: Identity, application_id: uuid.UUID
    ) -> None:
        """Owner candidate deletes a pending|reviewing application."""
        for attempt in range(1, MAX_ATTEMPTS + 1):
            application = await self._load(application_id)
            current = application.status
            is_owner = await self._owns(identity, application)
            decide(current, ApplicationEvent.WITHDRAW, identity.role, is_owner)

            try:
                await self.store.delete_by_id(
                    application.id,
                    expected_status=current,
                    expected_version=application.version,
                )
            except StaleStateError:
                if attempt == MAX_ATTEMPTS:
                    logger.warning("application.stale_state", application_id=str(application_id))
                    raise
                continue

            await self.db.execute(
                update(Job)
                .where(Job.id == application.job_id)
                .values(
                    applications_count=case(
                        (Job.applications_count > 0, Job.applications_count - 1),
                        else_=0,
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await self.events.append(
                stream_id=_stream(application.id),
                event_type=APPLICATION_WITHDRAWN,
                data={"from": current, "job_id": str(application.job_id)},
                actor_id=identity.subject_id,
            )
            await self.db.commit()
            logger.info("application.withdrawn", application_id=str(application_id))
            return

    # ─── Read ────────────────────────────────────────────

    async def get_application(
        self, identity: Identity, application_id: uuid.UUID
    ) -> Application:
        """Admins see any application; candidates only their own."""
        application = await self._load(application_id)
        if Role(identity.role) == Role.ADMIN or await self._owns(identity, application):
            return application
        raise NotFound("Application not found")

    async def list_my_applications(self, identity: Identity) -> list[Application]:
        candidate = await self._candidate_profile(identity)
        return await self.store.list_for_candidate(candidate.id)

    async def list_job_applications(
        self,
        job_id: uuid.UUID,
        status: Optional[ApplicationStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Application]:
        if not await self.db.get(Job, job_id):
            raise NotFound("Job not found")
        return await self.store.list_for_job(
            job_id,
            status=ApplicationStatus(status).value if status else None,
            limit=limit,
            offset=offset,
        )

    async def status_counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in ApplicationStatus}
        counts.update(await self.store.status_counts())
        return counts

    async def history(self, application_id: uuid.UUID) -> list[Event]:
        return await self.events.read_stream(_stream(application_id))

    # ─── Helpers ─────────────────────────────────────────

    async def _load(self, application_id: uuid.UUID) -> Application:
        application = await self.store.find_by_id(application_id)
        if not application:
            raise NotFound("Application not found")
        return application

    async def _candidate_profile(self, identity: Identity) -> Candidate:
        candidate = await self.accounts.find_candidate_profile(identity.subject_id)
        if not candidate:
            raise NotFound("Candidate profile not found")
        return candidate

    async def _owns(self, identity: Identity, application: Application) -> bool:
        if Role(identity.role) != Role.CANDIDATE:
            return False
        candidate = await self.accounts.find_candidate_profile(identity.subject_id)
        return candidate is not None and candidate.id == application.candidate_id
