"""Application service tests — lifecycle rules against a real database.

Learn: The concurrency guards are mostly tested deterministically. Instead of
racing two tasks (which SQLite would serialize anyway), we inject the
"other writer" at exactly the point a race would hit:
- duplicate submission: the pre-check misses, the unique constraint doesn't
- stale state: another write lands between our read and our conditional update

One duplicate-submission test also races two real sessions with
asyncio.gather, to check the end state rather than the interleaving.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import update

from talentflow.auth.roles import Role
from talentflow.db.models import Application, Job
from talentflow.errors import (
    DuplicateApplication,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    StaleStateError,
)
from talentflow.events.types import (
    APPLICATION_ACCEPTED,
    APPLICATION_INTERVIEW_SCHEDULED,
    APPLICATION_REVIEWED,
    APPLICATION_SUBMITTED,
)
from talentflow.services.application_service import ApplicationService
from talentflow.services.job_service import JobService, JobStatus

from conftest import create_user, identity_for


async def applications_count(session_factory, job_id) -> int:
    async with session_factory() as db:
        job = await db.get(Job, job_id)
        return job.applications_count


def in_two_days() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=2)


# ═══════════════════════════════════════════════════════════
# Submit
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_submit_creates_pending_application(session_factory, candidate, published_job):
    async with session_factory() as db:
        app = await ApplicationService(db).submit_application(
            identity_for(candidate), published_job.id, "Hire me"
        )

    assert app.status == "pending"
    assert app.version == 1
    assert app.cover_letter == "Hire me"
    assert await applications_count(session_factory, published_job.id) == 1


@pytest.mark.asyncio
async def test_second_submission_is_duplicate(session_factory, candidate, published_job):
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.submit_application(identity_for(candidate), published_job.id)
        with pytest.raises(DuplicateApplication):
            await svc.submit_application(identity_for(candidate), published_job.id)

    assert await applications_count(session_factory, published_job.id) == 1


@pytest.mark.asyncio
async def test_racing_submission_caught_by_unique_constraint(
    session_factory, candidate, published_job, monkeypatch
):
    """Both requests pass the pre-check; only one row is ever written."""
    async with session_factory() as db:
        await ApplicationService(db).submit_application(identity_for(candidate), published_job.id)

    async with session_factory() as db:
        svc = ApplicationService(db)

        async def missed_precheck(job_id, candidate_id):
            return None

        monkeypatch.setattr(svc.store, "find_by_pair", missed_precheck)
        with pytest.raises(DuplicateApplication):
            await svc.submit_application(identity_for(candidate), published_job.id)

    async with session_factory() as db:
        mine = await ApplicationService(db).list_my_applications(identity_for(candidate))
    assert len(mine) == 1
    assert await applications_count(session_factory, published_job.id) == 1


@pytest.mark.asyncio
async def test_concurrent_submissions_exactly_one_succeeds(session_factory, candidate, published_job):
    async def submit():
        async with session_factory() as db:
            return await ApplicationService(db).submit_application(
                identity_for(candidate), published_job.id
            )

    results = await asyncio.gather(submit(), submit(), return_exceptions=True)

    created = [r for r in results if isinstance(r, Application)]
    duplicates = [r for r in results if isinstance(r, DuplicateApplication)]
    assert len(created) == 1, results
    assert len(duplicates) == 1, results
    assert await applications_count(session_factory, published_job.id) == 1


@pytest.mark.asyncio
async def test_submit_to_draft_job_rejected(session_factory, admin, candidate):
    async with session_factory() as db:
        job = await JobService(db).create_job(identity_for(admin), title="Draft role")
    async with session_factory() as db:
        with pytest.raises(InvalidRequest):
            await ApplicationService(db).submit_application(identity_for(candidate), job.id)


@pytest.mark.asyncio
async def test_submit_to_missing_job(session_factory, candidate):
    async with session_factory() as db:
        with pytest.raises(NotFound):
            await ApplicationService(db).submit_application(identity_for(candidate), uuid.uuid4())


# ═══════════════════════════════════════════════════════════
# Admin transitions
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def pending_application(session_factory, candidate, published_job):
    async with session_factory() as db:
        return await ApplicationService(db).submit_application(
            identity_for(candidate), published_job.id
        )


@pytest.mark.asyncio
async def test_full_lifecycle_to_accepted(session_factory, admin, pending_application):
    who = identity_for(admin)
    async with session_factory() as db:
        svc = ApplicationService(db)
        reviewed = await svc.review_application(who, pending_application.id, notes="Strong", score=88)
        assert reviewed.status == "reviewing"
        assert reviewed.score == 88
        assert str(reviewed.reviewed_by) == who.subject_id
        assert reviewed.reviewed_at is not None

        interview = await svc.schedule_interview(who, pending_application.id, in_two_days())
        assert interview.status == "interview"
        assert interview.interview_date is not None

        accepted = await svc.accept_application(who, pending_application.id)
        assert accepted.status == "accepted"
        assert accepted.version == 4

        history = await svc.history(pending_application.id)

    assert [e.type for e in history] == [
        APPLICATION_SUBMITTED,
        APPLICATION_REVIEWED,
        APPLICATION_INTERVIEW_SCHEDULED,
        APPLICATION_ACCEPTED,
    ]
    assert history[-1].data == {"from": "interview", "to": "accepted"}
    assert history[-1].meta["actor_id"] == who.subject_id


@pytest.mark.asyncio
async def test_review_can_be_repeated(session_factory, admin, pending_application):
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.review_application(identity_for(admin), pending_application.id, score=40)
        again = await svc.review_application(identity_for(admin), pending_application.id, score=70)
    assert again.status == "reviewing"
    assert again.score == 70


@pytest.mark.asyncio
async def test_accept_from_pending_is_invalid(session_factory, admin, pending_application):
    async with session_factory() as db:
        with pytest.raises(InvalidTransition):
            await ApplicationService(db).accept_application(identity_for(admin), pending_application.id)


@pytest.mark.asyncio
async def test_reject_records_reason_and_is_terminal(session_factory, admin, pending_application):
    async with session_factory() as db:
        svc = ApplicationService(db)
        rejected = await svc.reject_application(
            identity_for(admin), pending_application.id, reason="Position filled"
        )
        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "Position filled"

        with pytest.raises(InvalidTransition):
            await svc.review_application(identity_for(admin), pending_application.id)


@pytest.mark.asyncio
async def test_empty_notes_and_reason_are_recorded(session_factory, admin, pending_application):
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.review_application(identity_for(admin), pending_application.id, notes="Strong")
        cleared = await svc.review_application(identity_for(admin), pending_application.id, notes="")
        assert cleared.notes == ""

        rejected = await svc.reject_application(identity_for(admin), pending_application.id, reason="")
        assert rejected.rejection_reason == ""


@pytest.mark.asyncio
async def test_score_out_of_range(session_factory, admin, pending_application):
    async with session_factory() as db:
        with pytest.raises(InvalidRequest):
            await ApplicationService(db).review_application(
                identity_for(admin), pending_application.id, score=101
            )


@pytest.mark.asyncio
async def test_candidate_cannot_review(session_factory, candidate, pending_application):
    async with session_factory() as db:
        with pytest.raises(Forbidden):
            await ApplicationService(db).review_application(
                identity_for(candidate), pending_application.id
            )


# ═══════════════════════════════════════════════════════════
# Stale state
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_stale_write_retried_once_then_succeeds(
    session_factory, admin, pending_application, monkeypatch
):
    """Another admin reviewed first; our retry reads 'reviewing' and still may reject."""
    async with session_factory() as db:
        svc = ApplicationService(db)
        original = svc.store.update_status
        calls = []

        async def concurrent_review_then_update(application_id, expected_status, expected_version, values):
            calls.append(expected_status)
            if len(calls) == 1:
                await db.execute(
                    update(Application)
                    .where(Application.id == application_id)
                    .values(status="reviewing", version=Application.version + 1)
                )
            return await original(application_id, expected_status, expected_version, values)

        monkeypatch.setattr(svc.store, "update_status", concurrent_review_then_update)
        result = await svc.reject_application(identity_for(admin), pending_application.id)

    assert calls == ["pending", "reviewing"]
    assert result.status == "rejected"
    assert result.version == 3


@pytest.mark.asyncio
async def test_retry_rechecks_the_transition(
    session_factory, admin, pending_application, monkeypatch
):
    """The concurrent writer rejected it; accepting after re-read is invalid, not stale."""
    who = identity_for(admin)
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.review_application(who, pending_application.id)
        await svc.schedule_interview(who, pending_application.id, in_two_days())

        original = svc.store.update_status

        async def concurrent_reject_then_update(application_id, expected_status, expected_version, values):
            await db.execute(
                update(Application)
                .where(Application.id == application_id)
                .values(status="rejected", version=Application.version + 1)
            )
            return await original(application_id, expected_status, expected_version, values)

        monkeypatch.setattr(svc.store, "update_status", concurrent_reject_then_update)
        with pytest.raises(InvalidTransition):
            await svc.accept_application(who, pending_application.id)


@pytest.mark.asyncio
async def test_second_stale_write_is_surfaced(
    session_factory, admin, pending_application, monkeypatch
):
    async with session_factory() as db:
        svc = ApplicationService(db)
        calls = []

        async def always_stale(*args, **kwargs):
            calls.append(1)
            raise StaleStateError()

        monkeypatch.setattr(svc.store, "update_status", always_stale)
        with pytest.raises(StaleStateError):
            await svc.review_application(identity_for(admin), pending_application.id)

    assert len(calls) == 2


# ═══════════════════════════════════════════════════════════
# Withdraw / visibility
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_owner_withdraws(session_factory, candidate, pending_application, published_job):
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.withdraw_application(identity_for(candidate), pending_application.id)
        with pytest.raises(NotFound):
            await svc.get_application(identity_for(candidate), pending_application.id)

    assert await applications_count(session_factory, published_job.id) == 0


@pytest.mark.asyncio
async def test_other_candidate_cannot_withdraw(session_factory, pending_application):
    stranger = await create_user(session_factory, Role.CANDIDATE)
    async with session_factory() as db:
        with pytest.raises(Forbidden):
            await ApplicationService(db).withdraw_application(
                identity_for(stranger), pending_application.id
            )


@pytest.mark.asyncio
async def test_withdraw_after_interview_is_invalid(
    session_factory, admin, candidate, pending_application
):
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.review_application(identity_for(admin), pending_application.id)
        await svc.schedule_interview(identity_for(admin), pending_application.id, in_two_days())
        with pytest.raises(InvalidTransition):
            await svc.withdraw_application(identity_for(candidate), pending_application.id)


@pytest.mark.asyncio
async def test_other_candidate_cannot_read(session_factory, admin, pending_application):
    stranger = await create_user(session_factory, Role.CANDIDATE)
    async with session_factory() as db:
        svc = ApplicationService(db)
        with pytest.raises(NotFound):
            await svc.get_application(identity_for(stranger), pending_application.id)
        found = await svc.get_application(identity_for(admin), pending_application.id)
    assert found.id == pending_application.id


@pytest.mark.asyncio
async def test_status_counts_are_zero_filled(session_factory, admin, pending_application):
    async with session_factory() as db:
        svc = ApplicationService(db)
        await svc.reject_application(identity_for(admin), pending_application.id)
        counts = await svc.status_counts()

    assert counts == {
        "pending": 0,
        "reviewing": 0,
        "interview": 0,
        "accepted": 0,
        "rejected": 1,
    }


@pytest.mark.asyncio
async def test_list_job_applications_filters_by_status(
    session_factory, admin, published_job, pending_application
):
    other = await create_user(session_factory, Role.CANDIDATE)
    async with session_factory() as db:
        svc = ApplicationService(db)
        second = await svc.submit_application(identity_for(other), published_job.id)
        await svc.review_application(identity_for(admin), second.id)

        everything = await svc.list_job_applications(published_job.id)
        reviewing = await svc.list_job_applications(published_job.id, status="reviewing")

    assert len(everything) == 2
    assert [a.id for a in reviewing] == [second.id]
