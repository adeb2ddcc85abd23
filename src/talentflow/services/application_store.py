"""Application store: persistence primitives for the lifecycle.

Learn: The store never decides whether a transition is legal; that's
lifecycle.decide(). What it guarantees is that a write only lands if the
row still looks like what the caller read:

- insert_if_absent relies on the (job_id, candidate_id) unique constraint,
  so two concurrent submissions can both pass the pre-check and still
  only one row is ever written. The loser gets DuplicateApplication.
- update_status / delete_by_id are conditional on (status, version).
  Zero rows affected means someone else got there first → StaleStateError.
"""

import uuid
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.db.models import Application
from talentflow.errors import DuplicateApplication, StaleStateError
from talentflow.lifecycle import ApplicationStatus


class ApplicationStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, application_id: uuid.UUID) -> Optional[Application]:
        """Fresh read that bypasses whatever the session already holds."""
        result = await self.db.execute(
            select(Application)
            .where(Application.id == application_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def find_by_pair(
        self, job_id: uuid.UUID, candidate_id: uuid.UUID
    ) -> Optional[Application]:
        result = await self.db.execute(
            select(Application).where(
                Application.job_id == job_id,
                Application.candidate_id == candidate_id,
            )
        )
        return result.scalars().first()

    async def insert_if_absent(
        self,
        job_id: uuid.UUID,
        candidate_id: uuid.UUID,
        cover_letter: Optional[str] = None,
    ) -> Application:
        """Insert a pending application or raise DuplicateApplication.

        Must be the first write of the caller's transaction: a constraint
        violation rolls the session back.
        """
        if await self.find_by_pair(job_id, candidate_id):
            raise DuplicateApplication()

        application = Application(
            job_id=job_id,
            candidate_id=candidate_id,
            cover_letter=cover_letter,
            status=ApplicationStatus.PENDING.value,
            version=1,
        )
        self.db.add(application)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateApplication() from None
        return application

    async def update_status(
        self,
        application_id: uuid.UUID,
        expected_status: str,
        expected_version: int,
        values: dict[str, Any],
    ) -> Application:
        """Apply `values` only if status and version are still as read."""
        result = await self.db.execute(
            update(Application)
            .where(
                Application.id == application_id,
                Application.status == expected_status,
                Application.version == expected_version,
            )
            .values(**values, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleStateError()
        return await self.find_by_id(application_id)

    async def delete_by_id(
        self,
        application_id: uuid.UUID,
        expected_status: str,
        expected_version: int,
    ) -> None:
        result = await self.db.execute(
            delete(Application)
            .where(
                Application.id == application_id,
                Application.status == expected_status,
                Application.version == expected_version,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleStateError()

    async def list_for_candidate(self, candidate_id: uuid.UUID) -> list[Application]:
        result = await self.db.execute(
            select(Application)
            .where(Application.candidate_id == candidate_id)
            .order_by(Application.applied_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_job(
        self,
        job_id: uuid.UUID,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Application]:
        query = (
            select(Application)
            .where(Application.job_id == job_id)
            .order_by(Application.applied_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if status:
            query = query.where(Application.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def status_counts(self) -> dict[str, int]:
        result = await self.db.execute(
            select(Application.status, func.count(Application.id))
            .group_by(Application.status)
        )
        return {status: count for status, count in result.all()}
