"""Candidate profile service.

Learn: Every candidate account gets an empty profile at registration
(see AuthService.register), so there is no "create" step here, only
read and partial update. The profile is addressed by the caller's
identity, never by id, so a candidate can only ever see or edit their
own.
"""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.jwt import Identity
from talentflow.db.models import Candidate
from talentflow.errors import NotFound
from talentflow.events.store import EventStore
from talentflow.events.types import CANDIDATE_PROFILE_UPDATED
from talentflow.services.account_store import AccountStore

logger = structlog.get_logger()

PROFILE_FIELDS = ("phone", "resume", "skills")


def normalize_skills(skills: list[str]) -> list[str]:
    """Strip, drop blanks and de-duplicate (case-insensitive), keeping order."""
    seen: set[str] = set()
    result = []
    for skill in skills:
        skill = skill.strip()
        if skill and skill.lower() not in seen:
            seen.add(skill.lower())
            result.append(skill)
    return result


class CandidateService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.accounts = AccountStore(db)
        self.events = EventStore(db)

    async def get_profile(self, identity: Identity) -> Candidate:
        candidate = await self.accounts.find_candidate_profile(identity.subject_id, load_user=True)
        if not candidate:
            raise NotFound("Candidate profile not found")
        return candidate

    async def update_profile(self, identity: Identity, changes: dict[str, Any]) -> Candidate:
        candidate = await self.get_profile(identity)
        edited = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
        if "skills" in edited:
            edited["skills"] = normalize_skills(edited["skills"] or [])
        for field, value in edited.items():
            setattr(candidate, field, value)

        await self.events.append(
            stream_id=f"user:{identity.subject_id}",
            event_type=CANDIDATE_PROFILE_UPDATED,
            data={"fields": sorted(edited)},
            actor_id=identity.subject_id,
        )
        await self.db.commit()
        logger.info("candidate.profile_updated", candidate_id=str(candidate.id), fields=sorted(edited))
        return candidate
