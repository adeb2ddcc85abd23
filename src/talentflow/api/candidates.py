"""Candidate profile routes.

Learn: /candidates/profile always means "my profile". There is no
id in the path, so the role gate is the only check needed.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.dependencies import CurrentIdentity, require_candidate
from talentflow.db.engine import get_db
from talentflow.schemas.candidate import CandidateProfileRead, CandidateProfileUpdate
from talentflow.services.candidate_service import CandidateService

router = APIRouter(prefix="/candidates")


def _candidate_svc(db: AsyncSession = Depends(get_db)) -> CandidateService:
    return CandidateService(db)


@router.get("/profile", response_model=CandidateProfileRead)
async def get_profile(
    identity: CurrentIdentity = Depends(require_candidate),
    svc: CandidateService = Depends(_candidate_svc),
):
    return await svc.get_profile(identity)


@router.put("/profile", response_model=CandidateProfileRead)
async def update_profile(
    body: CandidateProfileUpdate,
    identity: CurrentIdentity = Depends(require_candidate),
    svc: CandidateService = Depends(_candidate_svc),
):
    """Change phone, resume or skills. Fields left out of the body are kept."""
    return await svc.update_profile(identity, body.model_dump(exclude_unset=True))
