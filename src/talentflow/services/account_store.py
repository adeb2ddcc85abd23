"""Credential store — account lookups and the refresh-token slot.

Learn: Only a SHA-256 digest of the current refresh token is stored
(same idea as hashing API keys): a leaked users table doesn't leak
usable sessions. One slot per user, last write wins. If two refresh
calls race, the token written second is the only one that keeps working
and the other client has to log in again.
"""

import functools
import hashlib
import hmac
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from talentflow.auth.password import hash_password, verify_password
from talentflow.db.models import Candidate, User, utcnow


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _as_uuid(value: str | uuid.UUID) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


@functools.lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    # Same cost factor as real hashes so a miss takes as long as a hit
    return hash_password("talentflow-no-such-account")


class AccountStore:
    """Reads and writes the parts of a User the session lifecycle needs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, subject_id: str | uuid.UUID) -> Optional[User]:
        user_id = _as_uuid(subject_id)
        if user_id is None:
            return None
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalars().first()

    async def find_candidate_profile(
        self, subject_id: str | uuid.UUID, load_user: bool = False
    ) -> Optional[Candidate]:
        user_id = _as_uuid(subject_id)
        if user_id is None:
            return None
        query = select(Candidate).where(Candidate.user_id == user_id)
        if load_user:
            query = query.options(selectinload(Candidate.user))
        result = await self.db.execute(query)
        return result.scalars().first()

    async def update_refresh_token(
        self, subject_id: str | uuid.UUID, token: Optional[str]
    ) -> None:
        """Overwrite the refresh slot (None clears it, as on logout)."""
        await self.db.execute(
            update(User)
            .where(User.id == _as_uuid(subject_id))
            .values(
                refresh_token_hash=token_digest(token) if token else None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def refresh_token_matches(user: User, token: str) -> bool:
        if not user.refresh_token_hash:
            return False
        return hmac.compare_digest(user.refresh_token_hash, token_digest(token))

    @staticmethod
    def verify_password(user: User, plaintext: str) -> bool:
        return verify_password(plaintext, user.password_hash)

    @staticmethod
    def verify_password_for_missing_account(plaintext: str) -> bool:
        """Spend one bcrypt check for an email with no account, then fail."""
        verify_password(plaintext, _dummy_password_hash())
        return False
