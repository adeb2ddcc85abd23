"""Auth service — registration, login, refresh rotation, logout, password reset.

Learn: The session lifecycle on top of stateless JWTs:
- login → access + refresh token; the refresh token is written into the
  account's single refresh slot (overwriting any previous one)
- refresh → verify signature/expiry, then require the token to match the
  slot, then rotate: new pair, new slot value. The old refresh token is
  dead from that moment on.
- logout / password change / password reset → clear the slot

Password-reset tokens are single-use: a digest is stored on the account
and cleared once consumed. Requesting a reset for an unknown email looks
exactly like requesting one for a known email.
"""

import hmac
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.jwt import (
    ExpiredError,
    Identity,
    MalformedError,
    TokenError,
    TokenIssuer,
    TokenVerifier,
)
from talentflow.auth.password import hash_password
from talentflow.auth.roles import Role
from talentflow.db.models import Candidate, User, ensure_utc, utcnow
from talentflow.errors import (
    AlreadyExists,
    InvalidRefreshToken,
    InvalidRequest,
    Unauthenticated,
)
from talentflow.events.store import EventStore
from talentflow.events.types import (
    PASSWORD_CHANGED,
    PASSWORD_RESET,
    PASSWORD_RESET_REQUESTED,
    PROFILE_UPDATED,
    TOKEN_REFRESHED,
    USER_LOGGED_IN,
    USER_LOGGED_OUT,
    USER_REGISTERED,
)
from talentflow.services.account_store import AccountStore, token_digest

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthService:
    """Business logic for accounts and token sessions."""

    def __init__(self, db: AsyncSession, issuer: TokenIssuer, verifier: TokenVerifier):
        self.db = db
        self.issuer = issuer
        self.verifier = verifier
        self.accounts = AccountStore(db)
        self.events = EventStore(db)

    # ─── Register ────────────────────────────────────────

    async def register(
        self,
        email: str,
        name: str,
        password: str,
        role: Role = Role.CANDIDATE,
    ) -> User:
        """Create an account. Candidates also get their candidate profile."""
        email = email.strip().lower()
        if await self.accounts.find_by_email(email):
            raise AlreadyExists("Email already registered")

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=Role(role).value,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExists("Email already registered") from None

        if user.role == Role.CANDIDATE.value:
            self.db.add(Candidate(user_id=user.id))

        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=USER_REGISTERED,
            data={"email": email, "role": user.role},
        )
        await self.db.commit()
        logger.info("auth.registered", user_id=str(user.id), role=user.role)
        return user

    # ─── Login / refresh / logout ────────────────────────

    async def login(self, email: str, password: str) -> TokenPair:
        user = await self.accounts.find_by_email(email)
        if user is None:
            # Unknown emails pay for a bcrypt check too
            self.accounts.verify_password_for_missing_account(password)
            logger.info("auth.login_failed", reason="bad_credentials")
            raise Unauthenticated(INVALID_CREDENTIALS)
        if not self.accounts.verify_password(user, password):
            logger.info("auth.login_failed", reason="bad_credentials")
            raise Unauthenticated(INVALID_CREDENTIALS)
        if not user.is_active:
            logger.info("auth.login_failed", reason="account_inactive", user_id=str(user.id))
            raise Unauthenticated(INVALID_CREDENTIALS)

        pair = await self._issue_pair(user)
        user.last_login_at = utcnow()

        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=USER_LOGGED_IN,
            data={},
            actor_id=str(user.id),
        )
        await self.db.commit()
        logger.info("auth.login_succeeded", user_id=str(user.id))
        return pair

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token into a new pair.

        Only the token currently in the account's slot is accepted. Two
        racing refreshes for the same account are not serialized: the one
        whose slot write lands last wins, the other token stops working.
        """
        try:
            claims = self.verifier.verify_refresh_token(refresh_token)
        except ExpiredError:
            logger.info("auth.refresh_rejected", reason="token_expired")
            raise InvalidRefreshToken() from None
        except MalformedError as e:
            logger.info("auth.refresh_rejected", reason="token_malformed", error=str(e))
            raise InvalidRefreshToken() from None

        user = await self.accounts.find_by_id(claims.subject_id)
        if user is None or not user.is_active:
            logger.info("auth.refresh_rejected", reason="account_unavailable")
            raise InvalidRefreshToken()
        if not self.accounts.refresh_token_matches(user, refresh_token):
            logger.info("auth.refresh_rejected", reason="token_revoked", user_id=str(user.id))
            raise InvalidRefreshToken()

        pair = await self._issue_pair(user)
        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=TOKEN_REFRESHED,
            data={},
            actor_id=str(user.id),
        )
        await self.db.commit()
        logger.info("auth.token_refreshed", user_id=str(user.id))
        return pair

    async def logout(self, subject_id: str) -> None:
        await self.accounts.update_refresh_token(subject_id, None)
        await self.events.append(
            stream_id=f"user:{subject_id}",
            event_type=USER_LOGGED_OUT,
            data={},
            actor_id=subject_id,
        )
        await self.db.commit()
        logger.info("auth.logged_out", user_id=subject_id)

    async def _issue_pair(self, user: User) -> TokenPair:
        identity = Identity(subject_id=str(user.id), email=user.email, role=Role(user.role))
        access_token = self.issuer.issue_access_token(identity)
        refresh_token = self.issuer.issue_refresh_token(identity.subject_id)
        await self.accounts.update_refresh_token(user.id, refresh_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    # ─── Password reset / change ─────────────────────────

    async def request_password_reset(self, email: str) -> Optional[str]:
        """Issue a reset token for delivery, or None for unknown/inactive emails.

        Callers must respond identically in both cases.
        """
        user = await self.accounts.find_by_email(email)
        if user is None or not user.is_active:
            logger.info("auth.password_reset_ignored")
            return None

        token = self.issuer.issue_password_reset_token(str(user.id))
        user.password_reset_token_hash = token_digest(token)
        user.password_reset_expires_at = (
            self.issuer.clock() + self.issuer.config.password_reset_ttl
        )
        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=PASSWORD_RESET_REQUESTED,
            data={},
        )
        await self.db.commit()
        logger.info("auth.password_reset_requested", user_id=str(user.id))
        return token

    async def reset_password(self, token: str, new_password: str) -> None:
        try:
            claims = self.verifier.verify_password_reset_token(token)
        except TokenError as e:
            logger.info("auth.password_reset_rejected", reason=type(e).__name__)
            raise InvalidRequest(INVALID_RESET_TOKEN) from None

        user = await self.accounts.find_by_id(claims.subject_id)
        if (
            user is None
            or not user.is_active
            or not user.password_reset_token_hash
            or not hmac.compare_digest(user.password_reset_token_hash, token_digest(token))
        ):
            logger.info("auth.password_reset_rejected", reason="token_not_current")
            raise InvalidRequest(INVALID_RESET_TOKEN)

        expires_at = ensure_utc(user.password_reset_expires_at)
        if expires_at is not None and expires_at < self.verifier.clock():
            logger.info("auth.password_reset_rejected", reason="token_expired")
            raise InvalidRequest(INVALID_RESET_TOKEN)

        user.password_hash = hash_password(new_password)
        user.password_reset_token_hash = None
        user.password_reset_expires_at = None
        user.refresh_token_hash = None

        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=PASSWORD_RESET,
            data={},
            actor_id=str(user.id),
        )
        await self.db.commit()
        logger.info("auth.password_reset", user_id=str(user.id))

    async def change_password(
        self, subject_id: str, current_password: str, new_password: str
    ) -> None:
        user = await self.accounts.find_by_id(subject_id)
        if user is None:
            raise Unauthenticated()
        if not self.accounts.verify_password(user, current_password):
            raise InvalidRequest("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        user.refresh_token_hash = None

        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=PASSWORD_CHANGED,
            data={},
            actor_id=subject_id,
        )
        await self.db.commit()
        logger.info("auth.password_changed", user_id=subject_id)

    # ─── Profile ─────────────────────────────────────────

    async def update_profile(self, subject_id: str, name: str) -> User:
        user = await self.accounts.find_by_id(subject_id)
        if user is None:
            raise Unauthenticated()
        old_name = user.name
        user.name = name

        await self.events.append(
            stream_id=f"user:{user.id}",
            event_type=PROFILE_UPDATED,
            data={"from": old_name, "to": name},
            actor_id=subject_id,
        )
        await self.db.commit()
        logger.info("auth.profile_updated", user_id=subject_id)
        return user
