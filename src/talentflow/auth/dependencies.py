"""Session guard and role gates as FastAPI dependencies.

Learn: These are used as Depends() in route handlers (or in a router's
dependencies=[...]) to gate a request before any business logic runs:

1. authenticate(): Bearer token → verify → account lookup → CurrentIdentity
2. authorize(roles): pure predicate over an already-authenticated identity
3. require_roles(...): the Depends()-ready composition of the two

Every authentication failure surfaces as the same Unauthenticated error.
Why it failed (expired, malformed, account gone, deactivated) is only
logged, so the auth path can't be used to probe which accounts exist.
"""

from functools import lru_cache
from typing import Callable, Iterable, Optional

import structlog
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.jwt import (
    ExpiredError,
    Identity,
    MalformedError,
    TokenConfig,
    TokenIssuer,
    TokenVerifier,
)
from talentflow.auth.roles import Role
from talentflow.config import settings
from talentflow.db.engine import get_db
from talentflow.errors import Forbidden, Unauthenticated
from talentflow.services.account_store import AccountStore

logger = structlog.get_logger()


# The authenticated caller attached to a request: {subject_id, email, role}
CurrentIdentity = Identity


# ─── Token service wiring ────────────────────────────────


@lru_cache
def get_token_config() -> TokenConfig:
    return TokenConfig.from_settings(settings)


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(get_token_config())


def get_token_verifier() -> TokenVerifier:
    return TokenVerifier(get_token_config())


# ─── Session guard ───────────────────────────────────────


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate(
    authorization: Optional[str],
    verifier: TokenVerifier,
    accounts: AccountStore,
) -> CurrentIdentity:
    """Resolve an Authorization header value to the caller's identity.

    Side-effect free apart from the account lookup.
    """
    token = _bearer_token(authorization)
    if token is None:
        logger.info("session_guard.rejected", reason="missing_token")
        raise Unauthenticated()

    try:
        claims = verifier.verify_access_token(token)
    except ExpiredError:
        logger.info("session_guard.rejected", reason="token_expired")
        raise Unauthenticated() from None
    except MalformedError as e:
        logger.info("session_guard.rejected", reason="token_malformed", error=str(e))
        raise Unauthenticated() from None

    user = await accounts.find_by_id(claims.subject_id)
    if user is None:
        logger.info("session_guard.rejected", reason="account_missing", user_id=claims.subject_id)
        raise Unauthenticated()
    if not user.is_active:
        logger.info("session_guard.rejected", reason="account_inactive", user_id=claims.subject_id)
        raise Unauthenticated()

    structlog.contextvars.bind_contextvars(user_id=claims.subject_id)
    return CurrentIdentity(
        subject_id=claims.subject_id,
        email=claims.email,
        role=claims.role,
    )


def authorize(allowed_roles: Iterable[Role | str]) -> Callable[[Optional[Identity]], Identity]:
    """Build a role gate: identity → identity, or Unauthenticated / Forbidden.

    Pure and deterministic; gates compose by calling them in sequence.
    """
    allowed = frozenset(Role(r) for r in allowed_roles)

    def gate(identity: Optional[Identity]) -> Identity:
        if identity is None:
            raise Unauthenticated()
        if identity.role not in allowed:
            raise Forbidden()
        return identity

    return gate


# ─── FastAPI dependencies ────────────────────────────────


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> CurrentIdentity:
    """Hard auth dependency: 401 if the request isn't authenticated."""
    return await authenticate(authorization, verifier, AccountStore(db))


def require_roles(*roles: Role) -> Callable:
    """Depends()-ready role gate layered on get_current_user.

    Usage:
        @router.post(..., dependencies=[Depends(require_roles(Role.ADMIN))])
        async def handler(identity: CurrentIdentity = Depends(require_admin)): ...
    """
    gate = authorize(roles)

    async def dependency(
        identity: CurrentIdentity = Depends(get_current_user),
    ) -> CurrentIdentity:
        gate(identity)
        return identity

    return dependency


require_admin = require_roles(Role.ADMIN)
require_candidate = require_roles(Role.CANDIDATE)
