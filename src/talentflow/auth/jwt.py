"""JWT token issuance and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (1h), carries sub/email/role, access secret
- Refresh token: long-lived (7d), carries only sub, refresh secret
- Password-reset token: short-lived (1h), access secret, type=password_reset

Every token carries a "type" claim and a random "jti". The type stops a
reset token from being replayed as a bearer token (same secret, different
type); the jti makes two tokens minted in the same second distinct, which
refresh-token rotation relies on.

Nothing here reads global settings. TokenConfig is built once at the edge
and handed to the issuer/verifier, so tests can use fixed secrets and a
fixed clock.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from talentflow.auth.roles import Role
from talentflow.config import Settings, parse_duration
from talentflow.errors import SigningError

ACCESS = "access"
REFRESH = "refresh"
PASSWORD_RESET = "password_reset"

REQUIRED_CLAIMS = ["sub", "type", "iat", "exp"]

# Tolerated drift between the issuing and the verifying clock
IAT_LEEWAY = timedelta(seconds=30)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenError(Exception):
    """Raised when token verification fails."""


class ExpiredError(TokenError):
    """The token's exp is in the past."""


class MalformedError(TokenError):
    """Bad signature, bad structure, missing claims or wrong token type."""


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(hours=1)
    refresh_ttl: timedelta = timedelta(days=7)
    password_reset_ttl: timedelta = timedelta(hours=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=parse_duration(settings.access_token_expires_in),
            refresh_ttl=parse_duration(settings.refresh_token_expires_in),
            password_reset_ttl=parse_duration(settings.password_reset_expires_in),
        )


@dataclass(frozen=True)
class Identity:
    """Who the caller is: the part of the claims the request layer uses."""

    subject_id: str
    email: str
    role: Role


@dataclass(frozen=True)
class TokenClaims:
    """Decoded payload of a verified token."""

    subject_id: str
    token_type: str
    token_id: str
    issued_at: datetime
    expires_at: datetime
    email: Optional[str] = None
    role: Optional[Role] = None

    @property
    def identity(self) -> Identity:
        if self.email is None or self.role is None:
            raise MalformedError("Token does not carry identity claims")
        return Identity(subject_id=self.subject_id, email=self.email, role=self.role)


class TokenIssuer:
    """Mints signed tokens. Owns nothing but the config it was given."""

    def __init__(self, config: TokenConfig, clock: Clock = utcnow):
        self.config = config
        self.clock = clock

    def issue_access_token(self, identity: Identity) -> str:
        payload = {
            "sub": identity.subject_id,
            "email": identity.email,
            "role": Role(identity.role).value,
        }
        return self._sign(payload, ACCESS, self.config.access_secret, self.config.access_ttl)

    def issue_refresh_token(self, subject_id: str) -> str:
        """Mint a refresh token.

        The caller must persist it as the account's current refresh token;
        whichever token is written last is the only one that stays usable.
        """
        return self._sign(
            {"sub": subject_id}, REFRESH, self.config.refresh_secret, self.config.refresh_ttl
        )

    def issue_password_reset_token(
        self, subject_id: str, ttl: Optional[timedelta] = None
    ) -> str:
        return self._sign(
            {"sub": subject_id},
            PASSWORD_RESET,
            self.config.access_secret,
            ttl or self.config.password_reset_ttl,
        )

    def _sign(self, payload: dict, token_type: str, secret: str, ttl: timedelta) -> str:
        if not secret:
            raise SigningError(f"No signing secret configured for {token_type} tokens")
        issued_at = self.clock()
        claims = {
            **payload,
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        try:
            return jwt.encode(claims, secret, algorithm=self.config.algorithm)
        except (jwt.PyJWTError, NotImplementedError) as e:
            raise SigningError(f"Could not sign {token_type} token: {e}") from e


def verify_token(
    token: str,
    secret: str,
    *,
    algorithm: str = "HS256",
    expected_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TokenClaims:
    """Verify signature, structure and expiry; return the decoded claims.

    Pure cryptographic/structural check: never touches the database.
    Both time checks use `now`, never the wall clock: iat may not lie
    further ahead than IAT_LEEWAY. Raises ExpiredError when now > exp,
    MalformedError for everything else.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise MalformedError(f"Invalid token: {e}") from e

    token_type = payload.get("type")
    if expected_type is not None and token_type != expected_type:
        raise MalformedError(f"Expected a {expected_type} token, got {token_type!r}")

    try:
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedError("Invalid token timestamps") from e

    now = now or utcnow()
    if issued_at > now + IAT_LEEWAY:
        raise MalformedError("Token is not yet valid (iat)")
    if now > expires_at:
        raise ExpiredError("Token has expired")

    role = None
    if payload.get("role") is not None:
        try:
            role = Role(payload["role"])
        except ValueError as e:
            raise MalformedError(f"Unknown role {payload['role']!r}") from e

    if token_type == ACCESS and (role is None or not payload.get("email")):
        raise MalformedError("Access token is missing identity claims")

    return TokenClaims(
        subject_id=str(payload["sub"]),
        token_type=token_type,
        token_id=str(payload.get("jti", "")),
        issued_at=issued_at,
        expires_at=expires_at,
        email=payload.get("email"),
        role=role,
    )


class TokenVerifier:
    """Verifies tokens against the configured secrets and the injected clock."""

    def __init__(self, config: TokenConfig, clock: Clock = utcnow):
        self.config = config
        self.clock = clock

    def verify(
        self, token: str, secret: str, expected_type: Optional[str] = None
    ) -> TokenClaims:
        return verify_token(
            token,
            secret,
            algorithm=self.config.algorithm,
            expected_type=expected_type,
            now=self.clock(),
        )

    def verify_access_token(self, token: str) -> TokenClaims:
        return self.verify(token, self.config.access_secret, ACCESS)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        return self.verify(token, self.config.refresh_secret, REFRESH)

    def verify_password_reset_token(self, token: str) -> TokenClaims:
        return self.verify(token, self.config.access_secret, PASSWORD_RESET)
