"""Auth API — registration, login, token refresh, password management.

Learn: Routes for the account and session lifecycle:
- POST /auth/register → create a candidate account
- POST /auth/login → email/password → access + refresh token
- POST /auth/refresh → refresh token → new pair (old refresh token dies)
- POST /auth/logout → clear the refresh slot
- POST /auth/forgot-password → always the same answer
- POST /auth/reset-password → single-use reset token + new password
- POST /auth/change-password → current + new password
- GET /auth/me → current user info
- PUT /auth/profile → change the display name

Self-registration always creates a candidate. Admins are bootstrapped
with the CLI (`talentflow create-admin`).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talentflow.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    get_token_issuer,
    get_token_verifier,
)
from talentflow.auth.jwt import TokenIssuer, TokenVerifier
from talentflow.auth.roles import Role
from talentflow.db.engine import get_db
from talentflow.errors import Unauthenticated
from talentflow.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MeRead,
    MessageResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserRead,
)
from talentflow.services.account_store import AccountStore
from talentflow.services.auth_service import AuthService
from talentflow.services.notifier import PasswordResetNotifier, get_password_reset_notifier

router = APIRouter(prefix="/auth")

FORGOT_PASSWORD_MESSAGE = "If that email is registered, a reset link has been sent."


def _auth_svc(
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthService:
    return AuthService(db, issuer, verifier)


# ─── Register / login ───────────────────────────────────


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_auth_svc)):
    """Create a new candidate account."""
    return await svc.register(
        email=body.email,
        name=body.name,
        password=body.password,
        role=Role.CANDIDATE,
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_auth_svc)):
    """Login with email and password → JWT tokens."""
    return await svc.login(body.email, body.password)


# ─── Refresh / logout ───────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, svc: AuthService = Depends(_auth_svc)):
    """Exchange the current refresh token for a new pair."""
    return await svc.refresh(body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Revoke the caller's refresh token. Access tokens live until expiry."""
    await svc.logout(identity.subject_id)
    return {"message": "Logged out"}


# ─── Passwords ──────────────────────────────────────────


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    svc: AuthService = Depends(_auth_svc),
    notifier: PasswordResetNotifier = Depends(get_password_reset_notifier),
):
    """Start a password reset.

    Learn: The response never depends on whether the email exists, and
    the token itself is never returned over HTTP. It goes to the
    injected notifier, which is only called for a registered email.
    """
    token = await svc.request_password_reset(body.email)
    if token is not None:
        await notifier.send_password_reset(body.email, token)
    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest, svc: AuthService = Depends(_auth_svc)
):
    await svc.reset_password(body.token, body.new_password)
    return {"message": "Password has been reset"}


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    await svc.change_password(identity.subject_id, body.current_password, body.new_password)
    return {"message": "Password changed"}


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current authenticated user's info."""
    accounts = AccountStore(db)
    user = await accounts.find_by_id(identity.subject_id)
    if user is None:
        raise Unauthenticated()

    candidate = await accounts.find_candidate_profile(user.id)
    me = MeRead.model_validate(user)
    me.candidate_id = candidate.id if candidate else None
    return me


@router.put("/profile", response_model=UserRead)
async def update_profile(
    body: ProfileUpdateRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Rename the caller's account. Email and role are not editable here."""
    return await svc.update_profile(identity.subject_id, body.name)
