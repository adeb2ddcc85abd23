"""Event type constants.

Learn: Centralizing event types as constants prevents typos and
makes it easy to discover all event types in the system.
"""

# ─── Accounts + sessions ─────────────────────────────────

USER_REGISTERED = "auth.registered"
USER_LOGGED_IN = "auth.logged_in"
USER_LOGGED_OUT = "auth.logged_out"
TOKEN_REFRESHED = "auth.token_refreshed"
PASSWORD_RESET_REQUESTED = "auth.password_reset_requested"
PASSWORD_RESET = "auth.password_reset"
PASSWORD_CHANGED = "auth.password_changed"
PROFILE_UPDATED = "auth.profile_updated"

# ─── Candidate profiles ──────────────────────────────────

CANDIDATE_PROFILE_UPDATED = "candidate.profile_updated"

# ─── Jobs ────────────────────────────────────────────────

JOB_CREATED = "job.created"
JOB_UPDATED = "job.updated"
JOB_STATUS_CHANGED = "job.status_changed"
JOB_DELETED = "job.deleted"

# ─── Application lifecycle ───────────────────────────────

APPLICATION_SUBMITTED = "application.submitted"
APPLICATION_REVIEWED = "application.reviewed"
APPLICATION_INTERVIEW_SCHEDULED = "application.interview_scheduled"
APPLICATION_REJECTED = "application.rejected"
APPLICATION_ACCEPTED = "application.accepted"
APPLICATION_WITHDRAWN = "application.withdrawn"
