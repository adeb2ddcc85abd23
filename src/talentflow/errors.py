"""Domain error taxonomy.

Learn: Services raise these; they never build HTTP responses. Each error
carries a machine-readable ErrorKind, and main.py installs a single
exception handler that maps kinds to status codes. That keeps the core
free of transport concerns and gives clients a stable "kind" to branch on.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    DUPLICATE_APPLICATION = "duplicate_application"
    STALE_STATE = "stale_state"
    ALREADY_EXISTS = "already_exists"
    INVALID_REQUEST = "invalid_request"
    SIGNING_ERROR = "signing_error"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.DUPLICATE_APPLICATION: 409,
    ErrorKind.STALE_STATE: 409,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.SIGNING_ERROR: 500,
}


class DomainError(Exception):
    """Base class for every error the core surfaces to the request layer."""

    kind: ErrorKind = ErrorKind.INVALID_REQUEST
    default_message: str = "Invalid request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


class Unauthenticated(DomainError):
    """Missing, invalid or expired credentials, or a gone/deactivated account."""

    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Could not validate credentials"


class InvalidRefreshToken(Unauthenticated):
    """Refresh token failed verification or no longer matches the stored slot."""

    default_message = "Invalid refresh token"


class Forbidden(DomainError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Access denied"


class NotFound(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class InvalidTransition(DomainError):
    """A lifecycle guard rejected the event for the record's current status."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: Optional[str], event: str):
        self.current = current
        self.event = event
        super().__init__(
            f"Cannot {event.replace('_', ' ')} an application in status "
            f"'{current or 'none'}'"
        )


class DuplicateApplication(DomainError):
    kind = ErrorKind.DUPLICATE_APPLICATION
    default_message = "An application for this job already exists"


class StaleStateError(DomainError):
    """A concurrent writer changed the record between our read and our write."""

    kind = ErrorKind.STALE_STATE
    default_message = "Application was modified concurrently, retry the request"


class AlreadyExists(DomainError):
    kind = ErrorKind.ALREADY_EXISTS
    default_message = "Resource already exists"


class InvalidRequest(DomainError):
    kind = ErrorKind.INVALID_REQUEST


class SigningError(DomainError):
    """Token signing is misconfigured (e.g. a missing secret)."""

    kind = ErrorKind.SIGNING_ERROR
    default_message = "Token signing is misconfigured"
