"""Password-reset delivery.

Learn: The auth service only mints the reset token; getting it to the
user is a separate concern behind a small interface, injected into the
forgot-password route as a FastAPI dependency. Swap in a mailer by
overriding get_password_reset_notifier.

The default implementation writes the token to the debug log, and only
in development/test. Anywhere else it logs that nothing was delivered,
so a missing mailer is visible in production without leaking tokens.
"""

import structlog

from talentflow.config import settings

logger = structlog.get_logger()


class PasswordResetNotifier:
    """Delivers a password-reset token to the account's owner."""

    async def send_password_reset(self, email: str, token: str) -> None:
        raise NotImplementedError


class LogPasswordResetNotifier(PasswordResetNotifier):
    def __init__(self, environment: str):
        self.environment = environment

    async def send_password_reset(self, email: str, token: str) -> None:
        if self.environment in ("development", "test"):
            logger.debug("notifier.password_reset", email=email, token=token)
        else:
            logger.warning("notifier.password_reset_undelivered", reason="no_mailer_configured")


def get_password_reset_notifier() -> PasswordResetNotifier:
    return LogPasswordResetNotifier(settings.environment)
