"""Security event logging for auth audit trail.

Append-only log to the security_events table. Emails are stored masked.
Writes happen after the auth change they describe has been committed, so
a failed write is logged and never undoes or fails the request.
"""

import logging
from enum import Enum
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Auth security event types."""

    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    DEVICE_REGISTERED = "device_registered"
    TOKEN_REFRESHED = "token_refreshed"
    REFRESH_REJECTED = "refresh_rejected"
    SESSION_REVOKED = "session_revoked"
    EMAIL_VERIFIED = "email_verified"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"


def mask_email(email: str | None) -> str | None:
    """Keep the first character of the local part and the domain.

    "jane.doe@example.com" -> "j***@example.com". Values without an "@"
    (failed logins can carry anything) are reduced to "***".
    """
    if not email:
        return None
    local, sep, domain = email.strip().rpartition("@")
    if not sep or not local:
        return "***"
    return f"{local[0]}***@{domain}"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        user_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database. Never raises."""
        try:
            self._db.execute_returning(
                """INSERT INTO security_events
                   (event_type, email, user_id, details, created_at)
                   VALUES (%s, %s, %s, %s, %s)
                   RETURNING id""",
                (
                    event.value,
                    mask_email(email),
                    user_id,
                    Json(details) if details else None,
                    now_utc(),
                ),
            )
        except Exception:
            logger.exception(f"Failed to record security event {event.value} user_id={user_id}")
