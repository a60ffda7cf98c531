"""Refresh-session lifecycle management.

Sessions are rows in user_sessions keyed by an opaque refresh token.
A session is active until it is revoked or its expiry passes; every
successful refresh revokes the presented session and opens a new one.
"""

import logging
from datetime import timedelta

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import InvalidOrExpiredTokenError
from auth.tokens import TokenService
from auth.types import UserSession
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SessionManager:
    """Refresh-session lifecycle management."""

    def __init__(self, auth_db: AuthDatabase, tokens: TokenService, config: AuthConfig):
        self._auth_db = auth_db
        self._tokens = tokens
        self._config = config

    def new_expiry(self):
        """Expiry for a session opened now."""
        return now_utc() + timedelta(days=self._config.refresh_token_expiry_days)

    def create_session(self, user_id: int, device_info: str | None = None) -> UserSession:
        """Open a new refresh session for user."""
        session = UserSession(
            user_id=user_id,
            refresh_token=self._tokens.issue_refresh_token(),
            expires_at=self.new_expiry(),
            created_at=now_utc(),
            device_info=device_info,
        )
        return self._auth_db.create_session(session)

    def rotate_session(self, refresh_token: str) -> UserSession:
        """Exchange an active refresh token for a new session.

        The old session is revoked in the same transaction that creates
        the new one, so a refresh token can be used at most once.

        Raises:
            InvalidOrExpiredTokenError: If the token is unknown, revoked, or expired
        """
        rotated = self._auth_db.rotate_session(
            refresh_token,
            self._tokens.issue_refresh_token(),
            self.new_expiry(),
        )
        if rotated is None:
            raise InvalidOrExpiredTokenError("Invalid or expired refresh token")

        _, replacement = rotated
        return replacement

    def revoke_session(self, user_id: int, refresh_token: str) -> bool:
        """Revoke a session (logout).

        Safe to call with nonexistent or already revoked token.

        Returns:
            True if a session was revoked by this call.
        """
        session = self._auth_db.get_session_by_user_and_token(user_id, refresh_token)
        if session is None or session.revoked_at is not None:
            return False

        session.revoked_at = now_utc()
        self._auth_db.update_session(session)
        return True

    def revoke_all_sessions(self, user_id: int) -> int:
        """Revoke every active session of user. Returns count revoked."""
        return self._auth_db.revoke_user_sessions(user_id)
