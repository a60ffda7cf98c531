"""Authentication service - orchestrates password auth and token lifecycle."""

import logging
import secrets
from datetime import timedelta

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    RegistrationFailedError,
)
from auth.passwords import hash_password, verify_password
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import SessionManager
from auth.tokens import TokenService
from auth.types import NewUser, TokenPair, UserDevice
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails are stored and compared trimmed and lower-cased."""
    return email.strip().lower()


def generate_account_token() -> str:
    """Single-use verification/reset token. URL-safe, travels in links."""
    return secrets.token_urlsafe(64)


class AuthService:
    """Orchestrates account and session flows.

    Handles:
    - Registration and password login
    - Refresh-token rotation and logout
    - Email verification and password reset (with enumeration protection)

    Operations that would reveal whether an email or token exists return
    False instead of raising.
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        session_manager: SessionManager,
        tokens: TokenService,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._auth_db = auth_db
        self._session_manager = session_manager
        self._tokens = tokens
        self._security_logger = security_logger
        # Compared against when the email is unknown so login effort is constant
        self._dummy_hash, self._dummy_salt = hash_password(secrets.token_urlsafe(16))

    def register(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> TokenPair:
        """Create an unverified account and sign it in.

        Flow:
        1. Reject a taken email
        2. Hash password, generate verification token
        3. Create user and first refresh session atomically
        4. Issue access token

        Raises:
            DuplicateEmailError: If the email is already registered
            RegistrationFailedError: If the account could not be stored
        """
        email = normalize_email(email)

        if self._auth_db.user_exists_by_email(email):
            raise DuplicateEmailError("User with this email already exists")

        password_hash, password_salt = hash_password(password)
        new_user = NewUser(
            email=email,
            password_hash=password_hash,
            password_salt=password_salt,
            first_name=first_name,
            last_name=last_name,
            email_verification_token=generate_account_token(),
            is_email_verified=False,
        )

        try:
            user, session = self._auth_db.create_user_with_session(
                new_user,
                refresh_token=self._tokens.issue_refresh_token(),
                expires_at=self._session_manager.new_expiry(),
            )
        except DuplicateEmailError:
            raise
        except Exception as e:
            logger.exception(f"Registration failed: {type(e).__name__}")
            raise RegistrationFailedError("Registration failed") from e

        self._security_logger.log(
            SecurityEvent.USER_REGISTERED,
            email=user.email,
            user_id=user.id,
        )
        logger.info(f"User registered: id={user.id}")

        return TokenPair(
            access_token=self._tokens.issue_access_token(user),
            refresh_token=session.refresh_token,
            user_id=user.id,
        )

    def login(
        self,
        email: str,
        password: str,
        device_token: str | None = None,
        platform: str | None = None,
    ) -> TokenPair:
        """Verify credentials and open a new session.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        email = normalize_email(email)
        user = self._auth_db.get_user_by_email(email)

        if user is None:
            verify_password(password, self._dummy_hash, self._dummy_salt)
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                details={"reason": "user_not_found"},
            )
            raise InvalidCredentialsError("Invalid email or password")

        if not verify_password(password, user.password_hash, user.password_salt):
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                user_id=user.id,
                details={"reason": "wrong_password"},
            )
            raise InvalidCredentialsError("Invalid email or password")

        user.last_login_at = now_utc()
        self._auth_db.update_user(user)

        if device_token and platform:
            self._register_device(user.id, device_token, platform)

        session = self._session_manager.create_session(user.id, device_info=platform)

        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=user.email,
            user_id=user.id,
        )

        return TokenPair(
            access_token=self._tokens.issue_access_token(user),
            refresh_token=session.refresh_token,
            user_id=user.id,
        )

    def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token.

        The presented token is revoked and can never be used again.

        Raises:
            InvalidOrExpiredTokenError: If the token is unknown, revoked, or expired
        """
        try:
            session = self._session_manager.rotate_session(refresh_token)
        except InvalidOrExpiredTokenError:
            self._security_logger.log(
                SecurityEvent.REFRESH_REJECTED,
                details={"reason": "inactive_or_unknown"},
            )
            raise

        user = self._auth_db.get_user_by_id(session.user_id)
        if user is None:
            raise InvalidOrExpiredTokenError("Invalid or expired refresh token")

        self._security_logger.log(
            SecurityEvent.TOKEN_REFRESHED,
            email=user.email,
            user_id=user.id,
        )

        return TokenPair(
            access_token=self._tokens.issue_access_token(user),
            refresh_token=session.refresh_token,
            user_id=user.id,
        )

    def logout(self, user_id: int, refresh_token: str) -> bool:
        """Revoke the session for this user and token.

        Idempotent: an unknown or already revoked session is not an error.
        """
        if self._session_manager.revoke_session(user_id, refresh_token):
            self._security_logger.log(SecurityEvent.SESSION_REVOKED, user_id=user_id)
        return True

    def verify_email(self, token: str) -> bool:
        """Consume an email-verification token.

        Returns:
            False if no user holds the token.
        """
        user = self._auth_db.get_user_by_verification_token(token)
        if user is None:
            return False

        user.is_email_verified = True
        user.email_verification_token = None
        self._auth_db.update_user(user)

        self._security_logger.log(
            SecurityEvent.EMAIL_VERIFIED,
            email=user.email,
            user_id=user.id,
        )
        return True

    def request_password_reset(self, email: str) -> bool:
        """Issue a password reset token.

        Delivery of the token is handled outside this service.

        Returns:
            False if no such user.
        """
        email = normalize_email(email)
        user = self._auth_db.get_user_by_email(email)
        if user is None:
            return False

        user.password_reset_token = generate_account_token()
        user.password_reset_token_expiry = now_utc() + timedelta(
            minutes=self._config.password_reset_expiry_minutes
        )
        self._auth_db.update_user(user)

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            email=user.email,
            user_id=user.id,
        )
        logger.info(f"Password reset requested: user_id={user.id}")
        return True

    def reset_password(self, token: str, new_password: str) -> bool:
        """Set a new password using an unexpired reset token.

        Clears the reset token and its expiry, and revokes all sessions.

        Returns:
            False if no user holds a matching unexpired token.
        """
        user = self._auth_db.get_user_by_password_reset_token(token)
        if user is None:
            return False

        user.password_hash, user.password_salt = hash_password(new_password)
        user.password_reset_token = None
        user.password_reset_token_expiry = None
        self._auth_db.update_user(user)

        revoked = self._session_manager.revoke_all_sessions(user.id)

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_COMPLETED,
            email=user.email,
            user_id=user.id,
            details={"sessions_revoked": revoked},
        )
        return True

    def _register_device(self, user_id: int, device_token: str, platform: str) -> None:
        """Upsert device: refresh last activity if known, else create."""
        now = now_utc()
        existing = self._auth_db.get_user_device(user_id, device_token)

        if existing is not None:
            existing.last_active_at = now
            existing.platform = platform
            self._auth_db.update_user_device(existing)
            return

        self._auth_db.create_user_device(
            UserDevice(
                user_id=user_id,
                device_token=device_token,
                platform=platform,
                last_active_at=now,
                created_at=now,
            )
        )
        self._security_logger.log(
            SecurityEvent.DEVICE_REGISTERED,
            user_id=user_id,
            details={"platform": platform},
        )
