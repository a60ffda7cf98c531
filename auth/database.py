"""Database operations for authentication.

Tables: users, user_sessions, user_devices.
Record-level reads and writes only; flow decisions live in AuthService.
"""

from datetime import datetime

from psycopg2 import errors as pg_errors

from clients.postgres_client import PostgresClient
from auth.exceptions import DuplicateEmailError
from auth.types import NewUser, User, UserDevice, UserSession
from utils.timezone import now_utc

_USER_COLUMNS = """id, email, password_hash, password_salt, first_name, last_name,
    is_email_verified, email_verification_token, password_reset_token,
    password_reset_token_expiry, created_at, updated_at, last_login_at"""

_SESSION_COLUMNS = "id, user_id, refresh_token, expires_at, created_at, revoked_at, device_info"

_DEVICE_COLUMNS = "id, user_id, device_token, platform, device_name, last_active_at, created_at"

_INSERT_USER = f"""INSERT INTO users (email, password_hash, password_salt, first_name,
        last_name, is_email_verified, email_verification_token, created_at, updated_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING {_USER_COLUMNS}"""

_INSERT_SESSION = f"""INSERT INTO user_sessions (user_id, refresh_token, expires_at, created_at, device_info)
    VALUES (%s, %s, %s, %s, %s)
    RETURNING {_SESSION_COLUMNS}"""


def _user_params(user: NewUser, now: datetime) -> tuple:
    return (
        user.email,
        user.password_hash,
        user.password_salt,
        user.first_name,
        user.last_name,
        user.is_email_verified,
        user.email_verification_token,
        now,
        now,
    )


def _session_params(session: UserSession) -> tuple:
    return (
        session.user_id,
        session.refresh_token,
        session.expires_at,
        session.created_at,
        session.device_info,
    )


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    # === Users ===

    def user_exists_by_email(self, email: str) -> bool:
        """True if a user with this exact email exists."""
        row = self._db.execute_single(
            "SELECT 1 AS found FROM users WHERE email = %s",
            (email,),
        )
        return row is not None

    def get_user_by_email(self, email: str) -> User | None:
        """Find user by email."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s",
            (email,),
        )
        return User.model_validate(row) if row else None

    def get_user_by_id(self, user_id: int) -> User | None:
        """Find user by ID."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,),
        )
        return User.model_validate(row) if row else None

    def get_user_by_verification_token(self, token: str) -> User | None:
        """Find the user holding an unconsumed email-verification token."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email_verification_token = %s",
            (token,),
        )
        return User.model_validate(row) if row else None

    def get_user_by_password_reset_token(self, token: str) -> User | None:
        """Find the user holding this reset token, only while it is unexpired."""
        row = self._db.execute_single(
            f"""SELECT {_USER_COLUMNS} FROM users
                WHERE password_reset_token = %s AND password_reset_token_expiry > %s""",
            (token, now_utc()),
        )
        return User.model_validate(row) if row else None

    def create_user(self, user: NewUser) -> User:
        """Insert a user.

        Raises:
            DuplicateEmailError: If the email is already taken
        """
        try:
            rows = self._db.execute_returning(_INSERT_USER, _user_params(user, now_utc()))
        except pg_errors.UniqueViolation:
            raise DuplicateEmailError("User with this email already exists")
        return User.model_validate(rows[0])

    def create_user_with_session(
        self,
        user: NewUser,
        refresh_token: str,
        expires_at: datetime,
    ) -> tuple[User, UserSession]:
        """Insert a user and its first refresh session in one transaction.

        Either both rows exist afterwards or neither does.

        Raises:
            DuplicateEmailError: If the email is already taken
        """
        now = now_utc()
        try:
            with self._db.transaction() as cur:
                cur.execute(_INSERT_USER, _user_params(user, now))
                created = User.model_validate(dict(cur.fetchone()))
                session = UserSession(
                    user_id=created.id,
                    refresh_token=refresh_token,
                    expires_at=expires_at,
                    created_at=now,
                )
                cur.execute(_INSERT_SESSION, _session_params(session))
                stored = UserSession.model_validate(dict(cur.fetchone()))
        except pg_errors.UniqueViolation:
            raise DuplicateEmailError("User with this email already exists")
        return created, stored

    def update_user(self, user: User) -> None:
        """Write back every mutable user field and bump updated_at."""
        self._db.execute_returning(
            """UPDATE users SET
                   email = %s, password_hash = %s, password_salt = %s,
                   first_name = %s, last_name = %s, is_email_verified = %s,
                   email_verification_token = %s, password_reset_token = %s,
                   password_reset_token_expiry = %s, last_login_at = %s,
                   updated_at = %s
               WHERE id = %s
               RETURNING id""",
            (
                user.email,
                user.password_hash,
                user.password_salt,
                user.first_name,
                user.last_name,
                user.is_email_verified,
                user.email_verification_token,
                user.password_reset_token,
                user.password_reset_token_expiry,
                user.last_login_at,
                now_utc(),
                user.id,
            ),
        )

    # === Sessions ===

    def get_active_session_by_refresh_token(self, refresh_token: str) -> UserSession | None:
        """Find an unrevoked, unexpired session by refresh token."""
        row = self._db.execute_single(
            f"""SELECT {_SESSION_COLUMNS} FROM user_sessions
                WHERE refresh_token = %s AND revoked_at IS NULL AND expires_at > %s""",
            (refresh_token, now_utc()),
        )
        return UserSession.model_validate(row) if row else None

    def get_session_by_user_and_token(self, user_id: int, refresh_token: str) -> UserSession | None:
        """Find a session by owner and refresh token, whatever its state."""
        row = self._db.execute_single(
            f"""SELECT {_SESSION_COLUMNS} FROM user_sessions
                WHERE user_id = %s AND refresh_token = %s""",
            (user_id, refresh_token),
        )
        return UserSession.model_validate(row) if row else None

    def create_session(self, session: UserSession) -> UserSession:
        """Insert a refresh session."""
        rows = self._db.execute_returning(_INSERT_SESSION, _session_params(session))
        return UserSession.model_validate(rows[0])

    def update_session(self, session: UserSession) -> None:
        """Write back session expiry and revocation."""
        self._db.execute_returning(
            """UPDATE user_sessions SET expires_at = %s, revoked_at = %s
               WHERE id = %s
               RETURNING id""",
            (session.expires_at, session.revoked_at, session.id),
        )

    def rotate_session(
        self,
        refresh_token: str,
        new_refresh_token: str,
        new_expires_at: datetime,
    ) -> tuple[UserSession, UserSession] | None:
        """Revoke the session for refresh_token and create its replacement.

        The presented row is locked with FOR UPDATE for the whole
        transaction, so a concurrent rotation of the same token waits and
        then finds it revoked.

        Returns:
            (revoked_session, new_session), or None if the token is not active.
        """
        now = now_utc()
        with self._db.transaction() as cur:
            cur.execute(
                f"""SELECT {_SESSION_COLUMNS} FROM user_sessions
                    WHERE refresh_token = %s
                    FOR UPDATE""",
                (refresh_token,),
            )
            row = cur.fetchone()
            if row is None:
                return None

            current = UserSession.model_validate(dict(row))
            if not current.is_active(now):
                return None

            cur.execute(
                "UPDATE user_sessions SET revoked_at = %s WHERE id = %s",
                (now, current.id),
            )
            revoked = current.model_copy(update={"revoked_at": now})

            replacement = UserSession(
                user_id=current.user_id,
                refresh_token=new_refresh_token,
                expires_at=new_expires_at,
                created_at=now,
                device_info=current.device_info,
            )
            cur.execute(_INSERT_SESSION, _session_params(replacement))
            created = UserSession.model_validate(dict(cur.fetchone()))

        return revoked, created

    def revoke_user_sessions(self, user_id: int) -> int:
        """Revoke every active session of a user. Returns count revoked."""
        rows = self._db.execute_returning(
            """UPDATE user_sessions SET revoked_at = %s
               WHERE user_id = %s AND revoked_at IS NULL
               RETURNING id""",
            (now_utc(), user_id),
        )
        return len(rows)

    # === Devices ===

    def get_user_device(self, user_id: int, device_token: str) -> UserDevice | None:
        """Find a registered device by owner and push token."""
        row = self._db.execute_single(
            f"""SELECT {_DEVICE_COLUMNS} FROM user_devices
                WHERE user_id = %s AND device_token = %s""",
            (user_id, device_token),
        )
        return UserDevice.model_validate(row) if row else None

    def create_user_device(self, device: UserDevice) -> UserDevice:
        """Insert a device registration."""
        rows = self._db.execute_returning(
            f"""INSERT INTO user_devices
                   (user_id, device_token, platform, device_name, last_active_at, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {_DEVICE_COLUMNS}""",
            (
                device.user_id,
                device.device_token,
                device.platform,
                device.device_name,
                device.last_active_at,
                device.created_at,
            ),
        )
        return UserDevice.model_validate(rows[0])

    def update_user_device(self, device: UserDevice) -> None:
        """Write back platform, name, and last activity."""
        self._db.execute_returning(
            """UPDATE user_devices SET platform = %s, device_name = %s, last_active_at = %s
               WHERE id = %s
               RETURNING id""",
            (device.platform, device.device_name, device.last_active_at, device.id),
        )
