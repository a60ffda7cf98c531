"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    RegistrationFailedError,
    UnauthorizedError,
    TokenConfigError,
)
from auth.types import (
    User,
    NewUser,
    UserSession,
    UserDevice,
    TokenPair,
    AccessTokenClaims,
)
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.tokens import TokenService
from auth.session import SessionManager
from auth.service import AuthService
from auth.security_middleware import AuthMiddleware, current_claims, current_user_id
from auth.api import create_auth_router
