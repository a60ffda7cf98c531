"""Access and refresh token issuing.

Access tokens are HS256 JWTs with a one hour lifetime by default.
Refresh tokens are opaque random strings; revoking one only needs a
store lookup, never token introspection.
"""

import base64
import logging
import secrets
from datetime import timedelta
from uuid import uuid4

import jwt
from pydantic import ValidationError

from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError, TokenConfigError
from auth.types import AccessTokenClaims, User
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class TokenService:
    """Issue and validate credentials."""

    ALGORITHM = "HS256"
    REFRESH_TOKEN_BYTES = 64
    REQUIRED_CLAIMS = ["sub", "email", "jti", "iat", "exp", "iss", "aud"]

    def __init__(self, signing_key: str | None, config: AuthConfig):
        """
        Args:
            signing_key: Symmetric HMAC key for access tokens
            config: Issuer, audience, and lifetime settings

        Raises:
            TokenConfigError: If the signing key is missing or empty
        """
        if not signing_key:
            raise TokenConfigError("Access token signing key is not configured")
        self._key = signing_key
        self._config = config

    def issue_access_token(self, user: User) -> str:
        """Sign an access token for user."""
        now = now_utc()
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "is_email_verified": user.is_email_verified,
            "jti": str(uuid4()),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self._config.access_token_expiry_minutes)).timestamp()),
            "iss": self._config.jwt_issuer,
            "aud": self._config.jwt_audience,
        }
        return jwt.encode(claims, self._key, algorithm=self.ALGORITHM)

    def issue_refresh_token(self) -> str:
        """64 random bytes, base64 encoded. Carries no claims."""
        return base64.b64encode(secrets.token_bytes(self.REFRESH_TOKEN_BYTES)).decode("ascii")

    def validate_access_token(self, token: str) -> AccessTokenClaims:
        """Verify signature, issuer, audience, and expiry.

        Raises:
            InvalidTokenError: On any verification failure
        """
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[self.ALGORITHM],
                issuer=self._config.jwt_issuer,
                audience=self._config.jwt_audience,
                options={"require": self.REQUIRED_CLAIMS},
            )
            return AccessTokenClaims.model_validate(payload)
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Access token has expired")
        except (jwt.InvalidTokenError, ValidationError) as e:
            logger.debug(f"Access token rejected: {e}")
            raise InvalidTokenError("Invalid access token")
