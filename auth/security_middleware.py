"""Security middleware for FastAPI - bearer token validation."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from auth.exceptions import InvalidTokenError, UnauthorizedError
from auth.tokens import TokenService
from auth.types import AccessTokenClaims
from api.base import error_json, ErrorCodes

logger = logging.getLogger(__name__)


def current_claims(request: Request) -> AccessTokenClaims:
    """Claims AuthMiddleware attached to the request.

    Raises:
        UnauthorizedError: If the request was not authenticated
    """
    claims = getattr(request.state, "claims", None)
    if claims is None:
        raise UnauthorizedError("Authentication required")
    return claims


def current_user_id(request: Request) -> int:
    """Id of the authenticated user. Raises UnauthorizedError if there is none."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        raise UnauthorizedError("Authentication required")
    return user_id


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the access token on protected routes.

    For protected routes:
    1. Extracts the token from 'Authorization: Bearer <token>'
    2. Validates signature, issuer, audience and expiry via TokenService
    3. Sets user_id and claims in request.state

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/auth/register",
        "/auth/login",
        "/auth/refresh",
        "/auth/logout",
        "/auth/verify-email",
        "/auth/forgot-password",
        "/auth/reset-password",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, tokens: TokenService):
        super().__init__(app)
        self._tokens = tokens

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        return path in self.PUBLIC_PATHS

    @staticmethod
    def _bearer_token(request: Request) -> str | None:
        header = request.headers.get("Authorization")
        if not header:
            return None
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        if request.method == "OPTIONS" or self._is_public_path(request.url.path):
            return await call_next(request)

        token = self._bearer_token(request)
        if token is None:
            return error_json(
                request, 401, ErrorCodes.NOT_AUTHENTICATED, "Authentication required"
            )

        try:
            claims = self._tokens.validate_access_token(token)
            user_id = claims.user_id
        except (InvalidTokenError, ValueError):
            logger.info(f"Rejected access token on {request.url.path}")
            return error_json(
                request, 401, ErrorCodes.INVALID_TOKEN, "Invalid or expired access token"
            )

        request.state.user_id = user_id
        request.state.claims = claims
        return await call_next(request)
