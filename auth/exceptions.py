"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class DuplicateEmailError(AuthError):
    """An account with this email already exists."""


class InvalidCredentialsError(AuthError):
    """
    Email/password pair did not match.

    Raised for both unknown email and wrong password so callers cannot
    tell the two apart.
    """


class InvalidOrExpiredTokenError(AuthError):
    """Refresh token is unknown, revoked, or past its expiry."""


class InvalidTokenError(AuthError):
    """Access token failed signature, issuer, audience, or expiry checks."""


class RegistrationFailedError(AuthError):
    """Registration could not be stored. Nothing was persisted."""


class UnauthorizedError(AuthError):
    """Request carries no usable bearer token or a malformed subject claim."""


class TokenConfigError(AuthError):
    """Token signing is not configured. Fatal at startup."""
