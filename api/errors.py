"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.base import error_json, ErrorCodes
from auth.exceptions import (
    AuthError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    RegistrationFailedError,
    TokenConfigError,
    UnauthorizedError,
)
from core.exceptions import (
    AudioTooLargeError,
    ExtractionFailed,
    ExtractionTimeout,
    IntakeError,
    NoFileProvidedError,
    TranscriptionTimeout,
    TranscriptionUnavailable,
    UnsupportedContentTypeError,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases
AUTH_ERROR_MAP: list[tuple[type[AuthError], int, str]] = [
    (DuplicateEmailError, 400, ErrorCodes.DUPLICATE_EMAIL),
    (RegistrationFailedError, 400, ErrorCodes.REGISTRATION_FAILED),
    (InvalidCredentialsError, 401, ErrorCodes.INVALID_CREDENTIALS),
    (InvalidOrExpiredTokenError, 401, ErrorCodes.INVALID_OR_EXPIRED_TOKEN),
    (InvalidTokenError, 401, ErrorCodes.INVALID_TOKEN),
    (UnauthorizedError, 401, ErrorCodes.NOT_AUTHENTICATED),
]

INTAKE_ERROR_MAP: list[tuple[type[IntakeError], int, str]] = [
    (TranscriptionTimeout, 504, ErrorCodes.UPSTREAM_TIMEOUT),
    (TranscriptionUnavailable, 503, ErrorCodes.TRANSCRIPTION_UNAVAILABLE),
    (ExtractionTimeout, 504, ErrorCodes.UPSTREAM_TIMEOUT),
    (ExtractionFailed, 400, ErrorCodes.EXTRACTION_FAILED),
    (NoFileProvidedError, 400, ErrorCodes.NO_FILE_PROVIDED),
    (UnsupportedContentTypeError, 400, ErrorCodes.UNSUPPORTED_CONTENT_TYPE),
    (AudioTooLargeError, 400, ErrorCodes.AUDIO_TOO_LARGE),
]


def _lookup(exc: Exception, table: list, default: tuple[int, str]) -> tuple[int, str]:
    for exc_type, status, code in table:
        if isinstance(exc, exc_type):
            return status, code
    return default


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(TokenConfigError)
    async def token_config_error_handler(request: Request, exc: TokenConfigError):
        logger.error(f"Token configuration error: {exc}")
        return error_json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        status, code = _lookup(exc, AUTH_ERROR_MAP, (400, ErrorCodes.INVALID_REQUEST))
        return error_json(request, status, code, str(exc))

    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError):
        status, code = _lookup(exc, INTAKE_ERROR_MAP, (400, ErrorCodes.INVALID_REQUEST))
        if status >= 500:
            logger.warning(f"Upstream failure on {request.url.path}: {type(exc).__name__}")
        return error_json(request, status, code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_json(
            request,
            400,
            ErrorCodes.VALIDATION_ERROR,
            _describe_validation_errors(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            code = ErrorCodes.NOT_FOUND
        elif exc.status_code == 401:
            code = ErrorCodes.NOT_AUTHENTICATED
        else:
            code = ErrorCodes.INVALID_REQUEST
        return error_json(request, exc.status_code, code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return error_json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
