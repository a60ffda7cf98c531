"""Unified API error format.

Success bodies follow each endpoint's own contract. Every error body,
whatever raised it, has the same problem-details shape.
"""

from http import HTTPStatus

from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse


class ProblemDetails(BaseModel):
    """Error body returned by every endpoint."""

    status: int = Field(..., description="HTTP status code")
    title: str = Field(..., description="Short summary of the status")
    detail: str = Field(..., description="Human-readable, safe to show users")
    instance: str = Field(..., description="Request path that failed")
    code: str = Field(..., description="Machine-readable error code")
    request_id: str | None = Field(None, serialization_alias="requestId")


def error_response(
    status: int,
    code: str,
    detail: str,
    instance: str,
    request_id: str | None = None,
) -> ProblemDetails:
    """Create an error body."""
    return ProblemDetails(
        status=status,
        title=HTTPStatus(status).phrase,
        detail=detail,
        instance=instance,
        code=code,
        request_id=request_id,
    )


def error_json(request: Request, status: int, code: str, detail: str) -> JSONResponse:
    """Render an error body for request as a JSON response."""
    body = error_response(
        status,
        code,
        detail,
        instance=request.url.path,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=status,
        content=body.model_dump(mode="json", by_alias=True),
        media_type="application/problem+json",
    )


class ErrorCodes:
    """
    Standard error codes for consistent error handling.

    Clients branch on these, never on the detail text.
    """

    # Authentication & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"

    # Accounts
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    REGISTRATION_FAILED = "REGISTRATION_FAILED"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"

    # Audio intake
    NO_FILE_PROVIDED = "NO_FILE_PROVIDED"
    UNSUPPORTED_CONTENT_TYPE = "UNSUPPORTED_CONTENT_TYPE"
    AUDIO_TOO_LARGE = "AUDIO_TOO_LARGE"
    TRANSCRIPTION_UNAVAILABLE = "TRANSCRIPTION_UNAVAILABLE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
