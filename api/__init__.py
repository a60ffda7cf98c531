"""API modules for HTTP interface."""

from api.base import (
    ProblemDetails,
    error_response,
    error_json,
    ErrorCodes,
)
