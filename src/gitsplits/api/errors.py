"""Map domain errors onto HTTP status codes and a consistent payload."""

from __future__ import annotations

from fastapi import HTTPException, status

from gitsplits.errors import (
    CollaboratorUnavailable,
    ConfigurationError,
    GitSplitsError,
    PaymentEngineFailure,
    PlanExpired,
    PlanMismatch,
    PolicyDenied,
    SafetyBlocked,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[GitSplitsError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PolicyDenied, status.HTTP_403_FORBIDDEN),
    (SafetyBlocked, status.HTTP_409_CONFLICT),
    (PlanMismatch, status.HTTP_409_CONFLICT),
    (PlanExpired, status.HTTP_410_GONE),
    (CollaboratorUnavailable, status.HTTP_502_BAD_GATEWAY),
    (PaymentEngineFailure, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(err: GitSplitsError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(err, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def to_http_exception(err: GitSplitsError) -> HTTPException:
    """Convert a GitSplitsError to an HTTPException with the shared payload."""
    return HTTPException(
        status_code=status_for(err),
        detail={"error": err.error, "detail": err.message},
    )
