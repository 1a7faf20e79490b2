"""Shared helpers for API route modules."""

from fastapi import HTTPException

from rate_anybody.errors import (
    ConfigurationError,
    IndexUnavailableError,
    InsufficientFundsError,
    NetworkError,
    RateAnybodyError,
    SubmissionCancelled,
    ValidationError,
)


def status_for_error(error: RateAnybodyError) -> int:
    """Map a failure to the HTTP status the service reports for it."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, InsufficientFundsError):
        return 402
    if isinstance(error, SubmissionCancelled):
        return 409
    if isinstance(error, IndexUnavailableError | ConfigurationError):
        return 503
    if isinstance(error, NetworkError):
        return 502
    return 500


def http_error(error: RateAnybodyError) -> HTTPException:
    """Convert a failure into an HTTPException carrying its message."""
    return HTTPException(status_code=status_for_error(error), detail=str(error))
