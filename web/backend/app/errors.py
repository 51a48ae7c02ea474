"""Map anonboard errors onto HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from anonboard.errors import (
    AccountBannedError,
    AnonBoardError,
    BanPropagationError,
    ConfigurationError,
    ConflictError,
    ForbiddenActionError,
    IntegrityError,
    NotFoundError,
    PollClosedError,
)

# Checked in order; subclasses first.
_STATUS_MAP: list[tuple[type[AnonBoardError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AccountBannedError, status.HTTP_403_FORBIDDEN),
    (ForbiddenActionError, status.HTTP_403_FORBIDDEN),
    (PollClosedError, status.HTTP_400_BAD_REQUEST),
    (BanPropagationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def http_error(exc: Exception) -> HTTPException:
    """Convert a domain exception (or ``ValueError``) to an ``HTTPException``."""
    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, IntegrityError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Identity verification failed; requires investigation: {exc}",
        )
    for exc_type, code in _STATUS_MAP:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
