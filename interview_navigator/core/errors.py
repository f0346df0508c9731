"""Error taxonomy for the scheduling core.

Every error is an ``HTTPException`` so services can raise them directly and
FastAPI renders them with the matching status code. Callers outside a request
(jobs, tests) catch them like any other exception.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class SchedulingError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class ValidationError(SchedulingError):
    """Malformed input. Always raised before anything is written."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(SchedulingError):
    """Requested time is taken, or the booking can no longer move to the requested state."""

    status_code = status.HTTP_409_CONFLICT


class DependencyError(SchedulingError):
    """Store or collaborator failure. Retryable at the caller's discretion."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
