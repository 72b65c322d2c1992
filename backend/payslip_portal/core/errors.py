"""Error taxonomy shared by the API client, job tracking and routers."""

from __future__ import annotations


class PortalError(Exception):
    """Base class for errors raised by the portal."""


class ApiError(PortalError):
    """The payroll API answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthenticationError(ApiError):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, 401, "UNAUTHENTICATED")


class AuthorizationError(ApiError):
    def __init__(
        self, message: str = "You do not have permission to perform this action"
    ) -> None:
        super().__init__(message, 403, "FORBIDDEN")


class ValidationError(ApiError):
    def __init__(
        self,
        message: str = "Validation failed",
        fields: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, 400, "VALIDATION_ERROR")
        self.fields = fields or {}


class NotFoundError(ApiError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, 404, "NOT_FOUND")


class NetworkError(PortalError):
    """The payroll API could not be reached or returned unreadable data."""

    def __init__(self, message: str = "Network request failed") -> None:
        super().__init__(message)
        self.message = message


class SubmissionError(PortalError):
    """A job could not be submitted; no job exists afterwards."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class JobFailed(PortalError):
    """The backend reported a tracked job as failed."""

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(reason)
        self.job_id = job_id
        self.reason = reason


class PollTransportError(PortalError):
    """A status check for a tracked job could not be completed."""

    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.message = message


def get_error_message(error: object, fallback: str = "An unexpected error occurred") -> str:
    """Best human-readable message for any raised object."""
    if isinstance(error, (ApiError, NetworkError, SubmissionError, PollTransportError)):
        return error.message or fallback
    if isinstance(error, JobFailed):
        return error.reason or fallback
    if isinstance(error, BaseException):
        return str(error) or fallback
    if isinstance(error, str):
        return error or fallback
    return fallback
