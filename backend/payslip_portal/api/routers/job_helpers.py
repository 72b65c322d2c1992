"""Shared helpers for shaping upload surface responses."""
from __future__ import annotations

from fastapi import HTTPException, status

from payslip_portal.api.schemas.job import JobStatus
from payslip_portal.core.errors import (
    ApiError,
    NetworkError,
    PortalError,
    SubmissionError,
    get_error_message,
)
from payslip_portal.jobs.models import SurfaceState


def serialize_surface(state: SurfaceState) -> JobStatus:
    """Flatten a surface snapshot into the payload the dashboard renders."""
    job = state.job
    return JobStatus(
        surface=state.key,
        kind=state.kind,
        job_id=job.job_id if job else None,
        state=job.state.value if job else None,
        progress=state.progress.percentage,
        detail=state.progress.detail_text,
        message=state.message,
        notice=state.notice,
        failed_reason=job.failed_reason if job else None,
        is_processing=state.is_processing,
        can_retry=state.can_retry,
        job=job,
    )


def http_error(exc: PortalError) -> HTTPException:
    """Map portal errors onto the status codes the dashboard already handles."""
    if isinstance(exc, (ApiError, SubmissionError)):
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    if isinstance(exc, NetworkError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=get_error_message(exc),
    )
