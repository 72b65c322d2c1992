"""Submit uploads and batch sends, returning the backend's job identifier."""

from __future__ import annotations

import logging
from typing import Any

from payslip_portal.core.config import Settings, get_settings
from payslip_portal.core.errors import ApiError, NetworkError, SubmissionError
from payslip_portal.jobs.kinds import JobKind
from payslip_portal.jobs.models import SubmissionReceipt
from payslip_portal.services.api_client import PayrollApiClient
from payslip_portal.utils.upload_validator import UploadValidationError

logger = logging.getLogger(__name__)


async def submit(
    kind: JobKind,
    payload: Any,
    *,
    client: PayrollApiClient,
    settings: Settings | None = None,
) -> SubmissionReceipt:
    """Validate locally, then hand the payload to the payroll API.

    Returns as soon as the backend has accepted the work. Every rejection
    raises ``SubmissionError``; in that case no job exists.
    """
    settings = settings or get_settings()

    try:
        kind.validate(payload, settings)
    except UploadValidationError as exc:
        raise SubmissionError(str(exc)) from exc

    try:
        data = await kind.submit(client, payload)
    except ApiError as exc:
        logger.warning(f"Payroll API rejected {kind.label}: {exc.message}")
        raise SubmissionError(exc.message, status_code=exc.status_code) from exc
    except NetworkError as exc:
        logger.error(f"Could not reach payroll API for {kind.label}: {exc.message}")
        raise SubmissionError(exc.message, status_code=502) from exc

    job_id = data.get("jobId") if isinstance(data, dict) else None
    if not job_id:
        raise SubmissionError(
            f"Payroll API did not return a job id for the {kind.label}",
            status_code=502,
        )

    message = data.get("message") or f"{kind.label.capitalize()} queued"
    logger.info(f"Submitted {kind.label} job {job_id}")
    return SubmissionReceipt(job_id=str(job_id), message=message)
