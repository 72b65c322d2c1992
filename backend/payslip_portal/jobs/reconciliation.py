"""Apply a finished job's outcome: user notice plus list-view invalidation."""

from __future__ import annotations

import logging
from typing import Callable

from payslip_portal.jobs.kinds import (
    BATCH_EMAIL_SEND,
    EMPLOYEE_BULK_UPLOAD,
    PAYSLIP_BATCH_UPLOAD,
    UNKNOWN_FAILURE,
    JobKind,
)
from payslip_portal.jobs.models import (
    BatchSendResult,
    BulkUploadResult,
    Job,
    JobResult,
    JobState,
    Notice,
    PayslipUploadResult,
)
from payslip_portal.services.list_cache import ListCache

logger = logging.getLogger(__name__)


def bulk_upload_notice(result: JobResult | None) -> Notice:
    if not isinstance(result, BulkUploadResult):
        return Notice(level="success", message="Employee upload completed")
    if result.failure_count == 0:
        return Notice(
            level="success",
            message=f"Successfully uploaded {result.success_count} employees!",
        )
    return Notice(
        level="error",
        message=(
            f"Upload completed with {result.failure_count} errors. "
            "Check the results below."
        ),
    )


def payslip_upload_notice(result: JobResult | None) -> Notice:
    if not isinstance(result, PayslipUploadResult) or result.failed_files == 0:
        return Notice(level="success", message="Payslips uploaded successfully!")
    return Notice(
        level="error",
        message=(
            f"Uploaded {result.processed_files} of {result.total_files} payslip files; "
            f"{result.failed_files} failed."
        ),
    )


def batch_send_notice(result: JobResult | None) -> Notice:
    if isinstance(result, BatchSendResult) and result.message:
        logger.info(f"Batch {result.batch_id} send finished: {result.message}")
    return Notice(level="success", message="All emails sent successfully!")


COMPLETION_NOTICES: dict[str, Callable[[JobResult | None], Notice]] = {
    EMPLOYEE_BULK_UPLOAD.name: bulk_upload_notice,
    PAYSLIP_BATCH_UPLOAD.name: payslip_upload_notice,
    BATCH_EMAIL_SEND.name: batch_send_notice,
}


class Reconciler:
    """Runs at most once per (kind, job id), and only for terminal jobs.

    Each job queue numbers its own jobs, so ids are only unique within a kind.
    Owners call ``forget`` when they drop a job, which keeps the record of
    reconciled jobs limited to jobs still on display.
    """

    def __init__(self, cache: ListCache | None = None) -> None:
        self._cache = cache
        self._reconciled: set[tuple[str, str]] = set()

    def reconcile(self, job: Job, kind: JobKind) -> Notice | None:
        if not job.is_terminal:
            return None
        token = (kind.name, job.job_id)
        if token in self._reconciled:
            logger.debug(
                f"{kind.label.capitalize()} job {job.job_id} already reconciled; ignoring duplicate"
            )
            return None
        self._reconciled.add(token)

        if job.state is JobState.FAILED:
            reason = job.failed_reason or UNKNOWN_FAILURE
            logger.warning(f"{kind.label.capitalize()} job {job.job_id} failed: {reason}")
            return Notice(level="error", message=reason)

        notice = COMPLETION_NOTICES[kind.name](job.result)
        if self._cache is not None:
            for collection in kind.invalidates:
                self._cache.invalidate(collection)
        return notice

    def forget(self, kind: JobKind, job_id: str) -> None:
        self._reconciled.discard((kind.name, job_id))
