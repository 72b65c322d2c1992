"""Job kinds: how each upload flow submits, polls and reports its result.

The payroll API reuses one status protocol for three flows but names the
non-terminal states differently per flow. Each ``JobKind`` carries the
mapping from its wire vocabulary onto ``JobState`` so that nothing above this
module ever looks at a raw wire string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from payslip_portal.core.config import Settings
from payslip_portal.core.errors import (
    ApiError,
    NetworkError,
    PollTransportError,
    get_error_message,
)
from payslip_portal.jobs.models import (
    BatchSendPayload,
    BatchSendResult,
    BulkUploadResult,
    Job,
    JobState,
    PayslipUploadResult,
    StructuredProgress,
    UploadPayload,
)
from payslip_portal.jobs.poller import STATUS_CHECK_FAILED
from payslip_portal.services.api_client import PayrollApiClient
from payslip_portal.utils.upload_validator import (
    validate_batch_send,
    validate_employee_workbook,
    validate_payslip_archive,
)

UNKNOWN_FAILURE = "Unknown error occurred"

UPLOAD_STATES: Mapping[str, JobState] = {
    "queued": JobState.QUEUED,
    "waiting": JobState.QUEUED,
    "processing": JobState.PROCESSING,
    "parsing": JobState.PROCESSING,
    "active": JobState.PROCESSING,
    "completed": JobState.COMPLETED,
    "failed": JobState.FAILED,
}

SEND_STATES: Mapping[str, JobState] = {
    "waiting": JobState.QUEUED,
    "queued": JobState.QUEUED,
    "active": JobState.PROCESSING,
    "processing": JobState.PROCESSING,
    "completed": JobState.COMPLETED,
    "failed": JobState.FAILED,
}


class StatusPayloadError(ValueError):
    """A status response could not be understood."""


@dataclass(frozen=True)
class JobKind:
    name: str
    label: str
    state_map: Mapping[str, JobState]
    result_model: type[BaseModel]
    submit: Callable[[PayrollApiClient, Any], Awaitable[dict[str, Any]]]
    fetch_status: Callable[[PayrollApiClient, str], Awaitable[dict[str, Any]]]
    validate: Callable[[Any, Settings], None]
    invalidates: tuple[str, ...] = field(default_factory=tuple)

    def adapt_state(self, wire_state: Any) -> JobState:
        key = str(wire_state).strip().lower() if wire_state is not None else ""
        try:
            return self.state_map[key]
        except KeyError:
            raise StatusPayloadError(
                f"Unknown {self.label} job state: {wire_state!r}"
            ) from None

    def parse_status(self, job_id: str, payload: Any) -> Job:
        """Turn a raw status response into a canonical ``Job``."""
        if not isinstance(payload, Mapping):
            raise StatusPayloadError(f"Malformed status response for job {job_id}")

        state = self.adapt_state(payload.get("state"))
        try:
            progress = _parse_progress(payload.get("progress"))
            result = None
            if state is JobState.COMPLETED and payload.get("result") is not None:
                result = self.result_model.model_validate(payload["result"])
        except PydanticValidationError as exc:
            raise StatusPayloadError(
                f"Malformed status response for job {job_id}: {exc.errors()[0]['msg']}"
            ) from exc

        failed_reason = None
        if state is JobState.FAILED:
            failed_reason = payload.get("failedReason") or UNKNOWN_FAILURE

        return Job(
            job_id=job_id,
            kind=self.name,
            state=state,
            progress=progress,
            result=result,
            failed_reason=failed_reason,
        )

    async def check_status(self, client: PayrollApiClient, job_id: str) -> Job:
        """Fetch and parse one status response; raises ``PollTransportError``."""
        try:
            raw = await self.fetch_status(client, job_id)
            return self.parse_status(job_id, raw)
        except (ApiError, NetworkError, StatusPayloadError) as exc:
            raise PollTransportError(
                job_id, get_error_message(exc, STATUS_CHECK_FAILED)
            ) from exc


def _parse_progress(raw: Any) -> int | float | StructuredProgress | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, Mapping):
        return StructuredProgress.model_validate(raw)
    raise StatusPayloadError(f"Unsupported progress payload: {raw!r}")


def _validate_employee_upload(payload: UploadPayload, settings: Settings) -> None:
    validate_employee_workbook(payload, settings.employee_upload_max_bytes)


def _validate_payslip_upload(payload: UploadPayload, settings: Settings) -> None:
    validate_payslip_archive(payload, settings.payslip_upload_max_bytes)


def _validate_batch_send(payload: BatchSendPayload, settings: Settings) -> None:
    validate_batch_send(payload)


async def _submit_batch_send(client: PayrollApiClient, payload: BatchSendPayload) -> dict[str, Any]:
    return await client.send_batch(payload.batch_id.strip())


EMPLOYEE_BULK_UPLOAD = JobKind(
    name="employee_bulk_upload",
    label="employee bulk upload",
    state_map=UPLOAD_STATES,
    result_model=BulkUploadResult,
    submit=PayrollApiClient.bulk_upload_employees,
    fetch_status=PayrollApiClient.get_bulk_upload_status,
    validate=_validate_employee_upload,
    invalidates=("employees",),
)

PAYSLIP_BATCH_UPLOAD = JobKind(
    name="payslip_batch_upload",
    label="payslip batch upload",
    state_map=UPLOAD_STATES,
    result_model=PayslipUploadResult,
    submit=PayrollApiClient.upload_payslip_batch,
    fetch_status=PayrollApiClient.get_payslip_upload_status,
    validate=_validate_payslip_upload,
    invalidates=("payslip-batches",),
)

BATCH_EMAIL_SEND = JobKind(
    name="batch_email_send",
    label="batch email send",
    state_map=SEND_STATES,
    result_model=BatchSendResult,
    submit=_submit_batch_send,
    fetch_status=PayrollApiClient.get_send_batch_job_status,
    validate=_validate_batch_send,
    invalidates=("payslip-batches",),
)

JOB_KINDS: dict[str, JobKind] = {
    kind.name: kind
    for kind in (EMPLOYEE_BULK_UPLOAD, PAYSLIP_BATCH_UPLOAD, BATCH_EMAIL_SEND)
}
