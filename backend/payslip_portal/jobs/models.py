"""Job tracking data model shared by every upload surface."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for payloads exchanged with the payroll API (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class JobState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED})


class StructuredProgress(WireModel):
    stage: str = "processing"
    processed: int = 0
    total: int = 0
    percentage: float = 0


class BulkUploadRowError(WireModel):
    row: int | None = None
    field: str | None = None
    message: str
    value: Any = None


class BulkUploadResult(WireModel):
    """Outcome of an employee bulk upload."""

    total_records: int = 0
    success_count: int = 0
    failure_count: int = 0
    errors: list[BulkUploadRowError] = Field(default_factory=list)


class PayslipUploadResult(WireModel):
    """Outcome of a payslip batch upload."""

    upload_id: int | None = None
    batch_id: str | None = None
    processed_files: int = 0
    failed_files: int = 0
    total_files: int = 0
    pay_month: str | None = None


class BatchSendResult(WireModel):
    """Outcome of a payslip batch e-mail send."""

    batch_id: str | None = None
    pay_month: str | None = None
    total_payslips: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    email_status: str | None = None
    message: str | None = None
    sent_at: datetime | None = None
    completed_at: datetime | None = None


JobResult = Union[BulkUploadResult, PayslipUploadResult, BatchSendResult]


class Job(WireModel):
    """One tracked asynchronous backend operation.

    Only poll responses produce new ``Job`` values; the client never moves a
    job between states on its own.
    """

    job_id: str
    kind: str | None = None
    state: JobState
    progress: int | float | StructuredProgress | None = None
    result: JobResult | None = None
    failed_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal


class ProgressView(BaseModel):
    percentage: int = 0
    detail_text: str | None = None


class Notice(BaseModel):
    """A user-facing message (the dashboard renders these as toasts)."""

    level: Literal["success", "error", "info"]
    message: str


class SubmissionReceipt(BaseModel):
    job_id: str
    message: str


class SurfaceState(BaseModel):
    """What an upload surface currently shows."""

    key: str
    kind: str
    job: Job | None = None
    progress: ProgressView = Field(default_factory=ProgressView)
    notice: Notice | None = None
    message: str | None = None
    is_processing: bool = False
    can_retry: bool = False


@dataclass(frozen=True)
class UploadPayload:
    """A file picked on an upload surface, plus kind-specific metadata."""

    filename: str
    content: bytes
    content_type: str | None = None
    pay_month: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class BatchSendPayload:
    batch_id: str
