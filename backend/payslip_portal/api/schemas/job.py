"""Upload surface payloads returned to the dashboard."""

from pydantic import BaseModel, Field

from payslip_portal.jobs.models import Job, Notice


class JobStatus(BaseModel):
    surface: str = Field(..., description="e.g. employees.bulk_upload, payslips.batch_send:<id>")
    kind: str = Field(..., description="employee_bulk_upload|payslip_batch_upload|batch_email_send")
    job_id: str | None = None
    state: str | None = Field(None, description="queued|processing|completed|failed")
    progress: int = Field(0, description="0-100 range for UI progress bars")
    detail: str | None = Field(None, description="e.g. 'processing: 5 of 10'")
    message: str | None = None
    notice: Notice | None = None
    failed_reason: str | None = None
    is_processing: bool = False
    can_retry: bool = False
    job: Job | None = None
