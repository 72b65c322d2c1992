"""List view payloads (employees, payslip batches)."""

from datetime import datetime

from pydantic import Field

from payslip_portal.jobs.models import WireModel


class PaginationMeta(WireModel):
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0


class EmployeeRead(WireModel):
    id: int
    first_name: str
    last_name: str
    email: str
    ippis_number: str
    department: str | None = None
    position: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EmployeeWrite(WireModel):
    """Fields accepted when creating or editing an employee; unset fields are not sent."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    ippis_number: str | None = None
    department: str | None = None
    position: str | None = None


class EmployeeListResponse(WireModel):
    items: list[EmployeeRead]
    meta: PaginationMeta | None = None


class PayslipBatchRead(WireModel):
    id: int
    uuid: str
    file_name: str | None = None
    pay_month: str
    total_files: int = 0
    processed_files: int = 0
    success_count: int = 0
    failure_count: int = 0
    status: str = Field("pending", description="pending|processing|processed|failed|completed")
    email_status: str = Field("pending", description="pending|sending|completed|partial|failed")
    sent_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class PayslipBatchListResponse(WireModel):
    items: list[PayslipBatchRead]
    meta: PaginationMeta | None = None
