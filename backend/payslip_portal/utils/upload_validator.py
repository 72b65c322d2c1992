"""Validate upload files and form fields before they reach the payroll API."""

from __future__ import annotations

import re
from pathlib import Path

from payslip_portal.jobs.models import BatchSendPayload, UploadPayload


class UploadValidationError(ValueError):
    """Custom exception for rejected uploads."""

    pass


EXCEL_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
PAYSLIP_EXTENSIONS = {".pdf", ".zip"}
PAY_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _megabytes(limit: int) -> str:
    return f"{limit // (1024 * 1024)}MB"


def _check_size(payload: UploadPayload, max_bytes: int) -> None:
    if payload.size == 0:
        raise UploadValidationError("Uploaded file is empty")
    if payload.size > max_bytes:
        raise UploadValidationError(f"File size must be less than {_megabytes(max_bytes)}")


def validate_employee_workbook(payload: UploadPayload, max_bytes: int) -> None:
    """Employee bulk uploads must be Excel workbooks."""
    if not payload.filename:
        raise UploadValidationError("Please select a file first")
    suffix = Path(payload.filename).suffix.lower()
    content_type = (payload.content_type or "").lower()
    if content_type not in EXCEL_MIME_TYPES and suffix not in EXCEL_EXTENSIONS:
        raise UploadValidationError("Please upload a valid Excel file (.xlsx or .xls)")
    _check_size(payload, max_bytes)


def validate_payslip_archive(payload: UploadPayload, max_bytes: int) -> None:
    """Payslip batches are a single PDF or a ZIP of PDFs, tagged with a pay month."""
    if not payload.filename:
        raise UploadValidationError("Please select a file")
    suffix = Path(payload.filename).suffix.lower()
    content_type = (payload.content_type or "").lower()
    if "pdf" not in content_type and "zip" not in content_type and suffix not in PAYSLIP_EXTENSIONS:
        raise UploadValidationError("Please upload a PDF or ZIP file")
    _check_size(payload, max_bytes)
    validate_pay_month(payload.pay_month)


def validate_pay_month(value: str | None) -> str:
    if not value or not value.strip():
        raise UploadValidationError("Please select pay month")
    value = value.strip()
    if not PAY_MONTH_PATTERN.match(value):
        raise UploadValidationError("Pay month must use the YYYY-MM format")
    return value


def validate_batch_send(payload: BatchSendPayload) -> None:
    if not payload.batch_id or not payload.batch_id.strip():
        raise UploadValidationError("A batch must be selected before sending")
