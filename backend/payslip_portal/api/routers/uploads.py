"""Endpoints for employee and payslip upload orchestration and tracking."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Response,
    UploadFile,
    status,
)

from payslip_portal.api.dependencies.clients import (
    get_api_client,
    get_owner,
    get_surfaces,
)
from payslip_portal.api.routers.job_helpers import http_error, serialize_surface
from payslip_portal.api.schemas.job import JobStatus
from payslip_portal.core.errors import ApiError, NetworkError, SubmissionError
from payslip_portal.jobs.models import UploadPayload
from payslip_portal.jobs.tracker import JobTracker
from payslip_portal.services.api_client import PayrollApiClient
from payslip_portal.services.surfaces import (
    EMPLOYEE_BULK_UPLOAD_SURFACE,
    PAYSLIP_BATCH_UPLOAD_SURFACE,
    SurfaceStore,
)

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


async def _read_upload(file: UploadFile, pay_month: str | None = None) -> UploadPayload:
    await file.seek(0)
    content = await file.read()
    return UploadPayload(
        filename=file.filename or "",
        content=content,
        content_type=file.content_type,
        pay_month=pay_month,
    )


async def submit_to_surface(
    tracker: JobTracker,
    payload: object,
    client: PayrollApiClient,
) -> JobStatus:
    """Submit through a surface and answer with its fresh snapshot."""
    try:
        await tracker.submit(payload, client)
    except SubmissionError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.error(f"Unexpected error submitting to {tracker.key}: {exc}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
        ) from exc
    return serialize_surface(tracker.snapshot())


@router.post(
    "/employees/bulk-upload",
    summary="Start an employee bulk upload",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobStatus,
)
async def start_employee_bulk_upload(
    file: UploadFile = File(...),
    client: PayrollApiClient = Depends(get_api_client),
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    """Forward the Excel workbook and begin polling the resulting job."""
    payload = await _read_upload(file)
    tracker = surfaces.get(owner, EMPLOYEE_BULK_UPLOAD_SURFACE)
    return await submit_to_surface(tracker, payload, client)


@router.get(
    "/employees/bulk-upload",
    summary="Check employee bulk upload progress",
    response_model=JobStatus,
)
async def get_employee_bulk_upload(
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    return serialize_surface(surfaces.snapshot(owner, EMPLOYEE_BULK_UPLOAD_SURFACE))


@router.post(
    "/employees/bulk-upload/reset",
    summary="Clear the bulk upload result so the user can try again",
    response_model=JobStatus,
)
async def reset_employee_bulk_upload(
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    return serialize_surface(surfaces.discard(owner, EMPLOYEE_BULK_UPLOAD_SURFACE))


@router.get(
    "/employees/bulk-upload/template",
    summary="Download the employee bulk upload template",
)
async def download_employee_template(
    client: PayrollApiClient = Depends(get_api_client),
) -> Response:
    try:
        content = await client.download_employee_template()
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc

    filename = f"employee-bulk-upload-template-{date.today().isoformat()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/payslips/batches/upload",
    summary="Start a payslip batch upload",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobStatus,
)
async def start_payslip_batch_upload(
    file: UploadFile = File(...),
    pay_month: str = Form(..., description="Pay month as YYYY-MM"),
    client: PayrollApiClient = Depends(get_api_client),
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    """Forward the PDF/ZIP archive for ``pay_month`` and begin polling."""
    payload = await _read_upload(file, pay_month=pay_month)
    tracker = surfaces.get(owner, PAYSLIP_BATCH_UPLOAD_SURFACE)
    return await submit_to_surface(tracker, payload, client)


@router.get(
    "/payslips/batches/upload",
    summary="Check payslip batch upload progress",
    response_model=JobStatus,
)
async def get_payslip_batch_upload(
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    return serialize_surface(surfaces.snapshot(owner, PAYSLIP_BATCH_UPLOAD_SURFACE))


@router.post(
    "/payslips/batches/upload/reset",
    summary="Clear the payslip upload surface",
    response_model=JobStatus,
)
async def reset_payslip_batch_upload(
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    return serialize_surface(surfaces.discard(owner, PAYSLIP_BATCH_UPLOAD_SURFACE))
