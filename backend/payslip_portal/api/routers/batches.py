"""Payslip batch listing, details and e-mail sending."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from payslip_portal.api.dependencies.clients import (
    get_api_client,
    get_cache_scope,
    get_list_cache,
    get_owner,
    get_surfaces,
)
from payslip_portal.api.routers.job_helpers import http_error, serialize_surface
from payslip_portal.api.routers.uploads import submit_to_surface
from payslip_portal.api.schemas.job import JobStatus
from payslip_portal.api.schemas.listing import PayslipBatchListResponse
from payslip_portal.core.errors import ApiError, NetworkError
from payslip_portal.jobs.models import BatchSendPayload
from payslip_portal.services.api_client import PayrollApiClient
from payslip_portal.services.list_cache import ListCache
from payslip_portal.services.surfaces import SurfaceStore, batch_send_surface

logger = logging.getLogger(__name__)

router = APIRouter()

BATCH_COLLECTION = "payslip-batches"


@router.get(
    "",
    summary="List payslip batches",
    response_model=PayslipBatchListResponse,
)
async def list_batches(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    pay_month: str | None = Query(None, description="Filter by pay month (YYYY-MM)"),
    status_filter: str | None = Query(None, alias="status", description="Filter by batch status"),
    client: PayrollApiClient = Depends(get_api_client),
    cache: ListCache = Depends(get_list_cache),
    scope: str | None = Depends(get_cache_scope),
) -> PayslipBatchListResponse:
    """Serve the batch table; finished batch jobs invalidate these pages."""
    params = {"page": page, "limit": limit, "payMonth": pay_month, "status": status_filter}

    async def fetch() -> dict[str, Any]:
        return await client.get_payslip_batches(page, limit, pay_month, status_filter)

    try:
        body = await cache.get_or_fetch(BATCH_COLLECTION, params, fetch, scope=scope)
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc

    return PayslipBatchListResponse.model_validate(
        {"items": body.get("data") or [], "meta": body.get("meta")}
    )


@router.get(
    "/{batch_id}",
    summary="Fetch one batch with its payslips",
)
async def get_batch(
    batch_id: str,
    client: PayrollApiClient = Depends(get_api_client),
) -> dict[str, Any]:
    try:
        return await client.get_batch_details(batch_id)
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc


@router.post(
    "/{batch_id}/send",
    summary="Queue e-mail delivery for a batch",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobStatus,
)
async def send_batch(
    batch_id: str,
    client: PayrollApiClient = Depends(get_api_client),
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    """Start the send job and track it on the batch's own surface."""
    tracker = surfaces.get(owner, batch_send_surface(batch_id))
    if tracker.is_busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Emails for this batch are already being sent",
        )
    return await submit_to_surface(tracker, BatchSendPayload(batch_id=batch_id), client)


@router.get(
    "/{batch_id}/send",
    summary="Check batch send progress",
    response_model=JobStatus,
)
async def get_batch_send(
    batch_id: str,
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    return serialize_surface(surfaces.snapshot(owner, batch_send_surface(batch_id)))


@router.post(
    "/{batch_id}/send/reset",
    summary="Clear the batch send surface",
    response_model=JobStatus,
)
async def reset_batch_send(
    batch_id: str,
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    return serialize_surface(surfaces.discard(owner, batch_send_surface(batch_id)))
