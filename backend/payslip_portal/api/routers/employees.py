"""Employee list view served through the list cache, plus the edits that invalidate it."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status

from payslip_portal.api.dependencies.clients import (
    get_api_client,
    get_cache_scope,
    get_list_cache,
)
from payslip_portal.api.routers.job_helpers import http_error
from payslip_portal.api.schemas.listing import (
    EmployeeListResponse,
    EmployeeRead,
    EmployeeWrite,
)
from payslip_portal.core.errors import ApiError, NetworkError
from payslip_portal.services.api_client import PayrollApiClient
from payslip_portal.services.list_cache import ListCache

logger = logging.getLogger(__name__)

router = APIRouter()

EMPLOYEE_COLLECTION = "employees"


@router.get(
    "",
    summary="List employees with search and pagination",
    response_model=EmployeeListResponse,
)
async def list_employees(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Name, email or IPPIS number"),
    client: PayrollApiClient = Depends(get_api_client),
    cache: ListCache = Depends(get_list_cache),
    scope: str | None = Depends(get_cache_scope),
) -> EmployeeListResponse:
    params = {"page": page, "limit": limit, "search": search}

    async def fetch() -> dict[str, Any]:
        return await client.get_employees(page, limit, search)

    try:
        body = await cache.get_or_fetch(EMPLOYEE_COLLECTION, params, fetch, scope=scope)
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc

    return EmployeeListResponse.model_validate(
        {"items": body.get("data") or [], "meta": body.get("meta")}
    )


@router.get(
    "/{employee_id}",
    summary="Fetch one employee",
    response_model=EmployeeRead,
)
async def get_employee(
    employee_id: int,
    client: PayrollApiClient = Depends(get_api_client),
) -> EmployeeRead:
    try:
        data = await client.get_employee(employee_id)
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc
    return EmployeeRead.model_validate(data)


@router.post(
    "",
    summary="Create an employee",
    status_code=status.HTTP_201_CREATED,
    response_model=EmployeeRead,
)
async def create_employee(
    employee: EmployeeWrite,
    client: PayrollApiClient = Depends(get_api_client),
    cache: ListCache = Depends(get_list_cache),
) -> EmployeeRead:
    try:
        data = await client.create_employee(
            employee.model_dump(by_alias=True, exclude_none=True)
        )
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc

    cache.invalidate(EMPLOYEE_COLLECTION)
    return EmployeeRead.model_validate(data)


@router.put(
    "/{employee_id}",
    summary="Update an employee",
    response_model=EmployeeRead,
)
async def update_employee(
    employee_id: int,
    employee: EmployeeWrite,
    client: PayrollApiClient = Depends(get_api_client),
    cache: ListCache = Depends(get_list_cache),
) -> EmployeeRead:
    try:
        data = await client.update_employee(
            employee_id, employee.model_dump(by_alias=True, exclude_none=True)
        )
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc

    cache.invalidate(EMPLOYEE_COLLECTION)
    return EmployeeRead.model_validate(data)


@router.delete(
    "/{employee_id}",
    summary="Delete an employee",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_employee(
    employee_id: int,
    client: PayrollApiClient = Depends(get_api_client),
    cache: ListCache = Depends(get_list_cache),
) -> Response:
    try:
        await client.delete_employee(employee_id)
    except (ApiError, NetworkError) as exc:
        raise http_error(exc) from exc

    cache.invalidate(EMPLOYEE_COLLECTION)
    logger.info(f"Deleted employee {employee_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
