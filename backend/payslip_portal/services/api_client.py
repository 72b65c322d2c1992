"""Thin async client for the payroll REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from payslip_portal.core.errors import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from payslip_portal.jobs.models import UploadPayload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(20.0, connect=10.0)
USER_AGENT = "Payslip-Portal/1.0"


def _error_message(response: httpx.Response) -> str:
    fallback = f"Request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()[:200] or fallback
    if not isinstance(body, dict):
        return fallback
    message = body.get("message")
    # Validation pipes report a list of messages
    if isinstance(message, list):
        message = "; ".join(str(item) for item in message)
    return message or body.get("error") or fallback


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    message = _error_message(response)
    if response.status_code == 401:
        raise AuthenticationError(message)
    if response.status_code == 403:
        raise AuthorizationError(message)
    if response.status_code == 404:
        raise NotFoundError(message)
    if response.status_code in (400, 422):
        raise ValidationError(message)
    raise ApiError(message, status_code=response.status_code)


class PayrollApiClient:
    """Calls the payroll API on behalf of one signed-in user.

    Every JSON response is wrapped as ``{success, message, data, meta}``;
    ``_request_data`` unwraps ``data`` and turns ``success: false`` into an
    ``ApiError``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        token: str | None = None,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{endpoint}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            response = await self._http.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=json_body,
                files=files,
                data=data,
            )
        except httpx.TimeoutException as exc:
            logger.warning(f"Payroll API timeout on {method} {endpoint}: {exc}")
            raise NetworkError("Request to payroll API timed out") from exc
        except httpx.RequestError as exc:
            logger.warning(f"Payroll API request error on {method} {endpoint}: {exc}")
            raise NetworkError(str(exc) or "Network request failed") from exc
        _raise_for_status(response)
        return response

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._send(method, endpoint, **kwargs)
        if not response.content:
            return {"success": True, "message": "", "data": None}
        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError("Payroll API returned an unreadable response") from exc
        if not isinstance(body, dict):
            return {"success": True, "message": "", "data": body}
        if body.get("success") is False:
            raise ApiError(body.get("message") or "Request failed", status_code=400)
        return body

    async def _request_data(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        body = await self._request(method, endpoint, **kwargs)
        return body.get("data", body)

    @staticmethod
    def _file_part(payload: UploadPayload) -> dict[str, Any]:
        content_type = payload.content_type or "application/octet-stream"
        return {"file": (payload.filename, payload.content, content_type)}

    # Employee bulk upload
    async def bulk_upload_employees(self, payload: UploadPayload) -> dict[str, Any]:
        return await self._request_data(
            "POST", "/employees/bulk-upload", files=self._file_part(payload)
        )

    async def get_bulk_upload_status(self, job_id: str) -> dict[str, Any]:
        return await self._request_data("GET", f"/employees/bulk-upload/status/{job_id}")

    async def download_employee_template(self) -> bytes:
        response = await self._send("GET", "/employees/bulk-upload/template")
        return response.content

    # Payslip batches
    async def upload_payslip_batch(self, payload: UploadPayload) -> dict[str, Any]:
        return await self._request_data(
            "POST",
            "/payslips/batches/upload",
            files=self._file_part(payload),
            data={"payMonth": payload.pay_month},
        )

    async def get_payslip_upload_status(self, job_id: str) -> dict[str, Any]:
        return await self._request_data("GET", f"/payslips/batches/upload/status/{job_id}")

    async def send_batch(self, batch_id: str) -> dict[str, Any]:
        return await self._request_data("POST", f"/payslips/batches/{batch_id}/send")

    async def get_send_batch_job_status(self, job_id: str) -> dict[str, Any]:
        return await self._request_data("GET", f"/payslips/batches/send/status/{job_id}")

    async def get_batch_details(self, batch_id: str) -> dict[str, Any]:
        return await self._request_data("GET", f"/payslips/batches/{batch_id}")

    # Employees
    async def get_employee(self, employee_id: int) -> dict[str, Any]:
        return await self._request_data("GET", f"/employees/{employee_id}")

    async def create_employee(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request_data("POST", "/employees", json_body=data)

    async def update_employee(self, employee_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request_data("PUT", f"/employees/{employee_id}", json_body=data)

    async def delete_employee(self, employee_id: int) -> None:
        await self._request("DELETE", f"/employees/{employee_id}")

    # List views (whole envelope, pagination lives in ``meta``)
    async def get_employees(
        self, page: int = 1, limit: int = 10, search: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            "/employees",
            params={"page": page, "limit": limit, "search": search or None},
        )

    async def get_payslip_batches(
        self,
        page: int = 1,
        limit: int = 10,
        pay_month: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            "/payslips/batches",
            params={
                "page": page,
                "limit": limit,
                "payMonth": pay_month or None,
                "status": status or None,
            },
        )
