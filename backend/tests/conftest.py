import json
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio

from payslip_portal.core.config import Settings
from payslip_portal.services.api_client import PayrollApiClient

API_BASE_URL = "http://payroll.test"


def envelope(data: Any, message: str = "", **extra: Any) -> dict[str, Any]:
    return {"success": True, "message": message, "data": data, **extra}


class FakePayrollApi:
    """Scripted stand-in for the payroll API, served through httpx.MockTransport.

    ``statuses`` is consumed one entry per status request; the last entry
    repeats. An entry may be an exception instance, which is raised instead.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.submit_status = 201
        self.submit_body: dict[str, Any] = envelope(
            {"jobId": "job-1", "message": "Upload queued for processing"}
        )
        self.statuses: list[Any] = [{"state": "queued", "progress": 0}]
        self.employees_body: dict[str, Any] = envelope(
            [
                {
                    "id": 1,
                    "firstName": "Ada",
                    "lastName": "Obi",
                    "email": "ada@example.com",
                    "ippisNumber": "IPP-001",
                }
            ],
            meta={"total": 1, "page": 1, "limit": 10, "totalPages": 1},
        )
        self.batches_body: dict[str, Any] = envelope(
            [
                {
                    "id": 7,
                    "uuid": "batch-7",
                    "payMonth": "2025-03",
                    "status": "processed",
                    "emailStatus": "pending",
                }
            ],
            meta={"total": 1, "page": 1, "limit": 10, "totalPages": 1},
        )

    @property
    def status_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/status/" in r.url.path]

    @property
    def submit_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and r.url.path != "/employees"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if "Authorization" not in request.headers:
            return httpx.Response(401, json={"message": "Unauthorized"})

        if path == "/employees" and request.method == "POST":
            created = {"id": 2, **json.loads(request.content)}
            return httpx.Response(201, json=envelope(created, "Employee created"))
        if path.startswith("/employees/") and request.method == "PUT":
            employee_id = int(path.rsplit("/", 1)[-1])
            current = dict(self.employees_body["data"][0], id=employee_id)
            updated = {**current, **json.loads(request.content)}
            return httpx.Response(200, json=envelope(updated, "Employee updated"))
        if path.startswith("/employees/") and request.method == "DELETE":
            return httpx.Response(200, json=envelope(None, "Employee deleted"))

        if request.method == "POST":
            return httpx.Response(self.submit_status, json=self.submit_body)

        if "/status/" in path:
            item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            if isinstance(item, Exception):
                raise item
            return httpx.Response(200, json=envelope(item))

        if path == "/employees/bulk-upload/template":
            return httpx.Response(200, content=b"PK\x03\x04template")
        if path == "/employees":
            return httpx.Response(200, json=self.employees_body)
        if path.startswith("/employees/"):
            employee = dict(self.employees_body["data"][0], id=int(path.rsplit("/", 1)[-1]))
            return httpx.Response(200, json=envelope(employee))
        if path == "/payslips/batches":
            return httpx.Response(200, json=self.batches_body)
        if path.startswith("/payslips/batches/"):
            batch_id = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=envelope({"uuid": batch_id, "payslips": []}))

        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url=API_BASE_URL,
        poll_interval_ms=0,
        redis_url="redis://localhost:6379/15",
    )


@pytest.fixture
def fake_api() -> FakePayrollApi:
    return FakePayrollApi()


@pytest_asyncio.fixture
async def http_client(fake_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as client:
        yield client


@pytest.fixture
def api_client(http_client) -> PayrollApiClient:
    return PayrollApiClient(http_client, API_BASE_URL, token="secret-token")


@pytest.fixture
def fake_redis():
    """Dict-backed Redis double covering the commands the list cache uses."""
    store: dict[str, Any] = {}
    redis = MagicMock()
    redis.store = store

    def incr(key):
        store[key] = int(store.get(key, 0)) + 1
        return store[key]

    def scan_iter(match=None):
        prefix = (match or "*").rstrip("*")
        return iter([key for key in list(store) if key.startswith(prefix)])

    def delete(*keys):
        removed = 0
        for key in keys:
            removed += store.pop(key, None) is not None
        return removed

    def set_value(key, value, ex=None):
        store[key] = value
        return True

    redis.get.side_effect = lambda key: store.get(key)
    redis.set.side_effect = set_value
    redis.incr.side_effect = incr
    redis.scan_iter.side_effect = scan_iter
    redis.delete.side_effect = delete
    redis.ping.return_value = True
    return redis


@pytest.fixture
def bulk_upload_file() -> dict[str, Any]:
    return {
        "filename": "employees.xlsx",
        "content": b"PK\x03\x04 fake workbook",
        "content_type": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
