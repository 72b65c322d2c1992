import json

import httpx
import pytest

from payslip_portal.core.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from payslip_portal.jobs.models import UploadPayload
from payslip_portal.services.api_client import PayrollApiClient


def client_for(handler, token=None):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return http, PayrollApiClient(http, "http://payroll.test/", token=token)


class TestEnvelope:
    async def test_status_data_is_unwrapped(self, api_client, fake_api):
        fake_api.statuses = [{"state": "active", "progress": 12}]

        data = await api_client.get_send_batch_job_status("send-1")

        assert data == {"state": "active", "progress": 12}
        request = fake_api.requests[0]
        assert request.url.path == "/payslips/batches/send/status/send-1"
        assert request.headers["Authorization"] == "Bearer secret-token"

    async def test_list_keeps_pagination_meta(self, api_client, fake_api):
        body = await api_client.get_employees(page=2, limit=5, search="")

        assert body["meta"]["totalPages"] == 1
        params = fake_api.requests[0].url.params
        assert params["page"] == "2"
        assert params["limit"] == "5"
        assert "search" not in params

    async def test_unsuccessful_envelope_raises(self):
        http, client = client_for(
            lambda request: httpx.Response(200, json={"success": False, "message": "Batch locked"})
        )
        async with http:
            with pytest.raises(ApiError, match="Batch locked"):
                await client.send_batch("batch-7")

    async def test_no_token_no_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"jobId": "x"}})

        http, client = client_for(handler)
        async with http:
            await client.send_batch("batch-7")

        assert "Authorization" not in seen[0].headers
        assert str(seen[0].url) == "http://payroll.test/payslips/batches/batch-7/send"


class TestErrors:
    @pytest.mark.parametrize(
        "status_code, error_type",
        [
            (400, ValidationError),
            (401, AuthenticationError),
            (404, NotFoundError),
            (500, ApiError),
        ],
    )
    async def test_status_codes_map_to_errors(self, status_code, error_type):
        http, client = client_for(
            lambda request: httpx.Response(status_code, json={"message": "nope"})
        )
        async with http:
            with pytest.raises(error_type) as excinfo:
                await client.get_bulk_upload_status("job-1")

        assert excinfo.value.message == "nope"
        assert excinfo.value.status_code == status_code

    async def test_message_list_is_joined(self):
        http, client = client_for(
            lambda request: httpx.Response(
                422, json={"message": ["payMonth must be set", "file is required"]}
            )
        )
        async with http:
            with pytest.raises(ValidationError) as excinfo:
                await client.get_bulk_upload_status("job-1")

        assert excinfo.value.message == "payMonth must be set; file is required"

    async def test_fallback_message(self):
        http, client = client_for(lambda request: httpx.Response(503, content=b""))
        async with http:
            with pytest.raises(ApiError) as excinfo:
                await client.get_bulk_upload_status("job-1")

        assert excinfo.value.message == "Request failed with status 503"

    async def test_unreadable_body_is_network_error(self):
        http, client = client_for(lambda request: httpx.Response(200, content=b"<html>"))
        async with http:
            with pytest.raises(NetworkError):
                await client.get_bulk_upload_status("job-1")

    async def test_timeout_is_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        http, client = client_for(handler)
        async with http:
            with pytest.raises(NetworkError, match="timed out"):
                await client.get_bulk_upload_status("job-1")


class TestUploads:
    async def test_payslip_upload_is_multipart_with_pay_month(self, api_client, fake_api):
        payload = UploadPayload(
            filename="march.zip",
            content=b"PK\x03\x04",
            content_type="application/zip",
            pay_month="2025-03",
        )

        data = await api_client.upload_payslip_batch(payload)

        assert data["jobId"] == "job-1"
        request = fake_api.requests[0]
        assert request.url.path == "/payslips/batches/upload"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="payMonth"' in body
        assert b"2025-03" in body
        assert b'filename="march.zip"' in body

    async def test_template_download_returns_bytes(self, api_client):
        content = await api_client.download_employee_template()

        assert content.startswith(b"PK")


class TestEmployees:
    async def test_create_posts_json(self, api_client, fake_api):
        data = await api_client.create_employee({"firstName": "Tunde", "email": "t@example.com"})

        assert data == {"id": 2, "firstName": "Tunde", "email": "t@example.com"}
        request = fake_api.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/employees"
        assert request.headers["Content-Type"] == "application/json"

    async def test_update_puts_to_employee(self, api_client, fake_api):
        data = await api_client.update_employee(5, {"department": "Audit"})

        assert data["id"] == 5
        assert data["department"] == "Audit"
        assert json.loads(fake_api.requests[0].content) == {"department": "Audit"}
        assert fake_api.requests[0].method == "PUT"
        assert fake_api.requests[0].url.path == "/employees/5"

    async def test_get_and_delete(self, api_client, fake_api):
        employee = await api_client.get_employee(3)
        await api_client.delete_employee(3)

        assert employee["id"] == 3
        assert [(r.method, r.url.path) for r in fake_api.requests] == [
            ("GET", "/employees/3"),
            ("DELETE", "/employees/3"),
        ]

    async def test_missing_employee(self):
        http, client = client_for(
            lambda request: httpx.Response(404, json={"message": "Employee not found"}),
            token="secret-token",
        )
        async with http:
            with pytest.raises(NotFoundError, match="Employee not found"):
                await client.get_employee(99)
