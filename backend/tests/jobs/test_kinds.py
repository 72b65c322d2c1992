import httpx
import pytest

from payslip_portal.core.errors import PollTransportError
from payslip_portal.jobs.kinds import (
    BATCH_EMAIL_SEND,
    EMPLOYEE_BULK_UPLOAD,
    JOB_KINDS,
    PAYSLIP_BATCH_UPLOAD,
    UNKNOWN_FAILURE,
    StatusPayloadError,
)
from payslip_portal.jobs.models import (
    BatchSendResult,
    BulkUploadResult,
    JobState,
    PayslipUploadResult,
    StructuredProgress,
)
from payslip_portal.services.api_client import PayrollApiClient


class TestStateAdapters:
    @pytest.mark.parametrize(
        "wire, expected",
        [
            ("queued", JobState.QUEUED),
            ("processing", JobState.PROCESSING),
            ("parsing", JobState.PROCESSING),
            ("completed", JobState.COMPLETED),
            ("failed", JobState.FAILED),
            ("PROCESSING", JobState.PROCESSING),
        ],
    )
    def test_upload_vocabulary(self, wire, expected):
        assert EMPLOYEE_BULK_UPLOAD.adapt_state(wire) is expected
        assert PAYSLIP_BATCH_UPLOAD.adapt_state(wire) is expected

    @pytest.mark.parametrize(
        "wire, expected",
        [
            ("waiting", JobState.QUEUED),
            ("active", JobState.PROCESSING),
            ("completed", JobState.COMPLETED),
            ("failed", JobState.FAILED),
        ],
    )
    def test_send_vocabulary(self, wire, expected):
        assert BATCH_EMAIL_SEND.adapt_state(wire) is expected

    @pytest.mark.parametrize("wire", ["delayed", "", None])
    def test_unknown_state_rejected(self, wire):
        with pytest.raises(StatusPayloadError):
            BATCH_EMAIL_SEND.adapt_state(wire)

    def test_registry_lists_every_kind(self):
        assert set(JOB_KINDS) == {
            "employee_bulk_upload",
            "payslip_batch_upload",
            "batch_email_send",
        }


class TestParseStatus:
    def test_completed_bulk_upload_result(self):
        job = EMPLOYEE_BULK_UPLOAD.parse_status(
            "job-1",
            {
                "state": "completed",
                "progress": 100,
                "result": {
                    "totalRecords": 3,
                    "successCount": 2,
                    "failureCount": 1,
                    "errors": [{"row": 3, "field": "email", "message": "Email already exists"}],
                },
            },
        )

        assert job.state is JobState.COMPLETED
        assert job.kind == "employee_bulk_upload"
        assert isinstance(job.result, BulkUploadResult)
        assert job.result.failure_count == 1
        assert job.result.errors[0].row == 3

    def test_completed_send_result(self):
        job = BATCH_EMAIL_SEND.parse_status(
            "send-1",
            {
                "state": "completed",
                "result": {
                    "batchId": "batch-7",
                    "totalPayslips": 5,
                    "successCount": 4,
                    "failureCount": 0,
                    "skippedCount": 1,
                    "emailStatus": "completed",
                },
            },
        )

        assert isinstance(job.result, BatchSendResult)
        assert job.result.skipped_count == 1
        assert job.result.email_status == "completed"

    def test_completed_payslip_upload_result(self):
        job = PAYSLIP_BATCH_UPLOAD.parse_status(
            "up-1",
            {
                "state": "completed",
                "result": {"batchId": "b-1", "processedFiles": 9, "failedFiles": 1, "totalFiles": 10},
            },
        )

        assert isinstance(job.result, PayslipUploadResult)
        assert job.result.failed_files == 1

    def test_result_ignored_before_completion(self):
        job = EMPLOYEE_BULK_UPLOAD.parse_status(
            "job-1", {"state": "processing", "result": {"successCount": 1}}
        )

        assert job.result is None

    def test_structured_progress_parsed(self):
        job = EMPLOYEE_BULK_UPLOAD.parse_status(
            "job-1",
            {
                "state": "parsing",
                "progress": {"stage": "parsing", "processed": 2, "total": 8, "percentage": 25},
            },
        )

        assert job.state is JobState.PROCESSING
        assert isinstance(job.progress, StructuredProgress)
        assert job.progress.total == 8

    def test_failed_without_reason_gets_fallback(self):
        job = BATCH_EMAIL_SEND.parse_status("send-1", {"state": "failed"})

        assert job.failed_reason == UNKNOWN_FAILURE

    def test_failed_reason_kept_verbatim(self):
        job = EMPLOYEE_BULK_UPLOAD.parse_status(
            "job-2", {"state": "failed", "failedReason": "Corrupt file"}
        )

        assert job.failed_reason == "Corrupt file"

    def test_non_mapping_payload_rejected(self):
        with pytest.raises(StatusPayloadError):
            EMPLOYEE_BULK_UPLOAD.parse_status("job-1", ["queued"])

    def test_unsupported_progress_rejected(self):
        with pytest.raises(StatusPayloadError):
            EMPLOYEE_BULK_UPLOAD.parse_status("job-1", {"state": "queued", "progress": "half"})

    def test_malformed_result_rejected(self):
        with pytest.raises(StatusPayloadError):
            EMPLOYEE_BULK_UPLOAD.parse_status(
                "job-1", {"state": "completed", "result": {"successCount": "many"}}
            )

    def test_job_id_is_the_tracked_one(self):
        job = BATCH_EMAIL_SEND.parse_status("send-1", {"jobId": "send-99", "state": "active"})

        assert job.job_id == "send-1"


class TestCheckStatus:
    async def test_fetches_and_parses(self, api_client, fake_api):
        fake_api.statuses = [{"state": "active", "progress": 30}]

        job = await BATCH_EMAIL_SEND.check_status(api_client, "send-1")

        assert job.state is JobState.PROCESSING
        assert fake_api.status_requests[0].url.path == "/payslips/batches/send/status/send-1"

    async def test_unknown_state_becomes_transport_error(self, api_client, fake_api):
        fake_api.statuses = [{"state": "stalled"}]

        with pytest.raises(PollTransportError) as excinfo:
            await EMPLOYEE_BULK_UPLOAD.check_status(api_client, "job-1")

        assert excinfo.value.job_id == "job-1"
        assert "stalled" in excinfo.value.message

    async def test_api_error_becomes_transport_error(self):
        def gone(request):
            return httpx.Response(404, json={"message": "Job not found"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(gone)) as http:
            client = PayrollApiClient(http, "http://payroll.test")
            with pytest.raises(PollTransportError, match="Job not found"):
                await PAYSLIP_BATCH_UPLOAD.check_status(client, "up-1")
