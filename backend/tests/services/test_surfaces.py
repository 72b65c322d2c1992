import pytest

from payslip_portal.jobs.models import UploadPayload
from payslip_portal.jobs.reconciliation import Reconciler
from payslip_portal.services.surfaces import (
    EMPLOYEE_BULK_UPLOAD_SURFACE,
    SurfaceStore,
    batch_send_surface,
    kind_for_surface,
)


@pytest.fixture
def store(settings):
    store = SurfaceStore(Reconciler(), settings.model_copy(update={"poll_interval_ms": 10_000}))
    yield store
    store.dispose_all()


class TestSurfaceKeys:
    def test_batch_send_surfaces_are_per_batch(self):
        assert batch_send_surface("batch-7") == "payslips.batch_send:batch-7"
        assert kind_for_surface("payslips.batch_send:batch-7").name == "batch_email_send"

    @pytest.mark.parametrize("key", ["reports.export", "payslips.batch_send:", ""])
    def test_unknown_surfaces_rejected(self, store, key):
        with pytest.raises(KeyError):
            kind_for_surface(key)
        with pytest.raises(KeyError):
            store.snapshot("alice", key)
        with pytest.raises(KeyError):
            store.discard("alice", key)


class TestOwners:
    async def test_owners_get_separate_trackers(self, store, api_client, fake_api, bulk_upload_file):
        fake_api.statuses = [{"state": "processing", "progress": 10}]

        await store.get("alice", EMPLOYEE_BULK_UPLOAD_SURFACE).submit(
            UploadPayload(**bulk_upload_file), api_client
        )

        assert store.snapshot("alice", EMPLOYEE_BULK_UPLOAD_SURFACE).job.job_id == "job-1"
        assert store.snapshot("bob", EMPLOYEE_BULK_UPLOAD_SURFACE).job is None
        assert store.get("alice", EMPLOYEE_BULK_UPLOAD_SURFACE) is not store.get(
            "bob", EMPLOYEE_BULK_UPLOAD_SURFACE
        )

    async def test_discard_only_touches_own_surface(self, store, api_client, fake_api, bulk_upload_file):
        fake_api.statuses = [{"state": "processing", "progress": 10}]
        await store.get("alice", EMPLOYEE_BULK_UPLOAD_SURFACE).submit(
            UploadPayload(**bulk_upload_file), api_client
        )

        store.discard("bob", EMPLOYEE_BULK_UPLOAD_SURFACE)

        assert store.snapshot("alice", EMPLOYEE_BULK_UPLOAD_SURFACE).is_processing


class TestLifetime:
    def test_reads_do_not_create_trackers(self, store):
        state = store.snapshot("alice", batch_send_surface("batch-404"))

        assert state.key == "payslips.batch_send:batch-404"
        assert state.kind == "batch_email_send"
        assert state.job is None
        assert store.find("alice", batch_send_surface("batch-404")) is None
        assert len(store) == 0

    async def test_discard_evicts_tracker(self, store, api_client, fake_api, bulk_upload_file):
        fake_api.statuses = [{"state": "processing", "progress": 10}]
        tracker = store.get("alice", EMPLOYEE_BULK_UPLOAD_SURFACE)
        await tracker.submit(UploadPayload(**bulk_upload_file), api_client)
        assert len(store) == 1

        state = store.discard("alice", EMPLOYEE_BULK_UPLOAD_SURFACE)

        assert state.job is None
        assert len(store) == 0
        assert not tracker.is_processing

    def test_dispose_all_empties_store(self, store):
        store.get("alice", EMPLOYEE_BULK_UPLOAD_SURFACE)
        store.get("bob", batch_send_surface("batch-7"))

        store.dispose_all()

        assert len(store) == 0
