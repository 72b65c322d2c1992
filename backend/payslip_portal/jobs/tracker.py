"""An upload surface: one page or modal that owns at most one job at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from payslip_portal.core.config import Settings, get_settings
from payslip_portal.core.errors import SubmissionError
from payslip_portal.jobs.kinds import JobKind
from payslip_portal.jobs.models import (
    Job,
    JobState,
    Notice,
    ProgressView,
    SubmissionReceipt,
    SurfaceState,
)
from payslip_portal.jobs.poller import JobPoller, start_tracking
from payslip_portal.jobs.progress import project
from payslip_portal.jobs.reconciliation import Reconciler
from payslip_portal.jobs.submission import submit
from payslip_portal.services.api_client import PayrollApiClient

logger = logging.getLogger(__name__)


class JobTracker:
    def __init__(
        self,
        key: str,
        kind: JobKind,
        reconciler: Reconciler,
        settings: Settings | None = None,
    ) -> None:
        self.key = key
        self.kind = kind
        self.job: Job | None = None
        self.progress = ProgressView()
        self.notice: Notice | None = None
        self.message: str | None = None
        self._reconciler = reconciler
        self._settings = settings or get_settings()
        self._poller: JobPoller | None = None
        self._listeners: set[asyncio.Queue] = set()
        self._submit_lock = asyncio.Lock()
        # bumped whenever the current job is discarded
        self._generation = 0

    @property
    def is_processing(self) -> bool:
        return self.job is not None and not self.job.is_terminal

    @property
    def is_busy(self) -> bool:
        """A job is being tracked or a submission is still in flight."""
        return self.is_processing or self._submit_lock.locked()

    @property
    def can_retry(self) -> bool:
        return self.job is not None and self.job.state is JobState.FAILED

    async def submit(self, payload: Any, client: PayrollApiClient) -> Job:
        """Submit new work and start tracking it, discarding any previous job.

        Submissions on one surface are serialized. If the surface is reset or
        disposed while the backend call is in flight, the new job is not
        tracked and ``SubmissionError`` (409) is raised.
        """
        async with self._submit_lock:
            self._discard()
            generation = self._generation
            try:
                receipt = await submit(
                    self.kind, payload, client=client, settings=self._settings
                )
            except SubmissionError as exc:
                if generation == self._generation:
                    self.notice = Notice(level="error", message=exc.message)
                    self._publish()
                raise

            if generation != self._generation:
                logger.info(
                    f"Surface {self.key} was reset while job {receipt.job_id} "
                    "was being submitted; not tracking it"
                )
                raise SubmissionError("Submission was cancelled", status_code=409)
            return self._track(receipt, client)

    def _track(self, receipt: SubmissionReceipt, client: PayrollApiClient) -> Job:
        self.job = Job(job_id=receipt.job_id, kind=self.kind.name, state=JobState.QUEUED)
        self.message = receipt.message
        self.notice = Notice(level="info", message=receipt.message)

        async def get_status(job_id: str) -> Job:
            return await self.kind.check_status(client, job_id)

        self._poller = start_tracking(
            receipt.job_id,
            get_status,
            self._apply,
            self._settings.poll_interval_ms,
            max_polls=self._settings.poll_max_attempts,
            kind=self.kind.name,
        )
        self._publish()
        return self.job

    def _apply(self, job: Job) -> None:
        if self.job is None or job.job_id != self.job.job_id:
            return
        self.job = job.model_copy(update={"kind": self.kind.name})
        self.progress = project(self.job)
        if self.job.is_terminal:
            notice = self._reconciler.reconcile(self.job, self.kind)
            if notice is not None:
                self.notice = notice
        self._publish()

    async def wait(self) -> None:
        if self._poller is not None:
            await self._poller.wait()

    def reset(self) -> None:
        """Forget the current job so the user can submit again."""
        self._discard()
        self._publish()

    def dispose(self) -> None:
        self._discard()
        # final idle snapshot lets open streams close
        self._publish()
        self._listeners.clear()

    def _discard(self) -> None:
        self._generation += 1
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None
        if self.job is not None:
            self._reconciler.forget(self.kind, self.job.job_id)
        self.job = None
        self.progress = ProgressView()
        self.notice = None
        self.message = None

    def snapshot(self) -> SurfaceState:
        return SurfaceState(
            key=self.key,
            kind=self.kind.name,
            job=self.job,
            progress=self.progress,
            notice=self.notice,
            message=self.message,
            is_processing=self.is_processing,
            can_retry=self.can_retry,
        )

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._listeners.discard(queue)

    def _publish(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for queue in self._listeners:
            queue.put_nowait(state)
