"""Fixed-interval status polling for one tracked job.

A poller runs as a single asyncio task. It checks status immediately, then
waits ``interval_ms`` after each response before asking again, so at most
one status request per job is ever in flight. Polling stops on its own once
a ``completed`` or ``failed`` job has been delivered, and any error raised
while checking status is delivered as a ``failed`` job rather than retried.

Cancelling is synchronous: after ``cancel()`` returns, ``on_update`` is not
called again, even if a status response was already on its way.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from payslip_portal.core.errors import get_error_message
from payslip_portal.jobs.models import Job, JobState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 3000
STATUS_CHECK_FAILED = "status check failed"
POLL_TIMEOUT_REASON = "Job status polling timed out"

StatusFn = Callable[[str], Awaitable[Job]]
UpdateFn = Callable[[Job], None]


def failed_job(job_id: str, reason: str, kind: str | None = None) -> Job:
    return Job(job_id=job_id, kind=kind, state=JobState.FAILED, failed_reason=reason)


class JobPoller:
    def __init__(
        self,
        job_id: str,
        get_status: StatusFn,
        on_update: UpdateFn,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        *,
        max_polls: int | None = None,
        kind: str | None = None,
    ) -> None:
        self.job_id = job_id
        self.kind = kind
        self.polls = 0
        self._get_status = get_status
        self._on_update = on_update
        self._interval = max(0, interval_ms) / 1000.0
        self._max_polls = max_polls
        self._active = False
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> "JobPoller":
        if self._task is not None:
            raise RuntimeError(f"Poller for job {self.job_id} already started")
        self._active = True
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"poll-job-{self.job_id}"
        )
        return self

    def cancel(self) -> None:
        if self._active:
            logger.debug(f"Stopped tracking job {self.job_id}")
        self._active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()

    __call__ = cancel

    async def wait(self) -> None:
        """Block until the polling task has finished (terminal, cancelled or errored)."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _run(self) -> None:
        while self._active:
            self.polls += 1
            try:
                job = await self._get_status(self.job_id)
            except Exception as exc:
                reason = get_error_message(exc, fallback=STATUS_CHECK_FAILED)
                logger.warning(f"Status check for job {self.job_id} failed: {reason}")
                job = failed_job(self.job_id, reason, self.kind)

            # cancelled while the request was in flight
            if not self._active:
                return

            if job.is_terminal:
                self._active = False
                self._deliver(job)
                return
            if not self._deliver(job):
                return

            if self._max_polls is not None and self.polls >= self._max_polls:
                logger.warning(
                    f"Job {self.job_id} still {job.state.value} after {self.polls} checks"
                )
                self._active = False
                self._deliver(failed_job(self.job_id, POLL_TIMEOUT_REASON, self.kind))
                return

            await asyncio.sleep(self._interval)

    def _deliver(self, job: Job) -> bool:
        try:
            self._on_update(job)
        except Exception as exc:
            logger.error(
                f"Update handler for job {self.job_id} raised: {exc}", exc_info=True
            )
            self._active = False
            return False
        if job.is_terminal:
            logger.info(f"Job {self.job_id} finished as {job.state.value}")
        return self._active


def start_tracking(
    job_id: str,
    get_status: StatusFn,
    on_update: UpdateFn,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    *,
    max_polls: int | None = None,
    kind: str | None = None,
) -> JobPoller:
    """Start polling ``job_id``; the returned poller doubles as the cancel function."""
    poller = JobPoller(
        job_id,
        get_status,
        on_update,
        interval_ms,
        max_polls=max_polls,
        kind=kind,
    )
    return poller.start()
