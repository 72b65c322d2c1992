"""Registry of upload surfaces, created and torn down with the application."""

from __future__ import annotations

import logging

from payslip_portal.core.config import Settings
from payslip_portal.jobs.kinds import (
    BATCH_EMAIL_SEND,
    EMPLOYEE_BULK_UPLOAD,
    PAYSLIP_BATCH_UPLOAD,
    JobKind,
)
from payslip_portal.jobs.models import SurfaceState
from payslip_portal.jobs.reconciliation import Reconciler
from payslip_portal.jobs.tracker import JobTracker

logger = logging.getLogger(__name__)

EMPLOYEE_BULK_UPLOAD_SURFACE = "employees.bulk_upload"
PAYSLIP_BATCH_UPLOAD_SURFACE = "payslips.batch_upload"
BATCH_SEND_SURFACE_PREFIX = "payslips.batch_send:"

FIXED_SURFACES: dict[str, JobKind] = {
    EMPLOYEE_BULK_UPLOAD_SURFACE: EMPLOYEE_BULK_UPLOAD,
    PAYSLIP_BATCH_UPLOAD_SURFACE: PAYSLIP_BATCH_UPLOAD,
}


def batch_send_surface(batch_id: str) -> str:
    return f"{BATCH_SEND_SURFACE_PREFIX}{batch_id}"


def kind_for_surface(key: str) -> JobKind:
    if key in FIXED_SURFACES:
        return FIXED_SURFACES[key]
    if key.startswith(BATCH_SEND_SURFACE_PREFIX) and len(key) > len(BATCH_SEND_SURFACE_PREFIX):
        return BATCH_EMAIL_SEND
    raise KeyError(f"Unknown surface: {key}")


class SurfaceStore:
    """Each (owner, surface key) pair maps to at most one tracker.

    Trackers are created on submission only. Reading or resetting a surface
    that has no tracker answers with an idle snapshot, and a reset evicts the
    tracker, so the store holds only surfaces someone has actually used.
    """

    def __init__(self, reconciler: Reconciler, settings: Settings) -> None:
        self._reconciler = reconciler
        self._settings = settings
        self._trackers: dict[tuple[str, str], JobTracker] = {}

    def __len__(self) -> int:
        return len(self._trackers)

    def get(self, owner: str, key: str) -> JobTracker:
        tracker = self._trackers.get((owner, key))
        if tracker is None:
            tracker = JobTracker(key, kind_for_surface(key), self._reconciler, self._settings)
            self._trackers[(owner, key)] = tracker
        return tracker

    def find(self, owner: str, key: str) -> JobTracker | None:
        kind_for_surface(key)
        return self._trackers.get((owner, key))

    def snapshot(self, owner: str, key: str) -> SurfaceState:
        tracker = self.find(owner, key)
        if tracker is None:
            return idle_state(key)
        return tracker.snapshot()

    def discard(self, owner: str, key: str) -> SurfaceState:
        """Reset the surface: stop tracking and forget the tracker entirely."""
        tracker = self._trackers.pop((owner, key), None)
        if tracker is None:
            kind_for_surface(key)
        else:
            tracker.dispose()
        return idle_state(key)

    def dispose_all(self) -> None:
        for tracker in self._trackers.values():
            tracker.dispose()
        logger.info(f"Disposed {len(self._trackers)} upload surface(s)")
        self._trackers.clear()


def idle_state(key: str) -> SurfaceState:
    return SurfaceState(key=key, kind=kind_for_surface(key).name)
