"""Normalize heterogeneous job progress payloads into one renderable shape."""

from __future__ import annotations

import math
from typing import Any, Mapping

from payslip_portal.jobs.models import Job, JobState, ProgressView, StructuredProgress


def clamp_percentage(value: Any) -> int:
    """Round to an int in [0, 100]; anything unreadable counts as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return int(max(0, min(100, round(number))))


def normalize(raw: Any) -> ProgressView:
    """Project a bare percentage, a structured record, or nothing.

    Structured records render as ``"{stage}: {processed} of {total}"``.
    """
    if raw is None or isinstance(raw, bool):
        return ProgressView(percentage=0)
    if isinstance(raw, (int, float)):
        return ProgressView(percentage=clamp_percentage(raw))
    if isinstance(raw, Mapping):
        raw = StructuredProgress.model_validate(raw)
    if isinstance(raw, StructuredProgress):
        total = max(0, raw.total)
        processed = max(0, min(raw.processed, total))
        return ProgressView(
            percentage=clamp_percentage(raw.percentage),
            detail_text=f"{raw.stage}: {processed} of {total}",
        )
    return ProgressView(percentage=0)


def project(job: Job) -> ProgressView:
    view = normalize(job.progress)
    if job.state is JobState.COMPLETED and view.percentage != 100:
        return ProgressView(percentage=100, detail_text=view.detail_text)
    return view
