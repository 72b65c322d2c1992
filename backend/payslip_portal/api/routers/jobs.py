"""Upload surface state, polled or streamed (Server-Sent Events)."""
from __future__ import annotations

import asyncio
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from payslip_portal.api.dependencies.clients import get_owner, get_surfaces
from payslip_portal.api.routers.job_helpers import serialize_surface
from payslip_portal.api.schemas.job import JobStatus
from payslip_portal.jobs.models import SurfaceState
from payslip_portal.jobs.tracker import JobTracker
from payslip_portal.services.surfaces import SurfaceStore, idle_state

router = APIRouter()

KEEPALIVE_SECONDS = 15.0
CLOSE_EVENT = "event: close\ndata: {}\n\n"


def _find_or_404(surfaces: SurfaceStore, owner: str, surface: str) -> JobTracker | None:
    try:
        return surfaces.find(owner, surface)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Surface not found") from exc


def _event(state: SurfaceState) -> str:
    return f"data: {serialize_surface(state).model_dump_json()}\n\n"


@router.get(
    "/{surface}",
    summary="Fetch the current state of an upload surface",
    response_model=JobStatus,
)
async def get_surface(
    surface: str,
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> JobStatus:
    tracker = _find_or_404(surfaces, owner, surface)
    if tracker is None:
        return serialize_surface(idle_state(surface))
    return serialize_surface(tracker.snapshot())


@router.get(
    "/{surface}/stream",
    summary="Server-Sent Events stream for real-time progress",
)
async def stream_surface(
    surface: str,
    surfaces: SurfaceStore = Depends(get_surfaces),
    owner: str = Depends(get_owner),
) -> StreamingResponse:
    """Stream surface snapshots via Server-Sent Events (SSE).

    The current snapshot is sent first, then one event per job update.
    The stream closes once the tracked job reaches ``completed`` or
    ``failed``, when the surface is reset, or straight away when nothing
    is being tracked.

    Example client usage:
    ```javascript
    const source = new EventSource('/api/jobs/employees.bulk_upload/stream');
    source.onmessage = (e) => render(JSON.parse(e.data));
    ```
    """
    tracker = _find_or_404(surfaces, owner, surface)

    async def idle_generator() -> AsyncGenerator[str, None]:
        yield _event(idle_state(surface))
        yield CLOSE_EVENT

    async def event_generator(tracker: JobTracker) -> AsyncGenerator[str, None]:
        queue = tracker.subscribe()
        try:
            state = tracker.snapshot()
            yield _event(state)
            while state.is_processing:
                try:
                    state = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _event(state)
            yield CLOSE_EVENT
        finally:
            tracker.unsubscribe(queue)

    return StreamingResponse(
        idle_generator() if tracker is None else event_generator(tracker),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
