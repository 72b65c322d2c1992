"""FastAPI application bootstrap: shared clients, upload surfaces, routers."""

from contextlib import asynccontextmanager
from datetime import timedelta
import logging

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from payslip_portal.api.routers import batches, employees, health, jobs, uploads
from payslip_portal.core.config import get_settings
from payslip_portal.jobs.reconciliation import Reconciler
from payslip_portal.services.list_cache import ListCache
from payslip_portal.services.surfaces import SurfaceStore
from payslip_portal.utils.redis_client import create_redis_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the HTTP client, Redis client and surfaces for the app's lifetime."""
    settings = get_settings()

    http = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.api_timeout_seconds, connect=10.0),
        follow_redirects=True,
    )
    redis_client = create_redis_client(
        settings.redis_url, decode_responses=True, socket_connect_timeout=2
    )
    list_cache = ListCache(
        redis_client, ttl=timedelta(seconds=settings.list_cache_ttl_seconds)
    )
    surfaces = SurfaceStore(Reconciler(list_cache), settings)

    app.state.http = http
    app.state.redis = redis_client
    app.state.list_cache = list_cache
    app.state.surfaces = surfaces
    logger.info(f"Payroll API at {settings.api_base_url}, polling every {settings.poll_interval_ms}ms")

    try:
        yield
    finally:
        surfaces.dispose_all()
        await http.aclose()
        redis_client.close()


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and include top-level routers."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

    cors_origins = settings.cors_origins
    logger.info(f"[CORS] Parsed allowed origins: {cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    # uploads first: /api/payslips/batches/upload must win over /{batch_id}
    app.include_router(uploads.router, prefix="/api", tags=["uploads"])
    app.include_router(employees.router, prefix="/api/employees", tags=["employees"])
    app.include_router(batches.router, prefix="/api/payslips/batches", tags=["batches"])
    app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])

    return app


app = create_app()
