"""Request-scoped dependencies: caller identity, payroll API client, list cache, surfaces."""

import hashlib

from fastapi import HTTPException, Request, status

from payslip_portal.core.config import get_settings
from payslip_portal.services.api_client import PayrollApiClient
from payslip_portal.services.list_cache import ListCache
from payslip_portal.services.surfaces import SurfaceStore

AUTH_COOKIE = "auth_token"


def get_auth_token(request: Request) -> str | None:
    """Bearer token from the Authorization header, else the dashboard's auth cookie."""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(AUTH_COOKIE) or None


def caller_scope(token: str) -> str:
    """Stable, non-reversible identity for one session token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]


def get_owner(request: Request) -> str:
    """Owner of the caller's upload surfaces. Surfaces are never served anonymously."""
    token = get_auth_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller_scope(token)


def get_cache_scope(request: Request) -> str | None:
    """List-cache partition for the caller; ``None`` means do not cache."""
    token = get_auth_token(request)
    return caller_scope(token) if token else None


def get_api_client(request: Request) -> PayrollApiClient:
    """FastAPI dependency that binds the shared HTTP client to the caller's token."""
    settings = get_settings()
    return PayrollApiClient(
        request.app.state.http,
        settings.api_base_url,
        token=get_auth_token(request),
    )


def get_list_cache(request: Request) -> ListCache:
    return request.app.state.list_cache


def get_surfaces(request: Request) -> SurfaceStore:
    return request.app.state.surfaces
