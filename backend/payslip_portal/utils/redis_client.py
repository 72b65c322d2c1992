"""Redis client factory used by the list cache and readiness check."""

from __future__ import annotations

import ssl
from typing import Any

from redis import Redis


def create_redis_client(url: str, **kwargs: Any) -> Redis:
    """Build a Redis client from a URL, relaxing certificate checks for TLS hosts.

    Managed Redis providers (Upstash and the like) hand out ``redis://`` URLs
    that actually require TLS, so those are upgraded to ``rediss://``.
    """
    if ".upstash.io" in url and url.startswith("redis://"):
        url = "rediss://" + url[len("redis://"):]

    client = Redis.from_url(url, **kwargs)

    if url.startswith("rediss://"):
        connection_kwargs = getattr(client.connection_pool, "connection_kwargs", None)
        if connection_kwargs is not None:
            connection_kwargs["ssl_cert_reqs"] = ssl.CERT_NONE

    return client
