"""Redis-backed cache for dashboard list views (employees, payslip batches).

Entries are never edited in place. ``invalidate`` bumps the collection's
generation so readers move to a fresh key space and refetch; a fetch that was
already running when the collection was invalidated writes into the old
generation, which nobody reads any more and which expires with its TTL.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

LIST_PREFIX = "portal:list:"
GENERATION_PREFIX = "portal:listgen:"
DEFAULT_TTL = timedelta(minutes=5)


class ListCache:
    def __init__(self, redis_client: Redis, ttl: timedelta = DEFAULT_TTL) -> None:
        self._redis = redis_client
        self._ttl = int(ttl.total_seconds())

    def _generation(self, collection: str) -> int:
        try:
            raw = self._redis.get(f"{GENERATION_PREFIX}{collection}")
        except RedisError as exc:
            logger.warning(f"List cache unavailable reading generation of {collection}: {exc}")
            return -1
        try:
            return int(raw) if raw is not None else 0
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _key(collection: str, generation: int, scope: str, params: dict[str, Any]) -> str:
        digest = hashlib.sha1(
            json.dumps(params, sort_keys=True, default=str).encode("utf-8")
        ).hexdigest()[:16]
        return f"{LIST_PREFIX}{collection}:{generation}:{scope}:{digest}"

    def _read(self, key: str) -> Any | None:
        try:
            raw = self._redis.get(key)
        except RedisError as exc:
            logger.warning(f"List cache read failed for {key}: {exc}")
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def _write(self, key: str, value: Any) -> None:
        try:
            self._redis.set(key, json.dumps(value, default=str), ex=self._ttl)
        except (RedisError, TypeError) as exc:
            # A failed write only costs a refetch next time.
            logger.warning(f"List cache write failed for {key}: {exc}")

    async def get_or_fetch(
        self,
        collection: str,
        params: dict[str, Any],
        fetch: Callable[[], Awaitable[Any]],
        scope: str | None = None,
    ) -> Any:
        """Serve ``collection`` for ``params`` from cache, or fetch and store it.

        Entries are partitioned by ``scope`` (one per caller). Without a scope
        nothing is read or written, so the payroll API authorizes every
        anonymous request itself.
        """
        if scope is None:
            return await fetch()

        generation = self._generation(collection)
        if generation < 0:
            return await fetch()

        key = self._key(collection, generation, scope, params)
        cached = self._read(key)
        if cached is not None:
            return cached

        value = await fetch()
        self._write(key, value)
        return value

    def invalidate(self, collection: str) -> None:
        """Make every cached page of ``collection`` stale."""
        try:
            generation = self._redis.incr(f"{GENERATION_PREFIX}{collection}")
            stale = [
                key
                for key in self._redis.scan_iter(match=f"{LIST_PREFIX}{collection}:*")
                if not _in_generation(key, collection, generation)
            ]
            if stale:
                self._redis.delete(*stale)
            logger.info(f"Invalidated cached {collection} lists (generation {generation})")
        except RedisError as exc:
            logger.warning(f"List cache invalidation failed for {collection}: {exc}")


def _in_generation(key: Any, collection: str, generation: int) -> bool:
    if isinstance(key, bytes):
        key = key.decode("utf-8")
    return str(key).startswith(f"{LIST_PREFIX}{collection}:{generation}:")
