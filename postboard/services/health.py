"""Dependency health probing for GET /health.

Postgres and Redis are checked concurrently and reported separately.
A dead cache is reported as degraded and never fails the check.
"""

import asyncio

from postboard.schemas import HealthResponse
from postboard.stores.postgres import PostStore
from postboard.stores.redis import PostCache


async def check_health(store: PostStore, cache: PostCache) -> HealthResponse:
    """Probe both dependencies. Never raises."""
    store_ok, cache_ok = await asyncio.gather(store.ping(), cache.ping())
    return HealthResponse(
        store="ok" if store_ok else "unreachable",
        cache="ok" if cache_ok else "degraded",
    )
