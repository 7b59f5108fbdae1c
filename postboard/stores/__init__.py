"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: connection pool, schema bootstrap, post rows
- Redis: best-effort caching with TTL policies

No request/response logic in stores - that belongs in services.
"""

from postboard.stores.postgres import PostStore, StoreUnavailableError
from postboard.stores.redis import CacheResult, CacheStatus, PostCache

__all__ = ["CacheResult", "CacheStatus", "PostCache", "PostStore", "StoreUnavailableError"]
