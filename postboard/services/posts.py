"""Post service: cache-aside reads, store-first writes.

Read path (GET /posts):
1. Look up the post list in Redis
2. HIT -> return it
3. MISS -> read Postgres (newest first), populate Redis with TTL, return
4. DEGRADED -> read Postgres, leave Redis alone

Write path (POST /posts):
1. Insert into Postgres and wait for the commit
2. Delete the cached list, so the next read repopulates from Postgres

Invalidation runs strictly after the commit.
Postgres errors propagate as StoreUnavailableError; cache failures never do.
"""

from dataclasses import dataclass
from enum import Enum
import logging

from postboard.schemas import PostCreate, PostRead
from postboard.stores.postgres import PostStore
from postboard.stores.redis import CacheStatus, PostCache

logger = logging.getLogger("uvicorn.error")


class ReadSource(str, Enum):
    """Where a post list came from. Sent back as the X-Cache header."""

    HIT = "HIT"
    MISS = "MISS"
    BYPASS = "BYPASS"


@dataclass(frozen=True)
class PostList:
    posts: list[PostRead]
    source: ReadSource


async def list_posts(store: PostStore, cache: PostCache) -> PostList:
    """Get all posts, newest first, through the cache.

    Raises:
        StoreUnavailableError: On a cache miss or bypass when Postgres is down.
    """
    cached = await cache.get_posts()
    if cached.hit:
        return PostList(posts=cached.value, source=ReadSource.HIT)

    rows = await store.list_posts()
    posts = [PostRead.model_validate(row) for row in rows]

    if cached.status is CacheStatus.DEGRADED:
        logger.info("Cache degraded, served post list from Postgres")
        return PostList(posts=posts, source=ReadSource.BYPASS)

    await cache.set_posts(posts)
    return PostList(posts=posts, source=ReadSource.MISS)


async def create_post(store: PostStore, cache: PostCache, data: PostCreate) -> PostRead:
    """Persist a post, then invalidate the cached list.

    Raises:
        StoreUnavailableError: If Postgres is down; the cache is left untouched.
    """
    row = await store.insert_post(title=data.title, body=data.body)
    post = PostRead.model_validate(row)

    if await cache.invalidate_posts() is CacheStatus.DEGRADED:
        # Entry (if any) still expires after the TTL
        logger.warning(f"Post {post.id} created but cache invalidation failed")
    return post
