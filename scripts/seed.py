#!/usr/bin/env python3
"""Seed the posts table with a few sample posts.

Writes through PostStore (so the schema is created if missing) and then
drops the cached post list, the same way POST /posts does.

Usage:
    python -m scripts.seed
    python -m scripts.seed --count 3
"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from postboard.settings import Settings
from postboard.stores.postgres import PostStore
from postboard.stores.redis import PostCache

load_dotenv()

logger = logging.getLogger("postboard.seed")

SAMPLE_POSTS = [
    ("Hello, cluster", "First post served through the gateway."),
    ("Cache-aside", "Reads check Redis first and fall back to Postgres on a miss."),
    ("Replicas", "Every API replica shares the same Postgres and Redis."),
    ("Degradation", "If Redis goes away, reads keep working straight from Postgres."),
]


async def seed(count: int) -> int:
    settings = Settings()
    store = PostStore.from_settings(settings)
    cache = PostCache.from_settings(settings)
    try:
        await store.create_schema()
        created = 0
        for title, body in SAMPLE_POSTS[:count]:
            post = await store.insert_post(title=title, body=body)
            logger.info(f"Created post {post.id}: {post.title}")
            created += 1
        await cache.invalidate_posts()
        return created
    finally:
        await cache.close()
        await store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--count", type=int, default=len(SAMPLE_POSTS), help="Number of sample posts")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    created = asyncio.run(seed(max(0, args.count)))
    print(f"Seeded {created} posts")


if __name__ == "__main__":
    main()
