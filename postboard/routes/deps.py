"""Request dependencies.

The store and cache are created by the app lifespan and kept on app.state.
"""

from typing import Annotated

from fastapi import Depends, Request

from postboard.stores.postgres import PostStore
from postboard.stores.redis import PostCache


def get_store(request: Request) -> PostStore:
    return request.app.state.store


def get_cache(request: Request) -> PostCache:
    return request.app.state.cache


StoreDep = Annotated[PostStore, Depends(get_store)]
CacheDep = Annotated[PostCache, Depends(get_cache)]
