"""Post endpoints.

GET /posts  - All posts, newest first (cache-aside).
POST /posts - Create a post and invalidate the cached list.

Routers are thin: call services for business logic.
"""

from fastapi import APIRouter, Response, status

from postboard.routes.deps import CacheDep, StoreDep
from postboard.schemas import ErrorResponse, PostCreate, PostRead
from postboard.services import posts as post_service

router = APIRouter()


@router.get(
    "",
    response_model=list[PostRead],
    responses={503: {"model": ErrorResponse, "description": "Postgres unreachable"}},
)
async def list_posts(response: Response, store: StoreDep, cache: CacheDep) -> list[PostRead]:
    """List posts, newest first.

    The X-Cache response header reports HIT, MISS or BYPASS (cache degraded).
    """
    result = await post_service.list_posts(store, cache)
    response.headers["X-Cache"] = result.source.value
    return result.posts


@router.post(
    "",
    response_model=PostRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or empty title/body"},
        503: {"model": ErrorResponse, "description": "Postgres unreachable"},
    },
)
async def create_post(payload: PostCreate, store: StoreDep, cache: CacheDep) -> PostRead:
    """Create a post.

    Returns:
        The stored post with its assigned id and created_at.
    """
    return await post_service.create_post(store, cache, payload)
