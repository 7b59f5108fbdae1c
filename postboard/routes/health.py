"""Health endpoint.

GET /health - Always 200; reports store ok|unreachable and cache ok|degraded.
"""

from fastapi import APIRouter

from postboard.routes.deps import CacheDep, StoreDep
from postboard.schemas import HealthResponse
from postboard.services.health import check_health

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(store: StoreDep, cache: CacheDep) -> HealthResponse:
    """Health check endpoint."""
    return await check_health(store, cache)
