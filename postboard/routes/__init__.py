"""API routes."""

from fastapi import APIRouter

from postboard.routes import health, posts

api_router = APIRouter()

# Dependency health (used by probes and the landing page)
api_router.include_router(health.router, tags=["health"])

# Posts (list + create)
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
