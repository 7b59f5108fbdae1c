"""Pydantic schemas for API request/response validation."""

from postboard.schemas.common import ErrorDetail, ErrorResponse
from postboard.schemas.health import HealthResponse
from postboard.schemas.posts import PostCreate, PostRead

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "PostCreate",
    "PostRead",
]
