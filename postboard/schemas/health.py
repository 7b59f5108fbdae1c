"""Schemas for GET /health."""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Reachability of each dependency, probed independently."""

    store: Literal["ok", "unreachable"]
    cache: Literal["ok", "degraded"]
