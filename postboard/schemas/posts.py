"""Schemas for the posts endpoints (/posts)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from postboard.models.post import TITLE_MAX_LENGTH


class PostCreate(BaseModel):
    """Request body for POST /posts. Surrounding whitespace is trimmed before checks."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    body: str = Field(min_length=1)


class PostRead(BaseModel):
    """A stored post."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    body: str
    created_at: datetime
