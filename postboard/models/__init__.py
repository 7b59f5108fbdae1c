"""SQLAlchemy ORM models.

Models represent database tables:
- posts: user-submitted posts (the single source of truth for the post list)
"""

from postboard.models.base import Base
from postboard.models.post import Post

__all__ = ["Base", "Post"]
