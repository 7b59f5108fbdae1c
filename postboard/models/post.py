"""Post model.

The only persisted entity. Ids come from the database sequence and are
never reused; created_at is stamped by the server at insert time.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from postboard.models.base import Base

TITLE_MAX_LENGTH = 200


class Post(Base):
    """A titled text post."""

    __tablename__ = "posts"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH))
    body: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Post {self.id} {self.title!r}>"
