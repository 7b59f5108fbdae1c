"""PostgreSQL store with async SQLAlchemy.

Handles:
- Connection pooling (one engine per process, owned by the app lifespan)
- Idempotent schema bootstrap
- Row access for posts

Every failure to reach or query the database surfaces as StoreUnavailableError.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging

from sqlalchemy import select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, ProgrammingError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from postboard.models import Base, Post
from postboard.settings import Settings

logger = logging.getLogger("uvicorn.error")

# Driver and pool failures, plus socket errors that escape the driver.
STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class StoreUnavailableError(RuntimeError):
    """Postgres could not be reached, or did not answer within its timeout."""


def _consume_exception(future: asyncio.Future) -> None:
    # Marks the error as retrieved even if every waiter was cancelled
    if not future.cancelled():
        future.exception()


class PostStore:
    """Pooled access to the posts table."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._schema_ready = False
        self._schema_attempt: asyncio.Future[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostStore":
        """Build the connection pool described by settings."""
        url = settings.async_database_url
        pool_options: dict[str, object] = {}
        # SQLite (local dev) has no server-side pool to size
        if make_url(url).get_backend_name() != "sqlite":
            pool_options = {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_timeout": settings.db_pool_timeout,
            }
        engine = create_async_engine(
            url,
            echo=settings.debug,
            connect_args=settings.asyncpg_connect_args,
            pool_pre_ping=True,
            **pool_options,
        )
        return cls(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def close(self) -> None:
        """Close database connection pool."""
        await self._engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session context manager.

        Commits on clean exit, rolls back on error.

        Usage:
            async with store.session() as session:
                result = await session.execute(query)
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # ============================================================
    # Schema
    # ============================================================

    async def create_schema(self) -> None:
        """Create the posts table if it does not exist.

        Safe to run from many replicas at once: if another replica wins the
        race between the existence check and CREATE, the second pass sees the
        table and does nothing.

        Raises:
            StoreUnavailableError: If Postgres is unreachable.
        """
        for attempt in (1, 2):
            try:
                async with self._engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                break
            except (IntegrityError, ProgrammingError) as exc:
                if attempt == 2:
                    raise StoreUnavailableError(f"Schema creation failed: {exc}") from exc
                logger.info("Schema creation raced with another replica, re-checking")
            except STORE_ERRORS as exc:
                raise StoreUnavailableError(f"Schema creation failed: {exc}") from exc
        self._schema_ready = True

    async def _ensure_schema(self) -> None:
        """Create the schema if startup could not, sharing one attempt between concurrent callers.

        Callers arriving while an attempt is running await that same attempt, so a dead
        store costs each request at most one connect timeout. A failed attempt is not
        cached: the next caller after it finishes starts a fresh one.
        """
        if self._schema_ready:
            return
        if self._schema_attempt is None or self._schema_attempt.done():
            self._schema_attempt = asyncio.ensure_future(self.create_schema())
            self._schema_attempt.add_done_callback(_consume_exception)
        # shield: one cancelled request must not cancel the attempt for the others
        await asyncio.shield(self._schema_attempt)

    # ============================================================
    # Post rows
    # ============================================================

    async def list_posts(self) -> list[Post]:
        """Get all posts, newest first.

        Raises:
            StoreUnavailableError: If Postgres is unreachable.
        """
        await self._ensure_schema()
        query = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
        try:
            async with self.session() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except STORE_ERRORS as exc:
            raise StoreUnavailableError(f"Listing posts failed: {exc}") from exc

    async def insert_post(self, title: str, body: str) -> Post:
        """Insert a post and return it with its assigned id and created_at.

        Returns only after the transaction has committed.

        Raises:
            StoreUnavailableError: If Postgres is unreachable.
        """
        await self._ensure_schema()
        post = Post(title=title, body=body)
        try:
            async with self.session() as session:
                session.add(post)
                await session.flush()
                # created_at is a server default; load it before the session closes
                await session.refresh(post)
        except STORE_ERRORS as exc:
            raise StoreUnavailableError(f"Inserting post failed: {exc}") from exc
        return post

    async def ping(self) -> bool:
        """Check that Postgres answers a trivial query."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except STORE_ERRORS as exc:
            logger.warning(f"Postgres ping failed: {exc}")
            return False
        return True
