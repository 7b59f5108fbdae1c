"""Shared fixtures: a real PostStore on SQLite, Redis replaced by an in-memory fake."""

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import create_async_engine

from postboard.main import create_app
from postboard.settings import Settings
from postboard.stores.postgres import PostStore
from postboard.stores.redis import PostCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """The slice of redis.asyncio.Redis that PostCache uses, with expiry and an outage switch."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.data: dict[str, tuple[bytes, float]] = {}
        self.down = False
        self.calls: list[str] = []
        self.closed = False

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def get(self, key: str) -> bytes | None:
        self._check("get")
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock.now >= expires_at:
            del self.data[key]
            return None
        return value

    async def setex(self, key: str, ttl: int, value: str | bytes) -> bool:
        self._check("setex")
        # Like redis-py without decode_responses: str goes in as UTF-8, bytes come out
        if isinstance(value, str):
            value = value.encode("utf-8")
        self.data[key] = (value, self.clock.now + ttl)
        return True

    async def delete(self, *keys: str) -> int:
        self._check("delete")
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def ping(self) -> bool:
        self._check("ping")
        return True

    async def aclose(self) -> None:
        self.closed = True


class CountingStore(PostStore):
    """PostStore that records every call reaching Postgres."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[str] = []

    async def list_posts(self):
        self.calls.append("list_posts")
        return await super().list_posts()

    async def insert_post(self, title: str, body: str):
        self.calls.append("insert_post")
        return await super().insert_post(title=title, body=body)

    @property
    def reads(self) -> int:
        return self.calls.count("list_posts")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def cache(fake_redis: FakeRedis) -> PostCache:
    return PostCache(fake_redis, ttl=30)


@pytest.fixture
async def store(tmp_path):
    """Real PostStore backed by a throwaway SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}")
    store = CountingStore(engine)
    await store.create_schema()
    yield store
    await store.close()


@pytest.fixture
async def dead_store(tmp_path):
    """PostStore whose database can never be opened."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'posts.db'}")
    store = CountingStore(engine)
    yield store
    await store.close()


@pytest.fixture
def api_app(store: PostStore, cache: PostCache):
    """API app with stores injected directly (lifespan is not run)."""
    app = create_app(Settings())
    app.state.store = store
    app.state.cache = cache
    return app


@pytest.fixture
async def client(api_app):
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=api_app),
        base_url="http://test",
    ) as ac:
        yield ac
