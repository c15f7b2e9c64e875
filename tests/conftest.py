"""
Test infrastructure for the Articles API.

Strategy
--------
- SQLite in-memory via aiosqlite removes the need for a running Postgres
  instance; StaticPool makes every session share the single connection
  that owns the in-memory database.
- The app's ``get_db`` dependency is overridden so every request uses the
  test session factory, and ``get_cache`` is overridden with a
  CacheManager backed by ``InMemoryRedis`` so cache hits, keys and
  invalidation are observable without a Redis server.
- All tables are created fresh before each test and dropped after.
- bcrypt runs at its minimum work factor to keep auth tests fast.
"""
import fnmatch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from articles_api.cache import CacheManager, get_cache
from articles_api.config import settings
from articles_api.database import Base, get_db
from articles_api.main import app

settings.BCRYPT_ROUNDS = 4

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Redis doubles
# ---------------------------------------------------------------------------

class InMemoryRedis:
    """The subset of ``redis.asyncio.Redis`` used by CacheManager, kept in a dict."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def scan_iter(self, match: str = "*"):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def flushdb(self) -> bool:
        self.store.clear()
        self.ttls.clear()
        return True

    async def aclose(self) -> None:
        pass


class BrokenRedis:
    """Every command fails, as when the Redis server is unreachable."""

    async def get(self, key):
        raise ConnectionError("redis unavailable")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis unavailable")

    async def delete(self, *keys):
        raise ConnectionError("redis unavailable")

    async def scan_iter(self, match="*"):
        raise ConnectionError("redis unavailable")
        yield  # pragma: no cover

    async def flushdb(self):
        raise ConnectionError("redis unavailable")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def cache_manager(fake_redis: InMemoryRedis) -> CacheManager:
    manager = CacheManager()
    manager._redis = fake_redis
    return manager


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call services directly or
    need to seed / inspect rows.
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(cache_manager: CacheManager) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with the cache dependency pointed at the in-memory Redis double.
    """
    app.dependency_overrides[get_cache] = lambda: cache_manager
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_cache, None)


async def register(client: AsyncClient, email: str, password: str = "secret123") -> tuple[str, dict]:
    """Register a user through the API and return (access_token, user)."""
    resp = await client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["accessToken"], body["user"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
