import os
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env vars BEFORE importing movienight.main (pydantic settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("JWT_SECRET", "dev-test-secret")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")
os.environ.setdefault("ADMIN_USER_IDS", "")

from movienight.main import app as fastapi_app  # noqa: E402
from movienight.db.base_class import Base  # noqa: E402
import movienight.db.base  # noqa: F401,E402  (register models)
from movienight.db.session import engine, AsyncSessionLocal  # noqa: E402
from movienight.api.deps import get_db  # noqa: E402
from movienight.core.security import create_access_token  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_session(anyio_backend):
    # every test gets an empty schema: the cycle id is today's date, so
    # tests would otherwise share one cycle
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def client_factory(db_session):
    """Clients for different users, all sharing the test session."""

    async def _override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = _override_get_db

    @asynccontextmanager
    async def _factory(user_id: str | None = None):
        transport = ASGITransport(app=fastapi_app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            if user_id:
                c.cookies.set("access_token", create_access_token(user_id))
            yield c

    yield _factory

    fastapi_app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client(client_factory):
    async with client_factory("user-a") as c:
        yield c


@pytest.fixture
async def anon_client(client_factory):
    async with client_factory() as c:
        yield c
