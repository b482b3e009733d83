"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite removes the need for a running Postgres
  instance, keeping the suite fast and self-contained.
- Each test gets its own ``Database`` (fresh engine, fresh in-memory
  database, tables created up front), so no state leaks between tests.
- StaticPool makes every session of that engine share one connection,
  which an in-memory SQLite database requires: a second connection would
  see an empty database.
- The app reads its ``Database`` from ``app.state.db``; the HTTP client
  fixture points it at the test database.  httpx's ASGITransport does not
  run the lifespan, so the production engine is never created.
"""
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.database import Database
from blog_api.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def database():
    db = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.connect()
    await db.create_all()
    yield db
    await db.drop_all()
    await db.disconnect()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncSession:
    """
    A live AsyncSession for tests that call the service layer directly.
    Nothing is committed; the session is discarded with the database.
    """
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(database: Database) -> AsyncClient:
    """An httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    app.state.db = database
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
