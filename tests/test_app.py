"""
Application-level tests: service endpoints, the response envelope across
error paths, middleware headers, and the stats aggregate.
"""
import logging

import pytest
from httpx import ASGITransport, AsyncClient

from blog_api.database import Database
from blog_api.main import app
from blog_api.schemas import UserCreate
from blog_api.services import user_service


@pytest.mark.asyncio
async def test_root_lists_endpoints(async_client: AsyncClient):
    resp = await async_client.get("/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["version"] == "1.0.0"
    assert body["endpoints"]["posts"] == "/api/v1/posts"
    assert body["endpoints"]["health"] == "/health"


@pytest.mark.asyncio
async def test_health_healthy(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["version"] == "1.0.0"
    assert "timestamp" in body
    assert body["uptime_seconds"] >= 0


@pytest.mark.asyncio
async def test_health_unhealthy_when_database_unavailable(async_client: AsyncClient):
    app.state.db = Database("sqlite+aiosqlite:///:memory:")  # never connected
    resp = await async_client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unhealthy"
    assert resp.json()["database"] == "disconnected"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Not Found"}


@pytest.mark.asyncio
async def test_response_headers(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users")
    assert float(resp.headers["x-response-time-ms"]) >= 0
    assert int(resp.headers["x-query-count"]) >= 0


@pytest.mark.asyncio
async def test_cors_preflight_without_credentials(async_client: AsyncClient):
    resp = await async_client.options(
        "/api/v1/posts",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert resp.headers.get("access-control-allow-credentials", "").lower() != "true"


@pytest.mark.asyncio
async def test_unexpected_error_is_generic_500(database: Database, monkeypatch):
    """Storage or programming errors never leak their text to the client."""

    async def broken(db):
        raise RuntimeError("relation users does not exist at 10.0.0.5")

    monkeypatch.setattr(user_service, "get_users", broken)
    app.state.db = database
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/v1/users")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error"}


@pytest.mark.asyncio
async def test_unexpected_service_error_is_logged_once(database: Database, monkeypatch, caplog):
    async with database.session() as session:
        await user_service.create_user(session, UserCreate(username="logged", email="logged@example.com"))
        await session.commit()

    def broken(user):
        raise RuntimeError("column users.bio does not exist")

    monkeypatch.setattr(user_service, "_user_to_dict", broken)
    app.state.db = database
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    caplog.set_level(logging.INFO)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/v1/users")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error"}
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].getMessage() == "UserService: find all users failed"
    assert errors[0].exc_info is not None
    assert any(" -> 500 " in r.getMessage() and r.levelno == logging.INFO for r in caplog.records)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_stats_empty(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/stats")
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "users": 0,
        "posts": 0,
        "posts_by_status": {"DRAFT": 0, "PUBLISHED": 0, "ARCHIVED": 0},
        "tags": 0,
        "comments": 0,
    }


@pytest.mark.asyncio
async def test_stats_status_breakdown_sums_to_total(async_client: AsyncClient):
    user = (await async_client.post("/api/v1/users", json={
        "username": "stats", "email": "stats@example.com",
    })).json()["data"]
    for title, status in (("One", "PUBLISHED"), ("Two", "PUBLISHED"), ("Three", "DRAFT"), ("Four", "ARCHIVED")):
        await async_client.post("/api/v1/posts", json={"title": title, "status": status, "author_id": user["id"]})
    await async_client.post("/api/v1/tags", json={"name": "Python"})

    stats = (await async_client.get("/api/v1/stats")).json()["data"]
    assert stats["users"] == 1
    assert stats["posts"] == 4
    assert stats["posts_by_status"] == {"DRAFT": 1, "PUBLISHED": 2, "ARCHIVED": 1}
    assert sum(stats["posts_by_status"].values()) == stats["posts"]
    assert stats["tags"] == 1
    assert stats["comments"] == 0
