"""Integration-test fixtures (requires running PG and applied migrations).

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session. The whole directory is skipped when the database
cannot be reached.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.iv_common.database import async_session_factory
from src.main import app

_PROMOTE_SQL = text("""
    UPDATE profiles SET role = 'ADMIN'
    WHERE user_id = (SELECT id FROM users WHERE username = :username)
""")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    try:
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        pytest.skip(f"database unavailable: {exc}")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_and_login(client: AsyncClient, admin: bool = False) -> dict[str, str]:
    """Register a fresh user and return its Authorization header."""
    username = f"{'admin' if admin else 'player'}_{uuid.uuid4().hex[:8]}"
    password = "TestPass1"
    resp = await client.post(
        "/api/v1/auth/register", json={"username": username, "password": password}
    )
    assert resp.status_code == 201, resp.text
    if admin:
        # Admins are promoted out of band, never through the API.
        async with async_session_factory() as db:
            await db.execute(_PROMOTE_SQL, {"username": username})
            await db.commit()
    login = await client.post(
        "/api/v1/auth/login", json={"username": username, "password": password}
    )
    return {"Authorization": f"Bearer {login.json()['data']['access_token']}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    return await register_and_login(client, admin=True)
