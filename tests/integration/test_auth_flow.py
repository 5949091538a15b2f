"""Integration tests for auth flow (requires running PG).

Run: pytest tests/integration/test_auth_flow.py -v
Pre-condition: alembic upgrade head
"""

import uuid

import pytest
from httpx import AsyncClient

# All tests in this module share the session-scoped event loop so that the
# module-level SQLAlchemy async engine pool stays alive across tests.
pytestmark = pytest.mark.asyncio(loop_scope="session")


def unique_user() -> dict[str, str]:
    """Generate unique credentials to avoid test pollution."""
    uid = uuid.uuid4().hex[:8]
    return {"username": f"testuser_{uid}", "password": "TestPass1"}


class TestRegister:
    async def test_register_success(self, client: AsyncClient) -> None:
        user = unique_user()
        resp = await client.post("/api/v1/auth/register", json=user)
        assert resp.status_code == 201
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["username"] == user["username"]
        assert body["data"]["display_name"] == user["username"]
        assert "user_id" in body["data"]

    async def test_register_duplicate_username(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post("/api/v1/auth/register", json=user)
        assert resp.status_code == 409
        assert resp.json()["code"] == 1001


class TestLogin:
    async def test_login_and_me(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json={**user, "display_name": "Trader Joe"})
        resp = await client.post("/api/v1/auth/login", json=user)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user"]["role"] == "PLAYER"

        me = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["data"]["display_name"] == "Trader Joe"

    async def test_wrong_password(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post(
            "/api/v1/auth/login", json={**user, "password": "WrongPass9"}
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003

    async def test_refresh(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        login = await client.post("/api/v1/auth/login", json=user)
        resp = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": login.json()["data"]["refresh_token"]},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["access_token"]
