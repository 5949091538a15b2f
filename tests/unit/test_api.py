"""HTTP-level tests that need no database: health, auth guards, error envelope."""
import pytest
from httpx import AsyncClient

from src.iv_gateway.auth.jwt_handler import create_access_token, create_refresh_token


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}

    async def test_request_id_header(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.headers["x-request-id"].startswith("req_")


class TestAuthGuards:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/v1/auth/me"),
            ("post", "/api/v1/scenarios/sc-1/join"),
            ("get", "/api/v1/scenarios/sc-1/portfolio"),
            ("get", "/api/v1/scenarios/sc-1/orders"),
            ("post", "/api/v1/orders/ord-1/cancel"),
            ("get", "/api/v1/scenarios/sc-1/ledger"),
            ("post", "/api/v1/admin/scenarios/test"),
            ("get", "/api/v1/admin/scenarios/sc-1/stats"),
        ],
    )
    async def test_requires_token(self, client: AsyncClient, method: str, path: str) -> None:
        resp = await client.request(method.upper(), path)
        assert resp.status_code == 401

    async def test_garbage_token(self, client: AsyncClient) -> None:
        resp = await client.get(
            "/api/v1/scenarios/sc-1/portfolio", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401

    async def test_refresh_token_is_not_an_access_token(self, client: AsyncClient) -> None:
        token = create_refresh_token("42")
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401


class TestRefresh:
    async def test_refresh_issues_access_token(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": create_refresh_token("42")}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["access_token"]
        assert body["request_id"].startswith("req_")

    async def test_access_token_cannot_refresh(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": create_access_token("42")}
        )
        assert resp.status_code == 401
        body = resp.json()
        assert body["code"] != 0
        assert body["data"] is None


class TestValidation:
    async def test_register_rejects_weak_password(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/auth/register", json={"username": "alice", "password": "short"}
        )
        assert resp.status_code == 422
