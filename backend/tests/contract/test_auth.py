"""
Contract tests for authentication endpoints.
Tests POST /auth/login and GET /auth/me.
"""
from datetime import datetime, timedelta, UTC

import jwt
import pytest
from httpx import AsyncClient
from fastapi import status

from oilshop_admin.routers.auth import ALGORITHM, SECRET_KEY, create_access_token


class TestAuthLogin:
    """Contract tests for POST /auth/login endpoint."""

    @pytest.mark.asyncio
    async def test_login_with_valid_credentials(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/auth/login", json={
            "username": "test_admin",
            "password": "secure_password"
        })

        assert response.status_code == status.HTTP_200_OK
        response_data = response.json()
        assert response_data["status"] == "success"

        data = response_data["data"]
        assert data["token_type"] == "bearer"
        assert isinstance(data["expires_in"], int)
        assert data["expires_in"] > 0

        user = data["user"]
        assert user["username"] == "test_admin"
        assert user["role"] == "admin"

        claims = jwt.decode(data["access_token"], SECRET_KEY, algorithms=[ALGORITHM])
        assert claims["sub"] == "test_admin"

    @pytest.mark.asyncio
    async def test_login_by_email(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/auth/login", json={
            "email": "TEST_ADMIN@example.com",
            "password": "secure_password"
        })

        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_login_with_invalid_credentials(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/auth/login", json={
            "username": "test_admin",
            "password": "wrong_password"
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        response_data = response.json()
        assert response_data["status"] == "error"
        assert response_data["error"]["code"] == "AUTH_INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_login(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/auth/login", json={
            "username": "disabled_operator",
            "password": "secure_password"
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_login_requires_identifier(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/auth/login", json={"password": "x"})

        assert response.status_code == 422


class TestAuthToken:
    """Token validation with the FAST_TESTS shortcut disabled."""

    @pytest.mark.asyncio
    async def test_profile_with_real_token(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.delenv("FAST_TESTS", raising=False)
        token = create_access_token({"sub": "test_admin"})

        response = await async_client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["username"] == "test_admin"
        assert data["role"] == "admin"
        assert data["is_active"] is True

    @pytest.mark.asyncio
    async def test_expired_token(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.delenv("FAST_TESTS", raising=False)
        token = jwt.encode(
            {"sub": "test_admin", "exp": datetime.now(UTC) - timedelta(minutes=5)},
            SECRET_KEY, algorithm=ALGORITHM)

        response = await async_client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "AUTH_TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_garbage_token(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.delenv("FAST_TESTS", raising=False)

        response = await async_client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "AUTH_INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_token_of_inactive_user(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.delenv("FAST_TESTS", raising=False)
        token = create_access_token({"sub": "disabled_operator"})

        response = await async_client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_fast_mode_accepts_any_bearer(self, auth_client: AsyncClient):
        response = await auth_client.get("/api/v1/auth/me")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["username"] == "test_admin"
