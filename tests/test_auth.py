"""Authentication service and capability-gated endpoint tests."""

import pytest
import pytest_asyncio

from smart_taxis.domain.enums import Capability, UserRole
from smart_taxis.services.auth import (
    AuthService,
    DuplicateUser,
    InvalidCredentials,
    InvalidToken,
    MissingCredentials,
    PermissionDenied,
    authorize,
)
from tests.conftest import login


@pytest_asyncio.fixture
async def auth(memory_store) -> AuthService:
    return AuthService(memory_store, hash_rounds=4)


class TestAuthService:
    @pytest.mark.asyncio
    async def test_register_and_login(self, auth):
        user, token = await auth.register("maria", "maria@example.com", "s3cret")
        assert user.role == UserRole.DRIVER
        assert user.password_hash != "s3cret"
        assert len(token.token) == 64

        for login_name in ("maria", "maria@example.com"):
            logged_in, token = await auth.login(login_name, "s3cret")
            assert logged_in.id == user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth):
        await auth.register("maria", "maria@example.com", "s3cret")
        with pytest.raises(InvalidCredentials, match="Invalid credentials"):
            await auth.login("maria", "nope")

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth):
        with pytest.raises(InvalidCredentials):
            await auth.login("ghost", "whatever")

    @pytest.mark.asyncio
    async def test_duplicate_username_or_email(self, auth):
        await auth.register("maria", "maria@example.com", "s3cret")
        with pytest.raises(DuplicateUser):
            await auth.register("maria", "other@example.com", "x")
        with pytest.raises(DuplicateUser):
            await auth.register("other", "maria@example.com", "x")

    @pytest.mark.asyncio
    async def test_authenticate(self, auth):
        user, token = await auth.register("maria", "maria@example.com", "s3cret")
        principal = await auth.authenticate(token.token)
        assert principal.user.id == user.id
        assert principal.can(Capability.VIEW_DRIVERS)
        assert not principal.can(Capability.VIEW_DASHBOARD)

    @pytest.mark.asyncio
    async def test_authenticate_rejects_bad_tokens(self, auth):
        with pytest.raises(MissingCredentials):
            await auth.authenticate(None)
        with pytest.raises(InvalidToken):
            await auth.authenticate("not-a-token")

    @pytest.mark.asyncio
    async def test_expired_token(self, memory_store):
        auth = AuthService(memory_store, token_ttl_minutes=0, hash_rounds=4)
        _, token = await auth.register("maria", "maria@example.com", "s3cret")
        with pytest.raises(InvalidToken, match="Invalid or expired token"):
            await auth.authenticate(token.token)

    @pytest.mark.asyncio
    async def test_ensure_admin_is_idempotent(self, auth):
        first = await auth.ensure_admin("admin", "admin@example.com", "pw")
        second = await auth.ensure_admin("admin", "admin@example.com", "other")
        assert first.id == second.id
        assert first.role == UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_authorize(self, auth):
        _, token = await auth.register("maria", "maria@example.com", "s3cret")
        principal = await auth.authenticate(token.token)
        assert authorize(principal, Capability.VIEW_MISSIONS) is principal
        with pytest.raises(PermissionDenied, match="Insufficient permissions"):
            authorize(principal, Capability.MANAGE_USERS)
        with pytest.raises(MissingCredentials, match="Access token required"):
            authorize(None, Capability.VIEW_MISSIONS)


class TestAuthEndpoints:
    @pytest.mark.asyncio
    async def test_login(self, client):
        resp = await client.post(
            "/auth/login", json={"username": "admin", "password": "admin-secret"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["user"]["role"] == "admin"
        assert "password_hash" not in body["user"]

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, client):
        resp = await client.post("/auth/login", json={"username": "admin"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Username and password are required"

    @pytest.mark.asyncio
    async def test_login_bad_password(self, client):
        resp = await client.post(
            "/auth/login", json={"username": "admin", "password": "wrong"}
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_register_requires_admin(self, client, driver_headers):
        payload = {"username": "x", "email": "x@example.com", "password": "pw"}
        assert (await client.post("/auth/register", json=payload)).status_code == 401
        resp = await client.post("/auth/register", json=payload, headers=driver_headers)
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_register(self, client, admin_headers):
        payload = {"username": "lisa", "email": "lisa@example.com", "password": "pw"}
        resp = await client.post("/auth/register", json=payload, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["user"]["username"] == "lisa"
        assert await login(client, "lisa@example.com", "pw")

        again = await client.post("/auth/register", json=payload, headers=admin_headers)
        assert again.status_code == 409
        assert again.json()["detail"] == "Username or email already exists"

    @pytest.mark.asyncio
    async def test_register_missing_fields(self, client, admin_headers):
        resp = await client.post(
            "/auth/register", json={"username": "lisa"}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Username, email, and password are required"


class TestCapabilityGates:
    @pytest.mark.asyncio
    async def test_no_token(self, client):
        resp = await client.get("/api/v1/admin/drivers")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Access token required"

    @pytest.mark.asyncio
    async def test_bogus_token(self, client):
        resp = await client.get(
            "/api/v1/admin/drivers", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_driver_role(self, client, driver_headers):
        assert (await client.get("/api/v1/admin/drivers", headers=driver_headers)).status_code == 200
        assert (await client.get("/api/v1/admin/missions", headers=driver_headers)).status_code == 200

        resp = await client.get("/api/v1/admin/dashboard", headers=driver_headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Insufficient permissions"

        resp = await client.patch(
            "/api/v1/admin/drivers/1", json={"status": "offline"}, headers=driver_headers
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_role(self, client, admin_headers):
        for path in ("drivers", "missions", "dashboard"):
            resp = await client.get(f"/api/v1/admin/{path}", headers=admin_headers)
            assert resp.status_code == 200, path
