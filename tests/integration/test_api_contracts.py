"""API contract tests for every PaySecure endpoint.

Each test drives the ASGI app through httpx with the database session and,
where needed, the authenticated user replaced by FastAPI dependency overrides.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.deps import get_current_user
from src.api.routes.payments import get_payment_service
from src.db.database import get_session
from src.domains.payments.service import PaymentOutcome
from src.domains.users.security import create_access_token, hash_password
from src.main import app
from tests.conftest import make_result, make_session, make_user, override_get_session

pytestmark = pytest.mark.integration

BASE_URL = "http://test"
PASSWORD = "Str0ng!Pass"


def _setup_session(session=None):
    """Install mock session override and return the mock."""
    mock = session or make_session()
    app.dependency_overrides[get_session] = override_get_session(mock)
    return mock


def _login_as(user):
    app.dependency_overrides[get_current_user] = lambda: user


def _client():
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url=BASE_URL)


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    app.dependency_overrides.clear()


# =========================================================================
# HEALTH
# =========================================================================


class TestHealth:
    @pytest.mark.asyncio
    async def test_root(self):
        async with _client() as client:
            resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_healthy(self):
        with patch("src.api.routes.health.check_db", AsyncMock(return_value=True)):
            async with _client() as client:
                resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unhealthy(self):
        with patch("src.api.routes.health.check_db", AsyncMock(return_value=False)):
            async with _client() as client:
                resp = await client.get("/health")
        assert resp.status_code == 500
        assert resp.json()["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_unknown_route_uses_envelope(self):
        async with _client() as client:
            resp = await client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json()["success"] is False


# =========================================================================
# AUTH
# =========================================================================


class TestAuth:
    @pytest.mark.asyncio
    async def test_register(self):
        _setup_session(make_session([make_result(scalar=None)]))
        async with _client() as client:
            resp = await client.post(
                "/api/auth/register",
                json={
                    "email": "new@example.com",
                    "password": PASSWORD,
                    "firstName": "New",
                    "lastName": "User",
                },
            )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["role"] == "user"
        assert data["token"]

    @pytest.mark.asyncio
    async def test_register_duplicate(self):
        _setup_session(make_session([make_result(scalar=make_user())]))
        async with _client() as client:
            resp = await client.post(
                "/api/auth/register",
                json={
                    "email": "taken@example.com",
                    "password": PASSWORD,
                    "firstName": "Dup",
                    "lastName": "User",
                },
            )
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    @pytest.mark.asyncio
    async def test_register_validation(self):
        _setup_session()
        async with _client() as client:
            resp = await client.post(
                "/api/auth/register",
                json={"email": "bad", "password": "weak", "firstName": "A", "lastName": "User"},
            )
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        fields = {error["field"] for error in body["errors"]}
        assert {"email", "password", "firstName"} <= fields

    @pytest.mark.asyncio
    async def test_login_sets_session_cookie(self):
        user = make_user(password_hash=hash_password(PASSWORD))
        _setup_session(make_session([make_result(scalar=user)]))
        async with _client() as client:
            resp = await client.post(
                "/api/auth/login", json={"email": user.email, "password": PASSWORD}
            )
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["id"] == str(user.id)
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith("paysecure_session=")
        assert "HttpOnly" in cookie
        assert "samesite=strict" in cookie.lower()

    @pytest.mark.asyncio
    async def test_login_bad_password(self):
        user = make_user(password_hash=hash_password(PASSWORD))
        _setup_session(make_session([make_result(scalar=user)]))
        async with _client() as client:
            resp = await client.post(
                "/api/auth/login", json={"email": user.email, "password": "Wr0ng!Pass"}
            )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_profile_requires_token(self):
        _setup_session()
        async with _client() as client:
            resp = await client.get("/api/auth/profile")
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_profile_with_bearer_token(self):
        user = make_user()
        session = _setup_session()
        session.get = AsyncMock(return_value=user)
        async with _client() as client:
            resp = await client.get(
                "/api/auth/profile",
                headers={"Authorization": f"Bearer {create_access_token(user.id)}"},
            )
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["email"] == user.email

    @pytest.mark.asyncio
    async def test_profile_with_cookie(self):
        user = make_user()
        session = _setup_session()
        session.get = AsyncMock(return_value=user)
        async with _client() as client:
            client.cookies.set("paysecure_session", create_access_token(user.id))
            resp = await client.get("/api/auth/profile")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_inactive_user_rejected(self):
        user = make_user(is_active=False)
        session = _setup_session()
        session.get = AsyncMock(return_value=user)
        async with _client() as client:
            resp = await client.get(
                "/api/auth/profile",
                headers={"Authorization": f"Bearer {create_access_token(user.id)}"},
            )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self):
        session = _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert "paysecure_session=" in resp.headers["set-cookie"]
        session.commit.assert_awaited()


# =========================================================================
# PAYMENTS
# =========================================================================


class TestPayments:
    @pytest.mark.asyncio
    async def test_authorize_requires_auth(self):
        _setup_session()
        async with _client() as client:
            resp = await client.post("/api/payments/authorize", json={})
        assert resp.status_code in (400, 401)

    @pytest.mark.asyncio
    async def test_authorize_validation(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.post(
                "/api/payments/authorize",
                json={"paymentMethodId": str(uuid.uuid4()), "amount": 0, "currency": "usd"},
            )
        assert resp.status_code == 400
        fields = {error["field"] for error in resp.json()["errors"]}
        assert {"amount", "currency"} <= fields

    @pytest.mark.asyncio
    async def test_authorize_unknown_card(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.post(
                "/api/payments/authorize",
                json={"paymentMethodId": str(uuid.uuid4()), "amount": "25.00", "currency": "USD"},
            )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Payment method not found"

    @pytest.mark.asyncio
    async def test_decline_is_reported_in_band(self):
        _setup_session()
        _login_as(make_user())
        service = MagicMock()
        service.authorize = AsyncMock(
            return_value=PaymentOutcome(success=False, data={"transaction": {"status": "failed"}})
        )
        app.dependency_overrides[get_payment_service] = lambda: service
        async with _client() as client:
            resp = await client.post(
                "/api/payments/authorize",
                json={"paymentMethodId": str(uuid.uuid4()), "amount": "25.00", "currency": "USD"},
            )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Payment authorization failed"

    @pytest.mark.asyncio
    async def test_history(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/payments/history?limit=10")
        assert resp.status_code == 200
        assert resp.json()["data"]["transactions"] == []

    @pytest.mark.asyncio
    async def test_methods(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/payments/methods")
        assert resp.status_code == 200
        assert resp.json()["data"]["paymentMethods"] == []

    @pytest.mark.asyncio
    async def test_add_method(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.post(
                "/api/payments/methods",
                json={"lastFour": "4242", "brand": "visa", "expiryMonth": 12, "expiryYear": 2031},
            )
        assert resp.status_code == 201
        assert resp.json()["data"]["paymentMethod"]["lastFour"] == "4242"

    @pytest.mark.asyncio
    async def test_invalid_transaction_id(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/payments/not-a-uuid")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_capture_not_found(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.post(f"/api/payments/{uuid.uuid4()}/capture")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Authorized transaction not found"

    @pytest.mark.asyncio
    async def test_get_transaction_not_found(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get(f"/api/payments/{uuid.uuid4()}")
        assert resp.status_code == 404


# =========================================================================
# FRAUD
# =========================================================================


def _stats_row():
    row = MagicMock()
    row._mapping = {
        "total_transactions": 4,
        "low_risk": 2,
        "medium_risk": 1,
        "high_risk": 1,
        "critical_risk": 0,
        "avg_risk_score": 31.25,
        "max_risk_score": 80,
    }
    return row


class TestFraud:
    @pytest.mark.asyncio
    async def test_statistics(self):
        _setup_session(make_session([make_result(one=_stats_row())]))
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/fraud/statistics?timeRange=7d")
        assert resp.status_code == 200
        stats = resp.json()["data"]["statistics"]
        assert stats["totalTransactions"] == 4
        assert stats["riskDistribution"] == {"low": 2, "medium": 1, "high": 1, "critical": 0}
        assert stats["averageRiskScore"] == 31.25
        assert stats["maxRiskScore"] == 80

    @pytest.mark.asyncio
    async def test_statistics_bad_range(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/fraud/statistics?timeRange=1y")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_flagged(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/fraud/flagged?riskLevel=medium&limit=5")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"riskLevel": "medium", "transactions": []}

    @pytest.mark.asyncio
    async def test_flagged_bad_level(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/fraud/flagged?riskLevel=extreme")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_analyze_not_found(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.post(f"/api/fraud/analyze/{uuid.uuid4()}")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_rules(self):
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/fraud/rules")
        assert resp.status_code == 200
        names = [rule_set["name"] for rule_set in resp.json()["data"]["ruleSets"]]
        assert names == ["authorization-v1", "extended-v1"]


# =========================================================================
# ADMIN
# =========================================================================


class TestAdmin:
    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self):
        _setup_session()
        _login_as(make_user())
        async with _client() as client:
            resp = await client.get("/api/admin/users")
        assert resp.status_code == 403
        assert resp.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_list_users(self):
        listed = make_user()
        _setup_session(
            make_session([make_result(scalars=[listed]), make_result(scalar=1)])
        )
        _login_as(make_user(role="admin"))
        async with _client() as client:
            resp = await client.get("/api/admin/users?page=1&limit=10&search=test")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["users"][0]["id"] == str(listed.id)
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "totalPages": 1}

    @pytest.mark.asyncio
    async def test_update_role_invalid(self):
        _setup_session()
        _login_as(make_user(role="admin"))
        async with _client() as client:
            resp = await client.put(f"/api/admin/users/{uuid.uuid4()}/role", json={"role": "root"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_toggle_status(self):
        target = make_user()
        session = _setup_session()
        session.get = AsyncMock(return_value=target)
        _login_as(make_user(role="admin"))
        async with _client() as client:
            resp = await client.put(f"/api/admin/users/{target.id}/status")
        assert resp.status_code == 200
        assert resp.json()["message"] == "User deactivated successfully"
        assert resp.json()["data"]["user"]["isActive"] is False

    @pytest.mark.asyncio
    async def test_create_admin(self):
        _setup_session(make_session([make_result(scalar=None)]))
        _login_as(make_user(role="admin"))
        async with _client() as client:
            resp = await client.post(
                "/api/admin/users",
                json={
                    "email": "second-admin@example.com",
                    "password": "longenough",
                    "firstName": "Second",
                    "lastName": "Admin",
                },
            )
        assert resp.status_code == 201
        assert resp.json()["data"]["user"]["role"] == "admin"
