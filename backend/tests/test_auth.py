"""
Authentication and authorization tests.

Verifies:
- Login issues a bearer token and rejects bad credentials
- Tokens validate until logout
- Unauthenticated requests return 401
- Cashier role is denied manager operations (403)
"""

import pytest

from pos.services import auth_service, session_service
from pos.services.auth_service import PasswordValidationError
from pos.validation import ConflictError

PASSWORD = "Password123!"


# =============================================================================
# SERVICE
# =============================================================================


class TestAuthService:

    def test_password_is_hashed(self, admin_user):
        assert admin_user.password_hash != PASSWORD
        assert auth_service.verify_password(PASSWORD, admin_user.password_hash)
        assert not auth_service.verify_password("wrong", admin_user.password_hash)

    def test_weak_password_rejected(self, db_session):
        with pytest.raises(PasswordValidationError):
            auth_service.create_user("weak", "short", "Weak User")

    def test_duplicate_username_rejected(self, admin_user):
        with pytest.raises(ConflictError):
            auth_service.create_user("admin", PASSWORD, "Another Admin")

    def test_authenticate_by_email(self, admin_user):
        user = auth_service.authenticate("admin@pos.local", PASSWORD)
        assert user.id == admin_user.id
        assert user.last_login_at is not None

    def test_inactive_user_cannot_authenticate(self, db_session, cashier_user):
        cashier_user.is_active = False
        db_session.commit()
        assert auth_service.authenticate("cashier", PASSWORD) is None

    def test_revoked_session_is_invalid(self, cashier_user):
        _, token = session_service.create_session(cashier_user.id)
        assert session_service.validate_session(token).id == cashier_user.id

        assert session_service.revoke_session(token)
        assert session_service.validate_session(token) is None
        assert not session_service.revoke_session(token)


# =============================================================================
# HTTP
# =============================================================================


class TestLogin:

    def test_login_returns_bearer_token(self, client, manager_user):
        resp = client.post("/api/auth/login", json={"username": "manager", "password": PASSWORD})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 24 * 3600
        assert body["user"]["role"] == "MANAGER"
        assert "password_hash" not in body["user"]

    def test_login_is_logged_once(self, client, manager_user, caplog):
        with caplog.at_level("INFO"):
            client.post("/api/auth/login", json={"username": "manager", "password": PASSWORD})

        messages = [r.getMessage() for r in caplog.records if "manager" in r.getMessage()]
        assert messages == ["Login successful for user: manager"]

    def test_bad_password(self, client, manager_user):
        resp = client.post("/api/auth/login", json={"username": "manager", "password": "Nope123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "manager"})
        assert resp.status_code == 400

    def test_validate_and_logout(self, client, cashier_headers):
        token = cashier_headers["Authorization"].split(" ", 1)[1]

        assert client.get("/api/auth/validate", query_string={"token": token}).get_json() == {"valid": True}

        resp = client.post("/api/auth/logout", headers=cashier_headers)
        assert resp.status_code == 200

        assert client.get("/api/auth/validate", query_string={"token": token}).get_json() == {"valid": False}
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401

    def test_me(self, client, cashier_headers):
        resp = client.get("/api/auth/me", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "cashier"


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/sales/1/cancel"),
            ("GET", "/api/reports/sales/summary"),
            ("GET", "/api/reports/sales/download/csv"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


class TestCashierDenied:
    """Cashier role cannot perform manager operations."""

    def test_cannot_create_product(self, client, cashier_headers):
        resp = client.post(
            "/api/products",
            json={"sku": "X-1", "name": "X", "price": "1.00"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["required_roles"] == ["ADMIN", "MANAGER"]

    def test_cannot_view_reports(self, client, cashier_headers):
        resp = client.get(
            "/api/reports/sales/summary",
            query_string={"start_date": "2024-03-01", "end_date": "2024-03-01"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_cancel_sale(self, client, cashier_headers):
        assert client.post("/api/sales/1/cancel", headers=cashier_headers).status_code == 403
