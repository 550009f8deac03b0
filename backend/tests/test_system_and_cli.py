"""
Health endpoint and CLI command tests.
"""

from pos.models import User


def test_health(client, db_session):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "healthy"


def test_cors_header_for_dev_origin(client, db_session):
    resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


class TestCli:

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create",
            "--username", "clerk",
            "--full-name", "Counter Clerk",
            "--password", "Password123!",
            "--role", "CASHIER",
        ])
        assert result.exit_code == 0, result.output
        assert db_session.query(User).filter_by(username="clerk").one().role == "CASHIER"

        result = runner.invoke(args=["users", "list"])
        assert "clerk" in result.output

    def test_users_create_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--username", "weak", "--full-name", "Weak", "--password", "weak",
        ])
        assert result.exit_code != 0
        assert "at least 8 characters" in result.output

    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        assert runner.invoke(args=["system", "init"]).exit_code == 0
        second = runner.invoke(args=["system", "init"])

        assert second.exit_code == 0
        assert "already exists" in second.output
        assert db_session.query(User).count() == 3

    def test_low_stock(self, app, product_a, product_b):
        result = app.test_cli_runner().invoke(args=["products", "low-stock", "--threshold", "5"])

        assert result.exit_code == 0
        assert "SKU-B" in result.output
        assert "SKU-A" not in result.output
