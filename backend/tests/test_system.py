"""
Health endpoint, app-level handlers and CLI command tests.
"""

from datetime import timedelta

from medtory.models import Employee, ProductCategory, SessionToken, Supplier
from medtory.services import session_service
from medtory.time_utils import utcnow


class TestHealth:
    def test_degraded_without_owner(self, client, db_session):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["accounts"]["warning"] == "No active Owner account"

    def test_healthy_with_owner(self, client, owner):
        data = client.get("/health").get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["accounts"]["details"] == {"owners": 1}


class TestAppHandlers:
    def test_unknown_route_is_json_404(self, client, db_session):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}

    def test_wrong_method_is_json_405(self, client, db_session):
        response = client.delete("/api/auth/login")
        assert response.status_code == 405

    def test_cors_for_frontend_origin(self, client, db_session):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        other = client.get("/health", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in other.headers


class TestCli:
    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init", "--password", "Owner!2345"])
        second = runner.invoke(args=["system", "init"])

        assert "Created owner: owner" in first.output
        assert "already exists" in second.output
        assert db_session.query(Employee).filter_by(position="Owner").count() == 1
        assert db_session.query(ProductCategory).count() == 4
        assert db_session.query(Supplier).count() == 2

    def test_init_rejects_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init", "--password", "weak"])

        assert "FAIL" in result.output
        assert db_session.query(Employee).count() == 0

    def test_reset_db_aborts_without_confirmation(self, app, db_session, owner):
        result = app.test_cli_runner().invoke(args=["system", "reset-db"], input="n\n")

        assert result.exit_code == 1
        assert "Wipe sqlite://" in result.output
        assert db_session.query(Employee).count() == 1

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        created = runner.invoke(args=[
            "users", "create",
            "--username", "rgomez",
            "--name", "Rosa Gomez",
            "--email", "rosa@medtory.test",
            "--password", "Cashier!234",
            "--position", "Cashier",
        ])
        listed = runner.invoke(args=["users", "list"])

        assert "Created user: rgomez" in created.output
        assert "rgomez" in listed.output
        assert "Active" in listed.output

    def test_cleanup_sessions(self, app, db_session, cashier):
        old, _ = session_service.create_session(employee_id=cashier.id)
        old.created_at = utcnow() - timedelta(days=40)
        old.is_revoked = True
        session_service.create_session(employee_id=cashier.id)
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])

        assert "Deleted 1 session(s)" in result.output
        db_session.expire_all()
        assert db_session.query(SessionToken).count() == 1
