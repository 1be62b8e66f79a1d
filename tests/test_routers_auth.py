"""
tests/test_routers_auth.py -- Tests for routers/auth.py and the auth dependency

Covers: password login for configured admins, rejected logins, session
status, logout, deactivated accounts, and service-agent key auth.

Called by: pytest
Depends on: wheelsglass/routers/auth.py, wheelsglass/dependencies.py, conftest.py
"""

from wheelsglass.dependencies import AGENT_EMAIL
from wheelsglass.models import AdminUser


def _login(c, email="owner@wheelsglass.com", password="correct-horse"):
    return c.post("/auth/login", json={"email": email, "password": password})


class TestLogin:
    def test_login_creates_admin_and_session(self, anon_client, db_session):
        resp = _login(anon_client)
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "owner@wheelsglass.com"

        user = db_session.query(AdminUser).filter_by(email="owner@wheelsglass.com").one()
        assert user.is_active is True
        assert user.last_login_at is not None

        status = anon_client.get("/auth/status").json()
        assert status["authenticated"] is True
        assert status["user"]["role"] == "admin"
        assert anon_client.get("/api/quote/submissions").status_code == 200

    def test_email_is_case_insensitive(self, anon_client):
        assert _login(anon_client, email="OPS@wheelsglass.com").status_code == 200

    def test_wrong_password(self, anon_client):
        resp = _login(anon_client, password="nope")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid email or password"

    def test_unlisted_email(self, anon_client, db_session):
        assert _login(anon_client, email="someone@example.com").status_code == 401
        assert db_session.query(AdminUser).count() == 0

    def test_deactivated_admin(self, anon_client, admin_user, db_session):
        admin_user.is_active = False
        db_session.commit()
        assert _login(anon_client).status_code == 403

    def test_logout_clears_session(self, anon_client):
        _login(anon_client)
        assert anon_client.post("/auth/logout").json() == {"success": True}
        assert anon_client.get("/auth/status").json()["authenticated"] is False
        assert anon_client.get("/api/quote/submissions").status_code == 401


class TestSessionDependency:
    def test_deactivated_after_login_is_403(self, anon_client, db_session):
        _login(anon_client)
        user = db_session.query(AdminUser).one()
        user.is_active = False
        db_session.commit()
        assert anon_client.get("/api/quote/submissions").status_code == 403

    def test_status_when_anonymous(self, anon_client):
        body = anon_client.get("/auth/status").json()
        assert body["authenticated"] is False
        assert body["user"] is None
        assert body["app_version"]


class TestAgentKey:
    def test_agent_account_created_once(self, anon_client, db_session):
        headers = {"x-agent-key": "test-agent-key"}
        assert anon_client.get("/api/quote/stats", headers=headers).status_code == 200
        assert anon_client.get("/api/jobs", headers=headers).status_code == 200
        agents = db_session.query(AdminUser).filter_by(email=AGENT_EMAIL).all()
        assert len(agents) == 1
        assert agents[0].role == "agent"

    def test_public_intake_needs_no_auth(self, anon_client, glass_payload):
        assert anon_client.post("/api/quote/submit", json=glass_payload).status_code == 201
