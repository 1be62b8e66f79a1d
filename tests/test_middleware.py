"""
test_middleware.py — Tests for request/response middleware and the error envelope

Verifies request ID generation, security headers, and the shared JSON
error shape produced by the exception handlers in main.py.

Called by: pytest
Depends on: wheelsglass/main.py (middleware, handlers), tests/conftest.py (client fixture)
"""

from fastapi.testclient import TestClient


def test_request_id_header_present(client):
    """Every response should include X-Request-ID."""
    resp = client.get("/health")
    assert "X-Request-ID" in resp.headers
    assert len(resp.headers["X-Request-ID"]) == 8  # uuid4().hex[:8]


def test_request_id_unique_per_request(client):
    id1 = client.get("/health").headers["X-Request-ID"]
    id2 = client.get("/health").headers["X-Request-ID"]
    assert id1 != id2


def test_health_returns_version(client):
    from wheelsglass.config import APP_VERSION

    data = client.get("/health").json()
    assert data == {"status": "ok", "version": APP_VERSION}


def test_security_headers(client):
    headers = client.get("/health").headers
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-Frame-Options"] == "DENY"
    assert headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert headers["X-API-Version"] == "v1"


def test_404_uses_error_envelope(client):
    resp = client.get("/nonexistent-route-xyz")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status_code"] == 404
    assert body["request_id"] == resp.headers["X-Request-ID"]
    assert body["details"] is None


def test_validation_details_use_field_names(client):
    resp = client.get("/api/quote/submissions?limit=0")
    assert resp.status_code == 400
    (detail,) = resp.json()["details"]
    assert detail["field"] == "limit"
    assert detail["type"]


def test_unhandled_error_is_500_envelope(db_session):
    from wheelsglass.database import get_db
    from wheelsglass.dependencies import require_user
    from wheelsglass.main import app

    def _broken_db():
        raise RuntimeError("database exploded")
        yield  # pragma: no cover

    app.dependency_overrides[get_db] = _broken_db
    app.dependency_overrides[require_user] = lambda: None
    try:
        with TestClient(app, raise_server_exceptions=False) as c:
            resp = c.get("/api/quote/stats")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Internal server error"
    assert body["message"] == "database exploded"
