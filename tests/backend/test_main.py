"""Tests for application wiring: health check, envelopes and cookie clearing."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.testclient import TestClient

from backend.config import Settings
from backend.core.dependencies import get_optional_user
from backend.core.rate_limit import client_address
from backend.database import get_db
from backend.main import app, create_app
from backend.schemas.auth import SafeUser


def _settings(**overrides) -> Settings:
    values = {"secret_key": "another-test-secret", "database_url": "sqlite://", "bcrypt_rounds": 4}
    values.update(overrides)
    return Settings(**values)


def test_health_endpoint(test_client: TestClient):
    """Test that the /health endpoint returns the correct response."""
    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.json() == {"status": "healthy", "service": "admin_console_backend"}


def test_app_state_components():
    """Test that long-lived components are built once and stored on app.state."""
    assert app.state.password_hasher.rounds == 4
    assert app.state.token_codec.configured is True
    assert app.state.session_resolver.token_codec is app.state.token_codec
    assert app.state.session_resolver.cookie_name == "auth-token"
    assert app.state.login_rate_limiter is not None


def test_rate_limiter_disabled_by_settings():
    """Test that the login limiter is omitted when disabled."""
    custom = create_app(_settings(login_rate_limit_enabled=False))
    assert custom.state.login_rate_limiter is None


def test_unknown_route_uses_envelope(test_client: TestClient):
    """Test that framework 404s are rendered in the response envelope."""
    response = test_client.get("/api/does-not-exist")

    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "NOT_FOUND"


def test_method_not_allowed_uses_envelope(test_client: TestClient):
    """Test that other framework HTTP errors also use the envelope."""
    response = test_client.put("/api/auth/login", json={})

    assert response.status_code == 405
    assert response.json()["code"] == "INVALID_REQUEST"


def test_unhandled_error_is_generic():
    """Test that unexpected failures return a generic internal error."""
    custom = create_app(_settings())

    @custom.get("/boom")
    def boom():
        raise RuntimeError("connection string leaked: secret")

    client = TestClient(custom, raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    data = response.json()
    assert data == {"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}
    assert "secret" not in response.text


def test_unhandled_error_detail_in_debug_mode():
    """Test that debug mode exposes the internal error message."""
    custom = create_app(_settings(debug=True))

    @custom.get("/boom")
    def boom():
        raise RuntimeError("disk on fire")

    client = TestClient(custom, raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["error"] == "disk on fire"


def test_login_without_secret_fails_closed():
    """Test that a missing signing secret refuses to issue sessions."""
    custom = create_app(_settings(secret_key="change-me"))

    @custom.get("/issue")
    def issue():
        custom.state.token_codec.issue("some-user", "viewer")

    client = TestClient(custom, raise_server_exceptions=False)
    response = client.get("/issue")

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert "set-cookie" not in response.headers


def test_invalid_cookie_is_cleared(test_client: TestClient):
    """Test that a garbage session cookie behaves like no session and is cleared."""
    test_client.cookies.set("auth-token", "not-a-token", domain="testserver.local")

    response = test_client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["data"] is None
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("auth-token=")
    assert "Max-Age=0" in set_cookie


def test_invalid_cookie_is_cleared_on_error_response(test_client: TestClient):
    """Test that the cookie is cleared even when the request is rejected."""
    test_client.cookies.set("auth-token", "not-a-token", domain="testserver.local")

    response = test_client.get("/api/users")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_valid_cookie_is_not_cleared(test_client: TestClient, login_as):
    """Test that a healthy session is left alone."""
    login_as("viewer")

    response = test_client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["data"]["email"] == "viewer@example.com"
    assert "set-cookie" not in response.headers


def test_forwarded_for_is_used_only_behind_trusted_proxy():
    """Test that X-Forwarded-For sets the client address once the proxy is trusted."""
    trusting = create_app(_settings(forwarded_allow_ips=["*"]))
    default = create_app(_settings())

    for custom in (trusting, default):

        @custom.get("/client")
        def client(request: Request):
            return {"address": client_address(request)}

    headers = {"X-Forwarded-For": "203.0.113.7"}
    assert TestClient(trusting).get("/client", headers=headers).json() == {"address": "203.0.113.7"}
    assert TestClient(default).get("/client", headers=headers).json() == {"address": "testclient"}


def test_invalid_cookie_is_cleared_on_unhandled_error(test_db_session):
    """Test that a rejected session cookie is cleared even when the handler crashes."""
    custom = create_app(_settings())

    @custom.get("/boom")
    def boom(user: Annotated[SafeUser | None, Depends(get_optional_user)]):
        raise RuntimeError("handler failed")

    def override_get_db():
        yield test_db_session

    custom.dependency_overrides[get_db] = override_get_db
    client = TestClient(custom, raise_server_exceptions=False)
    client.cookies.set("auth-token", "not-a-token", domain="testserver.local")

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert "Max-Age=0" in response.headers["set-cookie"]
