"""Tests for permission-gating dependencies and error envelopes."""

from typing import Annotated

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from backend.core.dependencies import (
    get_current_user,
    require_all_permissions,
    require_any_permission,
    require_permission,
)
from backend.core.errors import (
    ConflictError,
    DatabaseError,
    ErrorCode,
    NotFoundError,
    error_response,
    register_exception_handlers,
)
from backend.database import get_db
from backend.main import create_app
from backend.schemas.auth import SafeUser

COOKIE = "auth-token"


class Payload(BaseModel):
    count: int


@pytest.fixture
def gated_app(test_db_session) -> FastAPI:
    """A small app exercising the dependency factories."""
    app = create_app()

    @app.get("/any")
    def any_route(user: Annotated[SafeUser, Depends(require_any_permission("users.delete", "users.view"))]):
        return {"role": user.role.value}

    @app.get("/all")
    def all_route(user: Annotated[SafeUser, Depends(require_all_permissions("users.view", "users.create"))]):
        return {"role": user.role.value}

    @app.get("/none")
    def none_route(user: Annotated[SafeUser, Depends(require_all_permissions())]):
        return {"role": user.role.value}

    @app.get("/single")
    def single_route(user: Annotated[SafeUser, Depends(require_permission("settings.edit"))]):
        return {"role": user.role.value}

    @app.get("/whoami")
    def whoami(user: Annotated[SafeUser, Depends(get_current_user)]):
        return {"id": user.id}

    @app.get("/conflict")
    def conflict():
        raise ConflictError("Email already registered")

    @app.get("/missing")
    def missing():
        raise NotFoundError("User not found")

    @app.get("/database")
    def database():
        raise DatabaseError()

    @app.post("/validate")
    def validate(payload: Payload):
        return payload

    def override_get_db():
        yield test_db_session

    app.dependency_overrides[get_db] = override_get_db
    return app


def _client_for(app: FastAPI, create_user, role: str) -> TestClient:
    _, token = create_user(email=f"{role}@example.com", role=role)
    client = TestClient(app)
    client.cookies.set(COOKIE, token, domain="testserver.local")
    return client


@pytest.mark.parametrize("role, expected", [("editor", 200), ("super_admin", 200), ("member", 403), ("viewer", 403)])
def test_require_any_permission(gated_app, create_user, role, expected):
    response = _client_for(gated_app, create_user, role).get("/any")

    assert response.status_code == expected


@pytest.mark.parametrize("role, expected", [("admin", 200), ("editor", 403)])
def test_require_all_permissions(gated_app, create_user, role, expected):
    response = _client_for(gated_app, create_user, role).get("/all")

    assert response.status_code == expected


def test_require_all_with_no_permissions_is_denied(gated_app, create_user):
    response = _client_for(gated_app, create_user, "super_admin").get("/none")

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Insufficient permissions", "code": "FORBIDDEN"}


def test_require_permission(gated_app, create_user):
    assert _client_for(gated_app, create_user, "super_admin").get("/single").status_code == 200
    assert _client_for(gated_app, create_user, "admin").get("/single").status_code == 403


def test_anonymous_gets_unauthorized(gated_app):
    response = TestClient(gated_app).get("/single")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_current_user_is_live(gated_app, create_user):
    user, token = create_user(email="live@example.com", role="viewer")
    client = TestClient(gated_app)
    client.cookies.set(COOKIE, token, domain="testserver.local")

    assert client.get("/whoami").json() == {"id": str(user.id)}


@pytest.mark.parametrize(
    "path, status_code, code",
    [
        ("/conflict", 409, "VALIDATION_ERROR"),
        ("/missing", 404, "NOT_FOUND"),
        ("/database", 500, "DATABASE_ERROR"),
    ],
)
def test_api_errors_render_envelope(gated_app, path, status_code, code):
    response = TestClient(gated_app).get(path)

    assert response.status_code == status_code
    assert response.json()["success"] is False
    assert response.json()["code"] == code


def test_validation_errors_render_envelope(gated_app):
    response = TestClient(gated_app).post("/validate", json={"count": "many"})

    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert data["error"].startswith("Invalid input: count:")


def test_error_response_shape():
    response = error_response("Nope", 403, ErrorCode.FORBIDDEN)

    assert response.status_code == 403
    assert response.body == b'{"success":false,"error":"Nope","code":"FORBIDDEN"}'


def test_handlers_can_be_registered_on_any_app():
    from backend.config import Settings

    app = FastAPI()
    register_exception_handlers(app, Settings(database_url="sqlite://"))

    @app.get("/gone")
    def gone():
        raise NotFoundError()

    assert TestClient(app).get("/gone").json()["error"] == "Resource not found"
