from http import HTTPStatus

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from exam_generator import crud
from exam_generator.middleware import DeprecationHeadersMiddleware, http_date


def test_unexpected_error_is_hidden(unsafe_client, monkeypatch):
    def boom(db):
        raise RuntimeError("secret stack detail")

    monkeypatch.setattr(crud, "list_users", boom)

    response = unsafe_client.get("/v1/users")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INTERNAL"
    assert "secret" not in response.text


def test_database_error_is_internal(unsafe_client, monkeypatch):
    def boom(db):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(crud, "list_users", boom)

    response = unsafe_client.get("/v2/users")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json()["error"]["code"] == "INTERNAL"


def test_error_body_shape(client):
    response = client.get("/v1/users/999")

    body = response.json()
    assert set(body) == {"success", "error", "timestamp", "path"}
    assert body["error"]["message"] == "Usuário com ID 999 não encontrado"


# ─── Deprecation headers ─────────────────────────────────────────────────────


def _app(enabled: bool) -> TestClient:
    app = FastAPI()
    app.add_middleware(
        DeprecationHeadersMiddleware, enabled=enabled, sunset="2026-12-31T23:59:59Z"
    )

    @app.get("/v1/ping")
    def v1_ping():
        return {"ok": True}

    @app.get("/v2/ping")
    def v2_ping():
        return {"ok": True}

    return TestClient(app)


def test_deprecation_headers_on_v1():
    response = _app(enabled=True).get("/v1/ping")

    assert response.headers["Deprecation"] == "true"
    assert response.headers["Sunset"] == "Thu, 31 Dec 2026 23:59:59 GMT"
    assert response.headers["Link"] == '</v2>; rel="successor-version"'


def test_no_deprecation_headers_on_v2():
    response = _app(enabled=True).get("/v2/ping")

    assert "Deprecation" not in response.headers


def test_deprecation_headers_off_by_default(client):
    response = client.get("/v1/users")

    assert "Deprecation" not in response.headers


def test_http_date():
    assert http_date(None) is None
    assert http_date("2026-01-01T00:00:00") == "Thu, 01 Jan 2026 00:00:00 GMT"
