from http import HTTPStatus

import pytest
from starlette.requests import Request

from exam_generator.auth import require_owner_or_role, require_roles
from exam_generator.errors import ForbiddenError, UnauthorizedError
from exam_generator.models import Role
from exam_generator.security import Identity

NEW_USER = {
    "primeiro_nome": "Maria",
    "sobrenome": "Lima",
    "email": "maria@escola.com",
    "senha": "segredo1",
}


def _request(identity=None, path_params=None) -> Request:
    scope = {
        "type": "http",
        "method": "PUT",
        "path": "/v2/users/1",
        "query_string": b"",
        "headers": [],
        "path_params": path_params or {},
    }
    request = Request(scope)
    request.state.identity = identity
    return request


def test_professor_cannot_create_users(client, professor, auth_headers):
    response = client.post("/v2/users", json=NEW_USER, headers=auth_headers(professor))

    assert response.status_code == HTTPStatus.FORBIDDEN
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_admin_creates_users(client, admin, auth_headers):
    response = client.post("/v2/users", json=NEW_USER, headers=auth_headers(admin))

    assert response.status_code == HTTPStatus.CREATED


def test_anonymous_create_is_401(client):
    response = client.post("/v2/users", json=NEW_USER)

    assert response.status_code == HTTPStatus.UNAUTHORIZED


def test_professor_updates_own_profile(client, professor, auth_headers):
    response = client.put(
        f"/v2/users/{professor.id}",
        json={"telefone": "11987654321"},
        headers=auth_headers(professor),
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()["data"]["telefone"] == "11987654321"


def test_professor_cannot_update_someone_else(client, professor, user_factory, auth_headers):
    other = user_factory(email="outro@escola.com")

    response = client.put(
        f"/v2/users/{other.id}",
        json={"telefone": "11987654321"},
        headers=auth_headers(professor),
    )

    assert response.status_code == HTTPStatus.FORBIDDEN


def test_admin_updates_anyone(client, admin, professor, auth_headers):
    response = client.put(
        f"/v2/users/{professor.id}",
        json={"tipo_usuario": "admin"},
        headers=auth_headers(admin),
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()["data"]["tipo_usuario"] == "admin"


def test_professor_cannot_promote_themselves(client, professor, auth_headers):
    response = client.put(
        f"/v2/users/{professor.id}",
        json={"tipo_usuario": "admin"},
        headers=auth_headers(professor),
    )

    assert response.status_code == HTTPStatus.FORBIDDEN
    assert response.json()["error"]["code"] == "FORBIDDEN"
    assert client.get(f"/v2/users/{professor.id}").json()["data"]["tipo_usuario"] == "professor"


def test_professor_cannot_delete_users(client, professor, auth_headers):
    response = client.delete(f"/v2/users/{professor.id}", headers=auth_headers(professor))

    assert response.status_code == HTTPStatus.FORBIDDEN


def test_require_roles_without_identity():
    with pytest.raises(UnauthorizedError):
        require_roles(Role.ADMIN)(_request())


def test_require_roles_empty_allows_any_identity():
    identity = Identity(id=1, email="a@b.com", role=Role.PROFESSOR)

    assert require_roles()(_request(identity)) == identity


def test_require_roles_membership():
    identity = Identity(id=1, email="a@b.com", role=Role.PROFESSOR)

    assert require_roles(Role.PROFESSOR, Role.ADMIN)(_request(identity)) == identity
    with pytest.raises(ForbiddenError):
        require_roles(Role.ADMIN)(_request(identity))


def test_owner_gate():
    gate = require_owner_or_role("id")
    owner = Identity(id=5, email="a@b.com", role=Role.PROFESSOR)
    admin = Identity(id=9, email="r@b.com", role=Role.ADMIN)

    assert gate(_request(owner, {"id": "5"})) == owner
    assert gate(_request(admin, {"id": "5"})) == admin
    with pytest.raises(ForbiddenError):
        gate(_request(owner, {"id": "6"}))
    with pytest.raises(ForbiddenError):
        gate(_request(owner, {"id": "abc"}))
    with pytest.raises(UnauthorizedError):
        gate(_request(None, {"id": "5"}))
