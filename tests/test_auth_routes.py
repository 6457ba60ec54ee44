from http import HTTPStatus

from jose import jwt

from exam_generator.config import get_settings

REGISTRATION = {
    "primeiro_nome": "Carla",
    "sobrenome": "Mendes",
    "email": "carla@escola.com",
    "senha": "Senha123",
}


def _claims(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )


def test_register_returns_token_for_new_user(client):
    response = client.post("/v2/auth/register", json=REGISTRATION)

    assert response.status_code == HTTPStatus.CREATED
    body = response.json()
    assert body["message"] == "Usuário registrado com sucesso"
    user, token = body["data"]["user"], body["data"]["token"]
    assert user["nome"] == "Carla Mendes"
    assert user["papel"] == "PROFESSOR"
    assert user["tipo_usuario"] == "professor"
    assert "senha" not in user and "password_hash" not in user

    claims = _claims(token)
    assert claims["sub"] == str(user["id"])
    assert claims["email"] == "carla@escola.com"
    assert claims["role"] == "PROFESSOR"


def test_register_with_full_name_only(client):
    response = client.post(
        "/v2/auth/register",
        json={"nome": "Prof. Carla", "email": "carla@escola.com", "senha": "Senha123"},
    )

    assert response.status_code == HTTPStatus.CREATED
    user = response.json()["data"]["user"]
    assert user["nome"] == "Prof. Carla"
    assert user["primeiro_nome"] is None


def test_register_requires_some_name(client):
    response = client.post(
        "/v2/auth/register", json={"email": "carla@escola.com", "senha": "Senha123"}
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    detail = response.json()["error"]["details"][0]
    assert detail["field"] == "nome"
    assert detail["message"] == "Informe o nome completo OU primeiro_nome e sobrenome"


def test_register_rejects_weak_password(client):
    response = client.post("/v2/auth/register", json={**REGISTRATION, "senha": "fraca123"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["error"]["details"][0]["field"] == "senha"


def test_register_normalizes_phone(client):
    response = client.post(
        "/v2/auth/register", json={**REGISTRATION, "telefone": "(11) 98765-4321"}
    )

    assert response.status_code == HTTPStatus.CREATED
    assert response.json()["data"]["user"]["telefone"] == "11987654321"


def test_register_duplicate_email(client, professor):
    response = client.post(
        "/v2/auth/register", json={**REGISTRATION, "email": professor.email}
    )

    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["error"]["code"] == "EMAIL_IN_USE"


def test_login(client, professor):
    response = client.post(
        "/v2/auth/login", json={"email": "PROF@escola.com", "senha": "Senha123"}
    )

    assert response.status_code == HTTPStatus.OK
    data = response.json()["data"]
    assert data["user"]["id"] == professor.id
    assert _claims(data["token"])["sub"] == str(professor.id)


def test_login_wrong_password_and_unknown_email_look_the_same(client, professor):
    wrong = client.post(
        "/v2/auth/login", json={"email": professor.email, "senha": "Errada123"}
    )
    unknown = client.post(
        "/v2/auth/login", json={"email": "ninguem@escola.com", "senha": "Senha123"}
    )

    assert wrong.status_code == unknown.status_code == HTTPStatus.UNAUTHORIZED
    assert wrong.json()["error"] == unknown.json()["error"]
    assert wrong.json()["error"]["code"] == "INVALID_CREDENTIALS"


def test_me(client, professor, auth_headers):
    response = client.get("/v2/auth/me", headers=auth_headers(professor))

    assert response.status_code == HTTPStatus.OK
    data = response.json()["data"]
    assert data["email"] == professor.email
    assert data["nome"] == "Joao Silva"


def test_me_for_deleted_user(client, professor, auth_headers):
    headers = auth_headers(professor)
    client.delete(f"/v1/users/{professor.id}")

    response = client.get("/v2/auth/me", headers=headers)

    assert response.status_code == HTTPStatus.NOT_FOUND
