from http import HTTPStatus

PAYLOAD = {"nome": "Prof. Joao Silva", "email": "joao@escola.com", "senha": "segredo1"}


def test_list_initially_empty(client):
    response = client.get("/v1/users")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"success": True, "data": [], "total": 0}


def test_create_and_get(client):
    response = client.post("/v1/users", json=PAYLOAD)
    assert response.status_code == HTTPStatus.CREATED

    body = response.json()
    assert body["message"] == "Usuário criado com sucesso"
    data = body["data"]
    assert data["nome"] == PAYLOAD["nome"]
    assert data["papel"] == "PROFESSOR"
    assert "senha" not in data

    fetched = client.get(f"/v1/users/{data['id']}").json()["data"]
    assert fetched == data


def test_lowercase_papel_is_rejected(client):
    response = client.post("/v1/users", json={**PAYLOAD, "papel": "admin"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["error"]["details"][0]["field"] == "papel"


def test_duplicate_email(client):
    client.post("/v1/users", json=PAYLOAD)

    response = client.post("/v1/users", json={**PAYLOAD, "email": "JOAO@escola.com "})

    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["error"]["code"] == "EMAIL_IN_USE"


def test_list_newest_first(client, user_factory):
    first = user_factory()
    second = user_factory()

    ids = [u["id"] for u in client.get("/v1/users").json()["data"]]

    assert ids == [second.id, first.id]


def test_update(client, professor):
    response = client.put(f"/v1/users/{professor.id}", json={"papel": "ADMIN"})

    assert response.status_code == HTTPStatus.OK
    assert response.json()["data"]["papel"] == "ADMIN"


def test_update_requires_a_field(client, professor):
    response = client.put(f"/v1/users/{professor.id}", json={})

    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_update_missing_user(client):
    response = client.put("/v1/users/999", json={"nome": "Ninguem Aqui"})

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_email_taken_by_another_user(client, user_factory):
    user_factory(email="taken@escola.com")
    other = user_factory()

    response = client.put(f"/v1/users/{other.id}", json={"email": "taken@escola.com"})

    assert response.status_code == HTTPStatus.CONFLICT


def test_password_change_allows_login(client, professor):
    client.put(f"/v1/users/{professor.id}", json={"senha": "NovaSenha9"})

    response = client.post(
        "/v2/auth/login", json={"email": professor.email, "senha": "NovaSenha9"}
    )

    assert response.status_code == HTTPStatus.OK


def test_delete_twice(client, professor):
    first = client.delete(f"/v1/users/{professor.id}")
    assert first.status_code == HTTPStatus.OK
    assert first.json()["data"]["email"] == professor.email

    second = client.delete(f"/v1/users/{professor.id}")
    assert second.status_code == HTTPStatus.NOT_FOUND


def test_delete_user_owning_subjects_is_refused(client, professor, subject_factory):
    subject_factory(professor)

    response = client.delete(f"/v1/users/{professor.id}")

    assert response.status_code == HTTPStatus.CONFLICT
    assert client.get(f"/v1/users/{professor.id}").status_code == HTTPStatus.OK


def test_id_beyond_integer_range(client):
    response = client.get("/v1/users/99999999999999999999")

    assert response.status_code == HTTPStatus.BAD_REQUEST
    detail = response.json()["error"]["details"][0]
    assert detail["field"] == "id"
    assert detail["message"] == "ID inválido. Deve ser um número positivo"
