import pytest
from fastapi.testclient import TestClient

from vasudha_access.server import create_app
from vasudha_access.services import AdmissionPolicy, RegistrationService


def _body(**overrides):
    body = {
        "first": "Jane",
        "last": "Doe",
        "email": "jane@real.com",
        "password": "longpass1",
        "username": "janed",
        "role": "buyer",
    }
    body.update(overrides)
    return body


@pytest.fixture()
def make_client(stack, logger, admin_identity):
    def _make(**config_overrides):
        config = stack.config.model_copy(update=config_overrides)
        service = RegistrationService(
            identity=None,
            profiles=stack.profiles,
            admission=AdmissionPolicy(config=config, profiles=stack.profiles, logger=logger),
            config=config,
            logger=logger,
            admin_identity=admin_identity,
            require_terms=False,
        )
        return TestClient(create_app(config, service), raise_server_exceptions=False)

    return _make


@pytest.fixture()
def client(make_client):
    return make_client()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_register_success(client, stack, admin_identity):
    response = client.post("/api/register", json=_body())

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert "Registration successful" in payload["message"]
    assert len(admin_identity.identities) == 1
    assert len(stack.profiles.rows) == 1


def test_missing_fields_is_400(client):
    response = client.post("/api/register", json=_body(first=None))
    assert response.status_code == 400
    assert response.json() == {
        "ok": False,
        "error": "Missing required fields: first name, email, or password.",
    }


def test_malformed_json_is_400(client):
    response = client.post(
        "/api/register",
        content="{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_disposable_email_is_403(client, admin_identity):
    response = client.post("/api/register", json=_body(email="jane@yopmail.com"))
    assert response.status_code == 403
    assert response.json()["ok"] is False
    assert admin_identity.identities == {}


def test_admin_role_is_403(client):
    assert client.post("/api/register", json=_body(role="admin")).status_code == 403


def test_duplicate_username_is_409(client, stack):
    stack.profiles.add(username="janed")
    response = client.post("/api/register", json=_body())
    assert response.status_code == 409
    assert response.json()["error"] == "Username already taken. Choose another."


def test_duplicate_email_is_409(client):
    assert client.post("/api/register", json=_body()).status_code == 200
    response = client.post("/api/register", json=_body(username="janed2"))
    assert response.status_code == 409


def test_insert_failure_rolls_back_with_500(client, stack, admin_identity, transient):
    stack.profiles.fail_insert = transient
    response = client.post("/api/register", json=_body())

    assert response.status_code == 500
    assert response.json()["ok"] is False
    assert admin_identity.identities == {}


def test_rate_limit_returns_429(make_client):
    client = make_client(REGISTER_RATE_LIMIT="2/minute")
    for n in range(2):
        client.post("/api/register", json=_body(email=f"u{n}@real.com", username=f"user{n}"))

    response = client.post("/api/register", json=_body(email="u9@real.com", username="user9"))
    assert response.status_code == 429
    assert response.json()["ok"] is False


def test_unexpected_error_is_generic_500(make_client, stack):
    client = make_client()
    stack.profiles.fail_username_lookup = RuntimeError("secret detail")
    response = client.post("/api/register", json=_body())

    assert response.status_code == 500
    assert "secret detail" not in response.text
