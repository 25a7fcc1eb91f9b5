import re
from datetime import timedelta

from jose import jwt

from app.application.services.auth_service import create_access_token, decode_access_token
from app.domain.models.user import User
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository


def _register(client, **overrides):
    payload = {
        "email": "maria@mail.pt",
        "password": "segredo123",
        "first_name": "Maria",
        "last_name": "Costa",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_creates_client_and_sends_welcome(client, db, mailer):
    response = _register(client, email="Maria@Mail.pt")

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["email"] == "maria@mail.pt"
    assert user["role"] == "client"
    assert user["is_admin"] is False
    assert "password_hash" not in user
    assert mailer.recipients() == ["maria@mail.pt"]


def test_register_duplicate_email_is_rejected_without_new_row(client, db):
    assert _register(client).status_code == 201

    response = _register(client, first_name="Outra")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Email já registado"
    assert db.query(User).filter(User.email == "maria@mail.pt").count() == 1


def test_register_losing_the_unique_index_race_is_400(client, db, monkeypatch):
    assert _register(client).status_code == 201
    # Both registrations pass the lookup before either insert lands
    monkeypatch.setattr(SQLAlchemyUserRepository, "get_by_email", lambda self, email: None)

    response = _register(client, first_name="Outra")

    assert response.status_code == 400
    assert response.json()["error"]["details"]["fields"]["email"] == "Email já registado"
    assert db.query(User).filter(User.email == "maria@mail.pt").count() == 1


def test_register_validation_errors_are_400(client):
    response = _register(client, email="not-an-email", password="123")

    assert response.status_code == 400
    fields = response.json()["error"]["details"]["fields"]
    assert "email" in fields
    assert "password" in fields


def test_register_succeeds_when_welcome_email_fails(client, mailer):
    mailer.fail = True

    response = _register(client)

    assert response.status_code == 201
    assert mailer.sent == []


def test_login_token_resolves_to_same_user(client, customer):
    response = client.post("/api/auth/login", json={"email": customer.email, "password": "secret123"})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert decode_access_token(body["access_token"])["sub"] == str(customer.id)

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == customer.id


def test_login_with_wrong_password_is_401(client, customer):
    response = client.post("/api/auth/login", json={"email": customer.email, "password": "errada"})

    assert response.status_code == 401


def test_missing_token_is_401(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_error_envelope_carries_cors_headers(client):
    response = client.get("/api/auth/me", headers={"Origin": "http://localhost:5173"})

    assert response.status_code == 401
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_tampered_token_is_401(client, customer, auth_headers):
    header, payload, signature = auth_headers(customer)["Authorization"].split()[1].split(".")
    chars = list(payload)
    chars[5] = "A" if chars[5] != "A" else "B"
    tampered = ".".join([header, "".join(chars), signature])

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tampered}"})

    assert response.status_code == 401


def test_token_signed_with_another_key_is_401(client, customer):
    token = jwt.encode({"sub": str(customer.id)}, "another-key", algorithm="HS256")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_token_is_401(client, customer):
    token = create_access_token({"sub": str(customer.id)}, expires_delta=timedelta(minutes=-5))

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_for_non_numeric_subject_is_401(client):
    token = create_access_token({"sub": "someone@mail.pt"})

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_of_deleted_user_is_401(client, customer, auth_headers):
    headers = auth_headers(customer)
    assert client.delete("/api/profile", headers=headers).status_code == 204

    response = client.get("/api/auth/me", headers=headers)

    assert response.status_code == 401


def test_forgot_password_for_unknown_email_is_silent(client, mailer):
    response = client.post("/api/auth/forgot", json={"email": "ninguem@mail.pt"})

    assert response.status_code == 200
    assert mailer.sent == []


def test_password_reset_flow(client, customer, mailer):
    response = client.post("/api/auth/forgot", json={"email": customer.email})
    assert response.status_code == 200
    token = re.search(r"token=([\w-]+)", mailer.sent[0].text).group(1)

    response = client.post("/api/auth/reset", json={"token": token, "password": "novasenha1"})
    assert response.status_code == 200
    assert mailer.sent[-1].subject.startswith("Palavra-passe alterada")

    login = client.post("/api/auth/login", json={"email": customer.email, "password": "novasenha1"})
    assert login.status_code == 200

    # One-time token
    again = client.post("/api/auth/reset", json={"token": token, "password": "outrasenha"})
    assert again.status_code == 400


def test_reset_with_unknown_token_is_400(client):
    response = client.post("/api/auth/reset", json={"token": "x" * 40, "password": "novasenha1"})

    assert response.status_code == 400
