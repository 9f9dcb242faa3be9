from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from config import Settings
from services.auth_service import AuthService
from services.exceptions import ConfigurationError, UnauthorizedError


def test_register_returns_profile_and_token(register_user):
    response = register_user(monthlyIncome=3000, currency="EUR")
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Alice"
    assert body["email"] == "alice@example.com"
    assert body["monthlyIncome"] == 3000
    assert body["currency"] == "EUR"
    assert "password" not in body

    claims = jwt.get_unverified_claims(body["token"])
    assert claims["sub"] == str(body["id"])
    lifetime = claims["exp"] - claims["iat"]
    assert lifetime == 30 * 24 * 3600


def test_register_defaults(register_user):
    body = register_user().json()
    assert body["monthlyIncome"] == 0
    assert body["currency"] == "USD"


def test_register_duplicate_email_conflicts(register_user):
    register_user()
    response = register_user(email="ALICE@example.com")
    assert response.status_code == 400
    assert response.json() == {"message": "User already exists"}


def test_register_validation_error_is_400(register_user):
    response = register_user(email="not-an-email")
    assert response.status_code == 400
    assert "email" in response.json()["message"]


def test_password_is_hashed_at_rest(register_user, db_session):
    from database.models import UserModel

    register_user()
    user = db_session.query(UserModel).first()
    assert user.password != "secret123"
    assert user.password.startswith("$2")


def test_login_success_and_failures(client, register_user):
    register_user()

    ok = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["token"]

    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope123"})
    assert wrong.status_code == 401
    assert wrong.json() == {"message": "Invalid email or password"}

    unknown = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "secret123"})
    assert unknown.status_code == 401


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json() == {"message": "Not authorized, no token"}


def test_profile_rejects_bad_token(client):
    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_profile_rejects_expired_token(client, register_user):
    user_id = register_user().json()["id"]
    expired = AuthService().create_access_token(
        user_id, now=datetime.now(timezone.utc) - timedelta(days=31)
    )
    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json() == {"message": "Not authorized, token expired"}


def test_get_profile(client, auth_headers):
    response = client.get("/api/auth/profile", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "alice@example.com"
    assert "password" not in body
    assert "token" not in body


def test_update_profile_applies_supplied_fields_only(client, auth_headers):
    client.put("/api/auth/profile", json={"monthlyIncome": 2500}, headers=auth_headers)
    response = client.put(
        "/api/auth/profile",
        json={"name": "Alice B", "monthlyIncome": 0},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Alice B"
    assert body["monthlyIncome"] == 0
    assert body["currency"] == "USD"
    assert body["token"]


def test_update_profile_email_conflict(client, register_user, auth_headers):
    register_user(email="bob@example.com")
    response = client.put("/api/auth/profile", json={"email": "bob@example.com"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"message": "Email already in use"}


def test_token_for_deleted_user_is_rejected(client, db_session, register_user):
    from database.models import UserModel

    token = register_user().json()["token"]
    db_session.query(UserModel).delete()
    db_session.commit()

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_decode_rejects_token_signed_with_other_secret():
    settings = Settings()
    settings.jwt_secret = "other-secret"
    token = AuthService(settings).create_access_token(1)
    with pytest.raises(UnauthorizedError):
        AuthService().decode_access_token(token)


def test_settings_fail_closed_without_secret(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    settings = Settings()
    with pytest.raises(ConfigurationError):
        settings.validate()
    with pytest.raises(ConfigurationError):
        settings.signing_secret


def test_settings_allow_dev_secret_in_dev_mode(monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    settings = Settings()
    settings.validate()
    assert settings.signing_secret
