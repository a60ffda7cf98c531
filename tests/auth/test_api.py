"""Tests for auth HTTP routes, served through the full application stack."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from core.services.appointment_service import AppointmentService
from main import create_app

EMAIL = "testuser@example.com"
PASSWORD = "correct horse battery staple"


@pytest.fixture
def client(auth_service, tokens):
    app = create_app(auth_service, Mock(spec=AppointmentService), tokens)
    with TestClient(app) as test_client:
        yield test_client


def _register(client, email=EMAIL, password=PASSWORD):
    return client.post(
        "/auth/register",
        json={"email": email, "password": password, "firstName": "Test", "lastName": "User"},
    )


def _login(client, **extra):
    return client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD, **extra})


class TestRegister:

    def test_success(self, client):
        response = _register(client)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Registration successful"
        assert body["token"]
        assert body["refreshToken"]

    def test_duplicate_email(self, client):
        _register(client)

        response = _register(client)

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "DUPLICATE_EMAIL"
        assert body["status"] == 400
        assert body["instance"] == "/auth/register"
        assert body["requestId"] == response.headers["X-Request-ID"]

    def test_invalid_email_is_validation_error(self, client):
        response = _register(client, email="not-an-email")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_missing_password(self, client):
        response = client.post("/auth/register", json={"email": EMAIL})
        assert response.status_code == 400


class TestLogin:

    def test_success(self, client):
        _register(client)

        response = _login(client, deviceToken="push-1", platform="ios")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert isinstance(body["userId"], int)
        assert body["token"] and body["refreshToken"]

    def test_bad_credentials(self, client):
        _register(client)

        response = client.post("/auth/login", json={"email": EMAIL, "password": "nope"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"


class TestRefreshAndLogout:

    def test_refresh_rotates(self, client):
        refresh_token = _register(client).json()["refreshToken"]

        response = client.post("/auth/refresh", json={"refreshToken": refresh_token})

        assert response.status_code == 200
        assert response.json()["refreshToken"] != refresh_token

        replay = client.post("/auth/refresh", json={"refreshToken": refresh_token})
        assert replay.status_code == 401
        assert replay.json()["code"] == "INVALID_OR_EXPIRED_TOKEN"

    def test_logout_then_refresh_fails(self, client):
        _register(client)
        body = _login(client).json()

        response = client.post(
            "/auth/logout",
            json={"userId": body["userId"], "refreshToken": body["refreshToken"]},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        refresh = client.post("/auth/refresh", json={"refreshToken": body["refreshToken"]})
        assert refresh.status_code == 401

    def test_logout_twice_is_ok(self, client):
        _register(client)
        body = _login(client).json()
        payload = {"userId": body["userId"], "refreshToken": body["refreshToken"]}

        assert client.post("/auth/logout", json=payload).status_code == 200
        assert client.post("/auth/logout", json=payload).status_code == 200


class TestEmailAndPassword:

    def test_verify_email(self, client, auth_db):
        _register(client)
        token = auth_db.get_user_by_email(EMAIL).email_verification_token

        assert client.post("/auth/verify-email", params={"token": token}).status_code == 200
        assert client.post("/auth/verify-email", params={"token": token}).status_code == 400

    def test_forgot_password_never_reveals_account(self, client):
        _register(client)

        known = client.post("/auth/forgot-password", json={"email": EMAIL})
        unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_reset_password(self, client, auth_db):
        _register(client)
        client.post("/auth/forgot-password", json={"email": EMAIL})
        token = auth_db.get_user_by_email(EMAIL).password_reset_token

        response = client.post(
            "/auth/reset-password", json={"token": token, "newPassword": "new password"}
        )

        assert response.status_code == 200
        assert client.post(
            "/auth/login", json={"email": EMAIL, "password": "new password"}
        ).status_code == 200

    def test_reset_password_bad_token(self, client):
        response = client.post(
            "/auth/reset-password", json={"token": "nope", "newPassword": "new password"}
        )
        assert response.status_code == 400


class TestMe:

    def test_returns_claims(self, client):
        token = _register(client).json()["token"]

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == EMAIL
        assert body["isEmailVerified"] is False
        assert isinstance(body["userId"], int)

    def test_requires_token(self, client):
        assert client.get("/auth/me").status_code == 401
