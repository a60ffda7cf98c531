"""Tests for AuthMiddleware - bearer token validation."""

import jwt
import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from api.errors import register_error_handlers
from auth.security_middleware import AuthMiddleware, current_claims, current_user_id
from auth.types import User
from utils.timezone import now_utc


@pytest.fixture
def user():
    now = now_utc()
    return User(
        id=7,
        email="user@example.com",
        password_hash="h",
        password_salt="s",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def client(tokens):
    """FastAPI app with auth middleware."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware, tokens=tokens)

    @app.get("/protected")
    async def protected_route(request: Request):
        return {"user_id": current_user_id(request), "email": current_claims(request).email}

    @app.post("/auth/login")
    async def public_login():
        return {"public": True}

    @app.get("/auth/me")
    async def me(request: Request):
        return {"user_id": request.state.user_id}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return TestClient(app)


class TestPublicPaths:
    """Public paths skip authentication."""

    def test_login_without_token(self, client):
        response = client.post("/auth/login")
        assert response.status_code == 200

    def test_health_without_token(self, client):
        assert client.get("/health").status_code == 200

    def test_me_is_not_public(self, client):
        assert client.get("/auth/me").status_code == 401


class TestProtectedPaths:

    def test_missing_header(self, client):
        response = client.get("/protected")

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "NOT_AUTHENTICATED"
        assert body["instance"] == "/protected"

    def test_wrong_scheme(self, client, tokens, user):
        token = tokens.issue_access_token(user)
        response = client.get("/protected", headers={"Authorization": f"Basic {token}"})
        assert response.status_code == 401

    def test_valid_token_sets_state(self, client, tokens, user):
        token = tokens.issue_access_token(user)

        response = client.get("/protected", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"user_id": 7, "email": "user@example.com"}

    def test_invalid_token(self, client):
        response = client.get("/protected", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_non_integer_subject(self, client, auth_config, signing_key):
        now = int(now_utc().timestamp())
        token = jwt.encode(
            {
                "sub": "not-a-number",
                "email": "user@example.com",
                "is_email_verified": False,
                "jti": "x",
                "iat": now,
                "exp": now + 60,
                "iss": auth_config.jwt_issuer,
                "aud": auth_config.jwt_audience,
            },
            signing_key,
            algorithm="HS256",
        )

        response = client.get("/protected", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestRequestStateAccessors:
    """Routes reached without AuthMiddleware answer 401, not 500."""

    @pytest.fixture
    def bare_client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/whoami")
        def whoami(request: Request):
            return {"user_id": current_user_id(request)}

        @app.get("/claims")
        def claims(request: Request):
            return {"email": current_claims(request).email}

        return TestClient(app)

    def test_missing_user_id(self, bare_client):
        response = bare_client.get("/whoami")

        assert response.status_code == 401
        assert response.json()["code"] == "NOT_AUTHENTICATED"

    def test_missing_claims(self, bare_client):
        response = bare_client.get("/claims")

        assert response.status_code == 401
        assert response.json()["code"] == "NOT_AUTHENTICATED"
