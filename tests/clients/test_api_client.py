"""Tests for the scheduler API client: token storage, refresh and retry."""

import json
import threading
import time

import jwt
import pytest
import responses

from clients.api_client import (
    ApiClientError,
    AppointmentApiClient,
    NotAuthenticatedError,
    TokenStore,
    is_token_expired,
)

BASE_URL = "https://scheduler.example.com"


def _access_token(expires_in: float) -> str:
    return jwt.encode({"sub": "1", "exp": int(time.time() + expires_in)}, "k" * 32, algorithm="HS256")


@pytest.fixture
def client():
    return AppointmentApiClient(BASE_URL, timeout_seconds=5)


@pytest.fixture
def logged_in(client):
    client.tokens.set(_access_token(3600), "refresh-1", user_id=7)
    return client


class TestTokenHelpers:

    def test_fresh_token_not_expired(self):
        assert is_token_expired(_access_token(60)) is False

    def test_past_exp_is_expired(self):
        assert is_token_expired(_access_token(-5)) is True

    def test_garbage_counts_as_expired(self):
        assert is_token_expired("not-a-jwt") is True

    def test_missing_exp_counts_as_expired(self):
        token = jwt.encode({"sub": "1"}, "k" * 32, algorithm="HS256")
        assert is_token_expired(token) is True

    def test_store_keeps_user_id_on_rotation(self):
        store = TokenStore()
        store.set("a1", "r1", user_id=3)
        store.set("a2", "r2")
        assert store.get().user_id == 3
        assert store.get().refresh_token == "r2"


class TestLogin:

    @responses.activate
    def test_login_stores_tokens(self, client):
        access = _access_token(3600)
        responses.add(
            responses.POST,
            f"{BASE_URL}/auth/login",
            json={"message": "Login successful", "token": access, "refreshToken": "r1", "userId": 5},
        )

        client.login("jane@example.com", "pw", device_token="dev", platform="ios")

        stored = client.tokens.get()
        assert stored.access_token == access
        assert stored.refresh_token == "r1"
        assert stored.user_id == 5
        body = json.loads(responses.calls[0].request.body)
        assert body["deviceToken"] == "dev"

    @responses.activate
    def test_bad_credentials_raise(self, client):
        responses.add(
            responses.POST,
            f"{BASE_URL}/auth/login",
            json={"code": "INVALID_CREDENTIALS"},
            status=401,
        )

        with pytest.raises(ApiClientError) as exc_info:
            client.login("jane@example.com", "wrong")
        assert exc_info.value.status_code == 401
        assert client.tokens.get() is None


class TestAuthenticatedCalls:

    def test_requires_login(self, client):
        with pytest.raises(NotAuthenticatedError):
            client.me()

    @responses.activate
    def test_sends_bearer_token(self, logged_in):
        responses.add(responses.GET, f"{BASE_URL}/auth/me", json={"userId": 7})

        assert logged_in.me() == {"userId": 7}
        token = logged_in.tokens.get().access_token
        assert responses.calls[0].request.headers["Authorization"] == f"Bearer {token}"

    @responses.activate
    def test_401_refreshes_and_retries_once(self, logged_in):
        new_access = _access_token(3600)
        responses.add(responses.GET, f"{BASE_URL}/auth/me", status=401, json={})
        responses.add(
            responses.POST,
            f"{BASE_URL}/auth/refresh",
            json={"token": new_access, "refreshToken": "refresh-2"},
        )
        responses.add(responses.GET, f"{BASE_URL}/auth/me", json={"userId": 7})

        assert logged_in.me() == {"userId": 7}
        assert len(responses.calls) == 3
        assert responses.calls[2].request.headers["Authorization"] == f"Bearer {new_access}"
        assert logged_in.tokens.get().refresh_token == "refresh-2"

    @responses.activate
    def test_expired_token_refreshed_before_request(self, client):
        client.tokens.set(_access_token(-10), "refresh-1", user_id=7)
        new_access = _access_token(3600)
        responses.add(
            responses.POST,
            f"{BASE_URL}/auth/refresh",
            json={"token": new_access, "refreshToken": "refresh-2"},
        )
        responses.add(responses.POST, f"{BASE_URL}/ConfirmAppointment", json={"validation": {}})

        client.confirm_appointment({"name": "Jane"})

        assert responses.calls[0].request.url == f"{BASE_URL}/auth/refresh"
        assert responses.calls[1].request.headers["Authorization"] == f"Bearer {new_access}"

    @responses.activate
    def test_failed_refresh_logs_out(self, logged_in):
        responses.add(responses.GET, f"{BASE_URL}/auth/me", status=401, json={})
        responses.add(
            responses.POST,
            f"{BASE_URL}/auth/refresh",
            status=401,
            json={"code": "INVALID_OR_EXPIRED_TOKEN"},
        )

        with pytest.raises(NotAuthenticatedError):
            logged_in.me()
        assert logged_in.tokens.get() is None

    @responses.activate
    def test_upload_sends_file(self, logged_in):
        responses.add(responses.POST, f"{BASE_URL}/UploadAudio", json={"appointment": {}, "validation": {}})

        logged_in.upload_audio(b"audio-bytes", filename="visit.m4a")

        request = responses.calls[0].request
        assert b'filename="visit.m4a"' in request.body
        assert b"audio-bytes" in request.body


class TestRefresh:

    def test_concurrent_callers_share_one_refresh(self, logged_in, monkeypatch):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_refresh():
            calls.append(1)
            started.set()
            release.wait(5)
            logged_in.tokens.set("access-2", "refresh-2")
            return logged_in.tokens.get()

        monkeypatch.setattr(logged_in, "_refresh_once", slow_refresh)
        results = []

        first = threading.Thread(target=lambda: results.append(logged_in.refresh()))
        first.start()
        assert started.wait(5)

        second = threading.Thread(target=lambda: results.append(logged_in.refresh()))
        second.start()
        time.sleep(0.2)
        release.set()
        first.join(5)
        second.join(5)

        assert len(calls) == 1
        assert len(results) == 2
        assert all(r.refresh_token == "refresh-2" for r in results)

    def test_refresh_without_tokens(self, client):
        with pytest.raises(NotAuthenticatedError):
            client.refresh()


class TestLogout:

    @responses.activate
    def test_logout_revokes_and_clears(self, logged_in):
        responses.add(responses.POST, f"{BASE_URL}/auth/logout", json={"message": "Logged out successfully"})

        logged_in.logout()

        assert json.loads(responses.calls[0].request.body) == {"userId": 7, "refreshToken": "refresh-1"}
        assert logged_in.tokens.get() is None

    @responses.activate
    def test_logout_clears_even_when_server_fails(self, logged_in):
        responses.add(responses.POST, f"{BASE_URL}/auth/logout", status=500, json={})

        logged_in.logout()

        assert logged_in.tokens.get() is None
