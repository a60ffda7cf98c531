"""
HTTP client for the scheduler API.

Keeps the token pair in memory, refreshes it before it expires, and
retries once after a 401. Concurrent callers that need a refresh share a
single refresh request.
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Dict

import jwt
import requests

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """Non-success answer from the API."""

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API error {status_code}")


class NotAuthenticatedError(Exception):
    """No usable tokens; the user has to log in again."""


@dataclass
class StoredTokens:
    access_token: str
    refresh_token: str
    user_id: int | None = None


class TokenStore:
    """In-memory token storage, safe to share between threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tokens: StoredTokens | None = None

    def get(self) -> StoredTokens | None:
        with self._lock:
            return self._tokens

    def set(self, access_token: str, refresh_token: str, user_id: int | None = None) -> None:
        with self._lock:
            if user_id is None and self._tokens is not None:
                user_id = self._tokens.user_id
            self._tokens = StoredTokens(access_token, refresh_token, user_id)

    def clear(self) -> None:
        with self._lock:
            self._tokens = None


def is_token_expired(token: str, now: float | None = None) -> bool:
    """Whether an access token's exp claim has passed.

    The signature is not checked; the server does that. A token that cannot
    be decoded, or has no exp, counts as expired.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return True
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return True
    if now is None:
        now = time.time()
    return now >= exp


class AppointmentApiClient:
    """Client for auth and appointment endpoints."""

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore | None = None,
        timeout_seconds: float = 30,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.tokens = token_store or TokenStore()
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._refresh_lock = threading.Lock()
        self._refresh_future: Future | None = None

    # -- auth ---------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> Dict[str, Any]:
        body = {"email": email, "password": password}
        if first_name is not None:
            body["firstName"] = first_name
        if last_name is not None:
            body["lastName"] = last_name

        data = self._post_public("/auth/register", body)
        self.tokens.set(data["token"], data["refreshToken"])
        return data

    def login(
        self,
        email: str,
        password: str,
        device_token: str | None = None,
        platform: str | None = None,
    ) -> Dict[str, Any]:
        body = {"email": email, "password": password}
        if device_token is not None:
            body["deviceToken"] = device_token
        if platform is not None:
            body["platform"] = platform

        data = self._post_public("/auth/login", body)
        self.tokens.set(data["token"], data["refreshToken"], data.get("userId"))
        return data

    def logout(self) -> None:
        """Revoke the server session if possible. Local tokens are always cleared."""
        stored = self.tokens.get()
        try:
            if stored is not None and stored.user_id is not None:
                self._post_public(
                    "/auth/logout",
                    {"userId": stored.user_id, "refreshToken": stored.refresh_token},
                )
        except (ApiClientError, requests.RequestException) as e:
            logger.warning(f"Server logout failed: {e}")
        finally:
            self.tokens.clear()

    def refresh(self) -> StoredTokens:
        """Refresh the token pair. Concurrent callers share one request."""
        with self._refresh_lock:
            future = self._refresh_future
            owner = future is None
            if owner:
                future = Future()
                self._refresh_future = future

        if not owner:
            return future.result()

        try:
            stored = self._refresh_once()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(stored)
            return stored
        finally:
            with self._refresh_lock:
                self._refresh_future = None

    def _refresh_once(self) -> StoredTokens:
        stored = self.tokens.get()
        if stored is None:
            raise NotAuthenticatedError("No refresh token available")

        data = self._post_public("/auth/refresh", {"refreshToken": stored.refresh_token})
        self.tokens.set(data["token"], data["refreshToken"])
        logger.info("Access token refreshed")
        return self.tokens.get()

    # -- appointments -------------------------------------------------------

    def upload_audio(
        self,
        audio: bytes,
        filename: str = "recording.m4a",
        content_type: str = "audio/mp4",
    ) -> Dict[str, Any]:
        """Send a recording; returns {"appointment": ..., "validation": ...}."""
        return self._authenticated(
            "POST",
            "/UploadAudio",
            files={"file": (filename, audio, content_type)},
        )

    def confirm_appointment(self, appointment: Dict[str, Any]) -> Dict[str, Any]:
        """Confirm a candidate; returns {"appointment": ..., "validation": ...}."""
        return self._authenticated("POST", "/ConfirmAppointment", json=appointment)

    def me(self) -> Dict[str, Any]:
        return self._authenticated("GET", "/auth/me")

    # -- transport ----------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _post_public(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self._session.post(self._url(path), json=body, timeout=self.timeout_seconds)
        return self._handle(response)

    def _authenticated(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        stored = self.tokens.get()
        if stored is None:
            raise NotAuthenticatedError("Not authenticated")

        if is_token_expired(stored.access_token):
            stored = self._refresh_or_logout()

        response = self._send(method, path, stored.access_token, **kwargs)
        if response.status_code == 401:
            logger.info(f"401 on {path}, refreshing token and retrying once")
            stored = self._refresh_or_logout()
            response = self._send(method, path, stored.access_token, **kwargs)

        return self._handle(response)

    def _refresh_or_logout(self) -> StoredTokens:
        try:
            return self.refresh()
        except (ApiClientError, NotAuthenticatedError) as e:
            self.tokens.clear()
            raise NotAuthenticatedError("Authentication failed. Please login again.") from e

    def _send(self, method: str, path: str, access_token: str, **kwargs) -> requests.Response:
        return self._session.request(
            method,
            self._url(path),
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            timeout=self.timeout_seconds,
            **kwargs,
        )

    @staticmethod
    def _handle(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = response.text

        if not response.ok:
            raise ApiClientError(response.status_code, body)
        return body if isinstance(body, dict) else {}

    def close(self) -> None:
        self._session.close()
