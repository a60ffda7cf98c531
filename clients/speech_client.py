"""
Speech-to-text client for the audio transcription endpoint.

Returns the raw response body untouched. The body is either a transcript
object or an error envelope; telling them apart is the caller's job.
"""

import logging

import requests

from clients.vault_client import get_openai_config

logger = logging.getLogger(__name__)


class SpeechToTextError(Exception):
    """Transcription request could not be completed."""


class SpeechToTextTimeout(SpeechToTextError):
    """The transcription endpoint did not answer within the configured timeout."""


class SpeechToTextClient:
    """Send recorded audio to the transcription endpoint."""

    DEFAULT_MODEL = "gpt-4o-transcribe"
    DEFAULT_BASE_URL = "https://api.openai.com"
    TRANSCRIPTIONS_PATH = "/v1/audio/transcriptions"
    AUDIO_CONTENT_TYPE = "audio/mp4"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 60,
    ):
        """
        Initialize transcription client.

        Args:
            api_key: API key. If None, fetched from Vault.
            model: Transcription model identifier.
            base_url: API root. If None, uses DEFAULT_BASE_URL.
            timeout_seconds: Per-request timeout.

        Raises:
            ValueError: If the API key is empty
        """
        if api_key is None:
            api_key = get_openai_config()["api_key"]
        if not api_key:
            raise ValueError("api_key is required")

        self.model = model or self.DEFAULT_MODEL
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {api_key}"

    def transcribe(self, audio: bytes, filename: str) -> str:
        """
        Transcribe an audio recording.

        Args:
            audio: Raw audio bytes
            filename: Original file name, forwarded to the API

        Returns:
            Raw response body as text. May be an error envelope.

        Raises:
            SpeechToTextTimeout: If the endpoint does not answer in time
            SpeechToTextError: On any other transport failure
        """
        files = {
            "file": (filename or "recording.m4a", audio, self.AUDIO_CONTENT_TYPE),
        }
        data = {"model": self.model}

        try:
            response = self._session.post(
                f"{self.base_url}{self.TRANSCRIPTIONS_PATH}",
                files=files,
                data=data,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Transcription timed out after {self.timeout_seconds}s")
            raise SpeechToTextTimeout(f"Transcription timed out: {e}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Transcription request failed: {e}")
            raise SpeechToTextError(f"Transcription service unavailable: {e}")

        logger.info(
            f"Transcription finished: status={response.status_code} bytes={len(audio)}"
        )
        return response.text

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._session.close()
