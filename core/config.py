"""Appointment intake configuration."""

from pydantic import BaseModel, Field, field_validator

from utils.timezone import to_local, now_utc

DEFAULT_MAX_AUDIO_BYTES = 25 * 1024 * 1024


class IntakeConfig(BaseModel):
    """
    Settings for the audio -> appointment pipeline.

    Model identifiers and the API root are not secrets; the API key comes
    from Vault.
    """

    api_base_url: str = Field(
        default="https://api.openai.com",
        description="Root URL of the speech-to-text and chat-completion API",
    )
    transcription_model: str = Field(
        default="gpt-4o-transcribe",
        description="Speech-to-text model identifier",
        min_length=1,
    )
    extraction_model: str = Field(
        default="gpt-4.1",
        description="Chat model used for appointment extraction",
        min_length=1,
    )
    request_timeout_seconds: float = Field(
        default=60,
        description="Timeout for each external API call",
        gt=0,
        le=600,
    )
    client_timezone: str = Field(
        default="UTC",
        description="IANA zone for wall-clock times without an offset",
    )
    max_audio_bytes: int = Field(
        default=DEFAULT_MAX_AUDIO_BYTES,
        description="Largest accepted upload",
        ge=1,
    )

    @field_validator("client_timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        to_local(now_utc(), value)
        return value
