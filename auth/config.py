"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (minutes for short-lived
    credentials, days for refresh sessions) to make configuration intuitive.
    """

    # Access tokens
    access_token_expiry_minutes: int = Field(
        default=60,
        description="Lifetime of signed access tokens",
        ge=1,
        le=1440,
    )
    jwt_issuer: str = Field(
        default="scheduler-api",
        description="Issuer claim written into and required on access tokens",
        min_length=1,
    )
    jwt_audience: str = Field(
        default="scheduler-mobile",
        description="Audience claim written into and required on access tokens",
        min_length=1,
    )

    # Refresh sessions
    refresh_token_expiry_days: int = Field(
        default=30,
        description="Refresh session lifetime in days",
        ge=1,
        le=365,
    )

    # Password reset
    password_reset_expiry_minutes: int = Field(
        default=60,
        description="How long password reset tokens remain valid",
        ge=5,
        le=1440,
    )
