"""Pydantic models for auth domain."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class User(BaseModel):
    """A registered user of the system."""

    id: int
    email: str
    password_hash: str
    password_salt: str
    first_name: str | None = None
    last_name: str | None = None
    is_email_verified: bool = False
    email_verification_token: str | None = None
    password_reset_token: str | None = None
    password_reset_token_expiry: datetime | None = None
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class NewUser(BaseModel):
    """Fields supplied when creating a user. The store assigns id and timestamps."""

    email: str
    password_hash: str
    password_salt: str
    first_name: str | None = None
    last_name: str | None = None
    email_verification_token: str | None = None
    is_email_verified: bool = False


class UserSession(BaseModel):
    """A refresh-token session."""

    id: int | None = None
    user_id: int
    refresh_token: str = Field(..., description="Opaque refresh token")
    expires_at: datetime
    created_at: datetime
    revoked_at: datetime | None = None
    device_info: str | None = None

    model_config = {"from_attributes": True}

    def is_active(self, now: datetime) -> bool:
        """Not revoked and not yet expired."""
        return self.revoked_at is None and now < self.expires_at


class UserDevice(BaseModel):
    """A device registered for push notifications."""

    id: int | None = None
    user_id: int
    device_token: str
    platform: str
    device_name: str | None = None
    last_active_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenPair(BaseModel):
    """Access token plus refresh token handed to the client."""

    access_token: str
    refresh_token: str
    user_id: int | None = None


class AccessTokenClaims(BaseModel):
    """Validated claims of an access token."""

    sub: str
    email: str
    is_email_verified: bool
    jti: str
    iat: int
    exp: int
    iss: str
    aud: str

    @property
    def user_id(self) -> int:
        """Subject claim as a numeric user id.

        Raises:
            ValueError: If the subject is not an integer
        """
        return int(self.sub)


# Request bodies. Wire names are camelCase; Python names are accepted too.

class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    device_token: str | None = Field(None, alias="deviceToken")
    platform: str | None = None


class RefreshTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken")


class LogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    refresh_token: str = Field(..., alias="refreshToken")


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    new_password: str = Field(..., alias="newPassword", min_length=1)
