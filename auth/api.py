"""HTTP routes for authentication."""

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from auth.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    RegistrationFailedError,
)
from auth.security_middleware import current_claims
from auth.service import AuthService
from auth.types import (
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from api.base import error_json, ErrorCodes


def create_auth_router(auth_service: AuthService) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/register")
    def register(request: Request, body: RegisterRequest):
        """Create an account and sign it in."""
        try:
            pair = auth_service.register(
                email=body.email,
                password=body.password,
                first_name=body.first_name,
                last_name=body.last_name,
            )
        except DuplicateEmailError:
            return error_json(
                request, 400, ErrorCodes.DUPLICATE_EMAIL, "User with this email already exists"
            )
        except RegistrationFailedError:
            return error_json(request, 400, ErrorCodes.REGISTRATION_FAILED, "Registration failed")

        return {
            "message": "Registration successful",
            "token": pair.access_token,
            "refreshToken": pair.refresh_token,
        }

    @router.post("/login")
    def login(request: Request, body: LoginRequest):
        """Password login. Registers the device when token and platform are sent."""
        try:
            pair = auth_service.login(
                email=body.email,
                password=body.password,
                device_token=body.device_token,
                platform=body.platform,
            )
        except InvalidCredentialsError:
            return error_json(
                request, 401, ErrorCodes.INVALID_CREDENTIALS, "Invalid email or password"
            )

        return {
            "message": "Login successful",
            "token": pair.access_token,
            "refreshToken": pair.refresh_token,
            "userId": pair.user_id,
        }

    @router.post("/refresh")
    def refresh(request: Request, body: RefreshTokenRequest):
        """Exchange a refresh token for a new token pair. The old one stops working."""
        try:
            pair = auth_service.refresh(body.refresh_token)
        except InvalidOrExpiredTokenError:
            return error_json(
                request,
                401,
                ErrorCodes.INVALID_OR_EXPIRED_TOKEN,
                "Invalid or expired refresh token",
            )

        return {"token": pair.access_token, "refreshToken": pair.refresh_token}

    @router.post("/logout")
    def logout(body: LogoutRequest):
        """Revoke the session behind a refresh token. Idempotent."""
        auth_service.logout(body.user_id, body.refresh_token)
        return {"message": "Logged out successfully"}

    @router.post("/verify-email")
    def verify_email(request: Request, token: str = Query(...)):
        if not auth_service.verify_email(token):
            return error_json(
                request,
                400,
                ErrorCodes.INVALID_OR_EXPIRED_TOKEN,
                "Invalid verification token",
            )
        return Response(status_code=200)

    @router.post("/forgot-password")
    def forgot_password(body: ForgotPasswordRequest):
        """Always answers the same way, whether or not the email is registered."""
        auth_service.request_password_reset(body.email)
        return {"message": "Password reset email sent"}

    @router.post("/reset-password")
    def reset_password(request: Request, body: ResetPasswordRequest):
        if not auth_service.reset_password(body.token, body.new_password):
            return error_json(
                request,
                400,
                ErrorCodes.INVALID_OR_EXPIRED_TOKEN,
                "Invalid or expired reset token",
            )
        return Response(status_code=200)

    @router.get("/me")
    def get_current_user(request: Request):
        """Get current authenticated user.

        Requires authentication (middleware sets request.state.claims).
        """
        claims = current_claims(request)
        return {
            "userId": claims.user_id,
            "email": claims.email,
            "isEmailVerified": claims.is_email_verified,
        }

    return router
