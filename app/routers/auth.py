"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app import responses
from app.dependencies import CurrentUser, get_auth_service, get_current_user
from app.exceptions import InvalidTokenError, TokenExpiredError
from app.rate_limit import limiter
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    SetPasswordRequest,
    TokenData,
    TokenRequest,
    UserProfile,
    VerifyUserRequest,
)
from app.services.auth import AuthService, ResetTokenStatus

logger = logging.getLogger("keystone")

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", status_code=201)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Register a new user account."""
    result = auth_service.register(body.first_name, body.last_name, body.email, body.password)
    return responses.success(TokenData(token=result.token), "Successfully registered!", 201)


@router.post("/login")
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate and receive an access token."""
    result = auth_service.authenticate(body.email, body.password)
    return responses.success(TokenData(token=result.token), "Successfully logged in!")


@router.post("/verify", status_code=201)
@limiter.limit("10/minute")
def verify(
    request: Request,
    body: VerifyUserRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Confirm an email address with its verification token."""
    result = auth_service.verify(body.token)
    return responses.success(TokenData(token=result.token), "Successfully verified!", 201)


@router.post("/password/forgot")
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Email a password reset link. Responds the same whether or not the account exists."""
    auth_service.request_password_reset_link(body.email)
    return responses.success(message="Password reset link sent to your email!")


@router.post("/password/validate")
@limiter.limit("5/minute")
def validate_reset_token(
    request: Request,
    body: TokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Check whether a password reset token can still be used."""
    status = auth_service.validate_password_reset_token(body.token)
    if status is ResetTokenStatus.EXPIRED:
        raise TokenExpiredError()
    if status is ResetTokenStatus.NOT_FOUND:
        raise InvalidTokenError()
    return responses.success(message="Token is valid.")


@router.post("/password/reset")
@limiter.limit("5/minute")
def set_password(
    request: Request,
    body: SetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Set a new password using a reset token."""
    auth_service.set_password(body.token, body.password)
    return responses.success(message="Password successfully changed!")


@router.post("/logout")
def logout(
    user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Revoke every access token of the current user."""
    auth_service.logout(user.user_id)
    return responses.success(message="Successfully logged out!")


@router.get("/me")
def me(user: CurrentUser = Depends(get_current_user)) -> JSONResponse:
    """Return the profile of the authenticated user."""
    profile = UserProfile(
        id=user.user_id,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
        email=user.email,
        is_verified=user.is_verified,
    )
    return responses.success(profile, "Authenticated user.")
