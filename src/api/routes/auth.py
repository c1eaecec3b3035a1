"""Authentication API routes."""

from fastapi import APIRouter

from src.api.deps import AuthServiceDep, CurrentIdentity
from src.schemas.auth import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    ResetPasswordRequest,
    ResetPasswordResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login user",
    description="Authenticate user with email and password. Returns a session token valid for 10 hours.",
)
async def login(data: LoginRequest, service: AuthServiceDep) -> LoginResponse:
    """Login user with email and password.

    The user must have verified their email and have an active account.

    Args:
        data: Login request with email and password.
        service: Auth service.

    Returns:
        LoginResponse: Session token and user information.
    """
    result = await service.login(email=data.email, password=data.password)
    return LoginResponse(**result)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
    description="Get the authenticated user's identity.",
)
async def get_current_user_info(identity: CurrentIdentity) -> MeResponse:
    return MeResponse(
        user_id=identity.user_id,
        email=identity.email,
        authorities=identity.authorities,
    )


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    summary="Request password reset",
    description="Issue a 10 minute password reset token. Always succeeds to avoid revealing accounts.",
)
async def forgot_password(data: ForgotPasswordRequest, service: AuthServiceDep) -> ForgotPasswordResponse:
    result = await service.request_password_reset(email=data.email)
    return ForgotPasswordResponse(**result)


@router.post(
    "/reset-password",
    response_model=ResetPasswordResponse,
    summary="Reset password",
    description="Reset user password using a password reset token.",
)
async def reset_password(data: ResetPasswordRequest, service: AuthServiceDep) -> ResetPasswordResponse:
    """Reset user password with a reset token.

    Session tokens are not accepted here and reset tokens are not accepted
    as bearer credentials.

    Raises:
        ValidationError: 400 if the token is invalid or expired.
    """
    result = await service.reset_password(token=data.token, new_password=data.new_password)
    return ResetPasswordResponse(**result)
