"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Authenticated user identity attached to a request."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: UUID = Field(description="User's unique identifier")
    email: str = Field(description="User's email address")
    authorities: list[str] = Field(default_factory=list, description="Granted roles")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    model_config = ConfigDict(from_attributes=True)

    email: str = Field(..., description="User's email address", min_length=3, max_length=255)
    password: str = Field(..., description="User's password", min_length=1)


class LoginResponse(BaseModel):
    """Response schema for user login."""

    model_config = ConfigDict(from_attributes=True)

    access_token: str = Field(description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type for the Authorization header")
    user_id: UUID = Field(description="User ID")
    email: str = Field(description="User's email address")
    expires_in: int = Field(description="Token lifetime in seconds")


class MeResponse(BaseModel):
    """Response schema for the current user endpoint."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="User ID")
    email: str = Field(description="User's email address")
    authorities: list[str] = Field(default_factory=list, description="Granted roles")


# Password reset schemas


class ForgotPasswordRequest(BaseModel):
    """Request schema for password reset request."""

    model_config = ConfigDict(from_attributes=True)

    email: str = Field(..., description="User's email address", min_length=3, max_length=255)


class ForgotPasswordResponse(BaseModel):
    """Response schema for password reset request."""

    model_config = ConfigDict(from_attributes=True)

    message: str = Field(description="Status message")
    email_sent: bool = Field(description="Whether a password reset link was issued")


class ResetPasswordRequest(BaseModel):
    """Request schema for password reset."""

    model_config = ConfigDict(from_attributes=True)

    token: str = Field(..., description="Password reset token")
    new_password: str = Field(..., description="New password", min_length=8, max_length=100)


class ResetPasswordResponse(BaseModel):
    """Response schema for password reset."""

    model_config = ConfigDict(from_attributes=True)

    message: str = Field(description="Status message")
