"""Authentication request and response schemas"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional

from clinicaflow.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login body"""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Registration body"""
    name: str = Field(..., min_length=2, max_length=120)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6)
    clinic_name: str = Field(
        ...,
        min_length=2,
        max_length=255,
        validation_alias=AliasChoices("clinicName", "clinic_name"),
    )
    avatar_url: Optional[str] = Field(
        None,
        max_length=512,
        validation_alias=AliasChoices("avatarUrl", "avatar_url"),
    )


class RefreshRequest(BaseModel):
    """Refresh body; an empty value is reported as a missing token"""
    refresh_token: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("refreshToken", "refresh_token"),
    )


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    """
    Password reset body.

    Fields are optional here so the service reports missing values with its
    own validation error. ``token`` is accepted for older clients.
    """
    email: Optional[str] = None
    reset_token: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("resetToken", "token", "reset_token"),
    )
    new_password: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("newPassword", "new_password"),
    )


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class AuthResponse(BaseModel):
    """Login/register envelope; ``token`` duplicates ``accessToken`` for older clients"""
    model_config = ConfigDict(populate_by_name=True)

    user: UserResponse
    token: str
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class MessageResponse(BaseModel):
    success: bool = True
    message: str
