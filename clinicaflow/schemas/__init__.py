"""Pydantic schemas for API validation"""

from clinicaflow.schemas.user import UserRole, UserResponse
from clinicaflow.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RefreshRequest,
    PasswordResetRequest,
    ResetPasswordRequest,
    TokenPairResponse,
    AuthResponse,
    MessageResponse,
)
from clinicaflow.schemas.response import ErrorResponse, HealthResponse

__all__ = [
    "UserRole", "UserResponse",
    "LoginRequest", "RegisterRequest", "RefreshRequest", "PasswordResetRequest",
    "ResetPasswordRequest", "TokenPairResponse", "AuthResponse", "MessageResponse",
    "ErrorResponse", "HealthResponse",
]
