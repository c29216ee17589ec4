"""Authentication routes"""

from fastapi import APIRouter, Depends, Request, status

from clinicaflow.api.deps import (
    auth_rate_limit,
    client_ip,
    get_current_principal,
    get_current_user,
    get_session_service,
)
from clinicaflow.models.user import User
from clinicaflow.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPairResponse,
)
from clinicaflow.schemas.response import ErrorResponse
from clinicaflow.schemas.user import UserResponse
from clinicaflow.services.session_service import AuthResult, Principal, SessionService

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    }
)


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.from_user(result.user),
        token=result.access_token,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(auth_rate_limit)],
)
def login(
    credentials: LoginRequest,
    request: Request,
    service: SessionService = Depends(get_session_service),
):
    """
    Authenticate with email and password

    Returns:
        Sanitized user plus a fresh access/refresh token pair
    """
    result = service.login(credentials.email, credentials.password, ip_address=client_ip(request))
    return _auth_response(result)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(auth_rate_limit)],
)
def register(
    body: RegisterRequest,
    request: Request,
    service: SessionService = Depends(get_session_service),
):
    """Create an account and start its first session"""
    result = service.register(
        body.name,
        body.email,
        body.password,
        clinic_name=body.clinic_name,
        avatar_url=body.avatar_url,
        ip_address=client_ip(request),
    )
    return _auth_response(result)


@router.post("/refresh", response_model=TokenPairResponse, dependencies=[Depends(auth_rate_limit)])
def refresh_token(
    body: RefreshRequest,
    service: SessionService = Depends(get_session_service),
):
    """
    Exchange a refresh token for a new pair.

    The presented refresh token is invalidated; replaying it fails with 401.
    """
    pair = service.refresh(body.refresh_token)
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    principal: Principal = Depends(get_current_principal),
    service: SessionService = Depends(get_session_service),
):
    """Revoke the caller's refresh token. The access token lives until it expires."""
    service.logout(principal.user_id)
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def request_password_reset(
    body: PasswordResetRequest,
    request: Request,
    service: SessionService = Depends(get_session_service),
):
    message = service.request_password_reset(body.email, ip_address=client_ip(request))
    return MessageResponse(message=message)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def reset_password(
    body: ResetPasswordRequest,
    service: SessionService = Depends(get_session_service),
):
    """Set a new password with an emailed code; signs out every session"""
    message = service.reset_password(body.email, body.reset_token, body.new_password)
    return MessageResponse(message=message)


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information"""
    return UserResponse.from_user(current_user)
