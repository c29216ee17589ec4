"""API dependencies - authentication and service wiring"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from clinicaflow.config import settings
from clinicaflow.core.database import get_db
from clinicaflow.core.exceptions import RateLimitExceededError, UserNotFoundError
from clinicaflow.models.user import User
from clinicaflow.services.audit_service import audit_service
from clinicaflow.services.email_service import email_service
from clinicaflow.services.rate_limiter import rate_limiter
from clinicaflow.services.session_service import Principal, SessionService
from clinicaflow.services.user_repository import UserRepository

# HTTP Bearer token scheme; missing headers are reported by SessionService
security = HTTPBearer(auto_error=False)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    """Build a SessionService bound to the request's database session"""
    return SessionService(UserRepository(db), email_service, audit=audit_service)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """
    Resolve the bearer access token to a principal.

    Raises:
        MissingTokenError: No Authorization header
        InvalidSignatureError: Token invalid or expired
    """
    token = credentials.credentials if credentials else None
    return SessionService.authenticate_access_token(token)


def get_current_user(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
) -> User:
    """Load the user behind the access token"""
    user = UserRepository(db).get_by_id(principal.user_id)
    if not user:
        raise UserNotFoundError()
    return user


def auth_rate_limit(request: Request) -> None:
    """Per-IP throttle shared by the credential endpoints"""
    ip = client_ip(request)
    for window, limit, message in (
        (60, settings.AUTH_RATE_LIMIT_PER_MINUTE, "Too many attempts. Please wait a minute."),
        (3600, settings.AUTH_RATE_LIMIT_PER_HOUR, "Too many attempts. Please try again later."),
    ):
        decision = rate_limiter.check(f"auth:{window}:{ip}", limit, window)
        if not decision.allowed:
            raise RateLimitExceededError(message, retry_after=decision.retry_after)
