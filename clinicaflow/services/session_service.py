"""Session service - login, registration, refresh rotation and password reset"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clinicaflow.config import settings
from clinicaflow.core.exceptions import (
    BaseAPIException,
    ExpiredOrMissingTokenError,
    InternalError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidRequestError,
    InvalidSignatureError,
    MissingTokenError,
    TokenReuseOrRevokedError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
    WrongTokenTypeError,
)
from clinicaflow.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    generate_reset_code,
    get_password_hash,
    hash_token,
    tokens_match,
    verify_password,
    verify_password_dummy,
)
from clinicaflow.models.user import User
from clinicaflow.services.audit_service import AuditService
from clinicaflow.services.email_service import EmailService
from clinicaflow.services.user_repository import UserRepository

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If the email exists, you will receive instructions to reset your password."
RESET_COMPLETED_MESSAGE = "Password reset successfully. You can now log in."
DEFAULT_CLINIC_NAME = "Minha Clínica"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    user: User
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class Principal:
    """Identity carried by a verified access token."""
    user_id: str
    tenant_id: str


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def mask_email(email: Optional[str]) -> str:
    """Log-safe form of an address: ``alice@example.com`` -> ``a***@example.com``"""
    local, _, domain = (email or "").partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


def default_avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name)}&background=0D8ABC&color=fff"


class SessionService:
    """
    Issues and rotates session tokens for clinic accounts.

    Each user has at most one live refresh token, identified by the SHA-256
    digest stored on the user row. Issuing a new pair overwrites the digest,
    so any older refresh token stops working at that moment.
    """

    def __init__(
        self,
        users: UserRepository,
        mailer: EmailService,
        audit: Optional[AuditService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.users = users
        self.mailer = mailer
        self.audit = audit
        self._clock = clock or datetime.utcnow

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    @staticmethod
    def issue_tokens(user_id: str, tenant_id: str) -> TokenPair:
        """Build an access/refresh pair. Nothing is persisted."""
        return TokenPair(
            access_token=create_access_token(user_id, tenant_id),
            refresh_token=create_refresh_token(user_id, tenant_id),
        )

    @staticmethod
    def authenticate_access_token(token: Optional[str]) -> Principal:
        """
        Resolve a bearer access token to its principal.

        Access tokens carry no revocation state: a valid signature inside the
        validity window is sufficient.
        """
        if not token:
            raise MissingTokenError("No token provided")

        payload = decode_access_token(token)
        if not payload:
            raise InvalidSignatureError("Invalid token")

        user_id = payload.get("userId")
        if not user_id:
            raise InvalidSignatureError("Invalid token payload")

        return Principal(user_id=str(user_id), tenant_id=str(payload.get("tenantId") or user_id))

    # ------------------------------------------------------------------
    # Login / registration
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, ip_address: Optional[str] = None) -> AuthResult:
        email = normalize_email(email)
        password = password or ""
        user = self.users.get_by_email(email) if email else None

        if user is None:
            verify_password_dummy(password)
            logger.warning("Login failed: unknown email %s (ip=%s)", mask_email(email), ip_address)
            self._audit(None, "auth.login_failed", ip_address, {"email": email})
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.warning("Login failed: wrong password for user %s (ip=%s)", user.id, ip_address)
            self._audit(user.id, "auth.login_failed", ip_address, {"email": email})
            raise InvalidCredentialsError()

        result = self._start_session(user, error_message="Error logging in")
        logger.info("User logged in: %s", user.id)
        self._audit(user.id, "auth.login", ip_address)
        return result

    def register(
        self,
        name: str,
        email: str,
        password: str,
        clinic_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuthResult:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise ValidationError("Name, email and password are required")
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
            )

        if self.users.email_exists(email):
            logger.info("Registration rejected, email already in use: %s", mask_email(email))
            raise UserAlreadyExistsError()

        try:
            user = self.users.create(
                name=name,
                email=email,
                password_hash=get_password_hash(password),
                clinic_name=(clinic_name or "").strip() or DEFAULT_CLINIC_NAME,
                avatar_url=avatar_url or default_avatar_url(name),
            )
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            raise UserAlreadyExistsError()
        except SQLAlchemyError:
            logger.exception("Failed to create user %s", mask_email(email))
            raise InternalError("Error registering user")

        result = self._start_session(user, error_message="Error registering user")
        logger.info("Registered user %s", user.id)
        self._audit(user.id, "auth.register", ip_address)
        return result

    def _start_session(self, user: User, error_message: str) -> AuthResult:
        pair = self.issue_tokens(user.id, user.effective_tenant_id)
        try:
            self.users.start_session(user.id, hash_token(pair.refresh_token))
        except SQLAlchemyError:
            # Tokens whose digest never reached the database could not be refreshed
            logger.exception("Failed to store refresh token hash for user %s", user.id)
            raise InternalError(error_message)
        return AuthResult(user=user, access_token=pair.access_token, refresh_token=pair.refresh_token)

    # ------------------------------------------------------------------
    # Refresh rotation
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise MissingTokenError("Refresh token required")

        try:
            return self._rotate(refresh_token)
        except BaseAPIException:
            raise
        except Exception:
            logger.exception("Unexpected error while refreshing token")
            raise InternalError("Error refreshing token")

    def _rotate(self, refresh_token: str) -> TokenPair:
        payload = decode_refresh_token(refresh_token)
        if payload is None:
            raise InvalidSignatureError("Invalid refresh token")

        if payload.get("type") != REFRESH_TOKEN_TYPE:
            raise WrongTokenTypeError()

        user_id = payload.get("userId")
        user = self.users.get_by_id(str(user_id)) if user_id else None
        if user is None:
            raise UserNotFoundError()

        presented_hash = hash_token(refresh_token)
        if not tokens_match(presented_hash, user.refresh_token_hash):
            logger.warning("Refresh token reuse or revoked token for user %s", user.id)
            self._audit(user.id, "auth.refresh_reuse", None)
            raise TokenReuseOrRevokedError()

        pair = self.issue_tokens(user.id, user.effective_tenant_id)
        if not self.users.swap_refresh_token_hash(user.id, presented_hash, hash_token(pair.refresh_token)):
            # A concurrent refresh or logout moved the hash after we read it
            logger.warning("Concurrent refresh lost the rotation race for user %s", user.id)
            raise TokenReuseOrRevokedError()

        return pair

    def logout(self, user_id: str) -> None:
        """Forget the stored refresh digest. Safe to call repeatedly."""
        try:
            self.users.set_refresh_token_hash(user_id, None)
        except SQLAlchemyError:
            logger.exception("Failed to clear refresh token for user %s", user_id)
            raise InternalError("Error logging out")
        logger.info("User logged out: %s", user_id)
        self._audit(user_id, "auth.logout", None)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def request_password_reset(self, email: str, ip_address: Optional[str] = None) -> str:
        """
        Start a password reset.

        The return value is identical whether or not the account exists, and
        nothing raised past this point reaches the caller.
        """
        email = normalize_email(email)
        try:
            user = self.users.get_by_email(email) if email else None
            if user is None:
                logger.warning(
                    "Suspicious password reset request for unknown email %s (ip=%s)", mask_email(email), ip_address
                )
                self._audit(None, "auth.password_reset_unknown_email", ip_address, {"email": email})
                return RESET_REQUESTED_MESSAGE

            user_id, user_name = user.id, user.name
            code = generate_reset_code()
            expires_at = self._clock() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
            self.users.set_reset_token(user_id, hash_token(code), expires_at)

            if not settings.is_production:
                logger.debug("Password reset code for user %s: %s", user_id, code)

            if not self.mailer.send_password_reset_email(email, code, user_name):
                logger.error("Password reset email could not be delivered to user %s", user_id)

            self._audit(user_id, "auth.password_reset_requested", ip_address)
        except Exception:
            logger.exception("Password reset request failed for %s", mask_email(email))

        return RESET_REQUESTED_MESSAGE

    def reset_password(self, email: str, reset_code: str, new_password: str) -> str:
        if not email or not reset_code or not new_password:
            raise ValidationError("Email, reset code and new password are required")
        if len(new_password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
            )

        user = self.users.get_by_email(normalize_email(email))
        if user is None:
            logger.warning("Password reset attempted for unknown email %s", mask_email(normalize_email(email)))
            raise InvalidRequestError()

        if (
            not user.reset_token_hash
            or user.reset_token_expires is None
            or self._clock() >= user.reset_token_expires
        ):
            logger.warning("Password reset with missing or expired code for user %s", user.id)
            raise ExpiredOrMissingTokenError()

        if not tokens_match(hash_token(reset_code.strip()), user.reset_token_hash):
            logger.warning("Password reset with wrong code for user %s", user.id)
            raise InvalidCodeError()

        user_id = user.id
        try:
            self.users.complete_password_reset(user_id, get_password_hash(new_password))
        except SQLAlchemyError:
            logger.exception("Failed to store new password for user %s", user_id)
            raise InternalError("Error resetting password")

        logger.info("Password reset completed for user %s; sessions revoked", user_id)
        self._audit(user_id, "auth.password_reset_completed", None)
        return RESET_COMPLETED_MESSAGE

    # ------------------------------------------------------------------

    def _audit(
        self,
        user_id: Optional[str],
        action: str,
        ip_address: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.audit is None:
            return
        self.audit.log_event(
            self.users.db,
            user_id=user_id,
            action=action,
            ip_address=ip_address,
            metadata=metadata,
        )
