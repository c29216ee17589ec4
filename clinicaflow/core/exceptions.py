"""Custom exception classes for the application"""

from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    code = "Error"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Authentication Errors (401)
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    code = "AuthenticationFailed"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password, deliberately indistinguishable"""
    code = "InvalidCredentials"

    def __init__(self):
        super().__init__("Invalid credentials")


class MissingTokenError(AuthenticationError):
    code = "MissingToken"

    def __init__(self, message: str = "Token required"):
        super().__init__(message)


class InvalidSignatureError(AuthenticationError):
    """Token failed verification: bad signature, expired or malformed"""
    code = "InvalidSignature"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class WrongTokenTypeError(AuthenticationError):
    code = "WrongTokenType"

    def __init__(self):
        super().__init__("Invalid token type")


class UserNotFoundError(AuthenticationError):
    code = "UserNotFound"

    def __init__(self):
        super().__init__("User not found")


class TokenReuseOrRevokedError(AuthenticationError):
    """Refresh token no longer matches the hash on file"""
    code = "TokenReuseOrRevoked"

    def __init__(self):
        super().__init__("Refresh token has been revoked or already used")


# Client Errors (400)
class BadRequestError(BaseAPIException):
    code = "BadRequest"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class UserAlreadyExistsError(BadRequestError):
    code = "UserAlreadyExists"

    def __init__(self):
        super().__init__("User already exists")


class ValidationError(BadRequestError):
    """Validation error"""
    code = "ValidationError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class PasswordResetError(BadRequestError):
    """
    Every reset failure reaches the client with the same code and message.

    The subclasses only tell the conditions apart in server-side logs.
    """
    code = "InvalidRequest"
    MESSAGE = "Invalid or expired reset code"

    def __init__(self):
        super().__init__(self.MESSAGE)


class InvalidRequestError(PasswordResetError):
    """No account for the email"""


class ExpiredOrMissingTokenError(PasswordResetError):
    """No pending code, or the code has expired"""


class InvalidCodeError(PasswordResetError):
    """Code does not match the pending one"""


# System Errors
class InternalError(BaseAPIException):
    code = "InternalError"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status_code=500)


class RateLimitExceededError(BaseAPIException):
    """Rate limit exceeded"""
    code = "RateLimitExceeded"

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: Optional[int] = None,
    ):
        details = {"retry_after": retry_after} if retry_after is not None else None
        super().__init__(message, status_code=429, details=details)
        self.retry_after = retry_after
