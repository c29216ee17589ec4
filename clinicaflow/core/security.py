"""Security utilities - JWT, password hashing, token digests"""

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
import hashlib
import hmac
import secrets
from clinicaflow.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    ).decode('utf-8')


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return get_password_hash(secrets.token_urlsafe(16))


def verify_password_dummy(plain_password: str) -> None:
    """Spend one bcrypt comparison so unknown accounts cost as much as known ones."""
    verify_password(plain_password, _dummy_password_hash())


def hash_token(value: str) -> str:
    """SHA-256 hex digest used to persist refresh tokens and reset codes."""
    return hashlib.sha256(value.encode('utf-8')).hexdigest()


def tokens_match(candidate: Optional[str], stored: Optional[str]) -> bool:
    if not candidate or not stored:
        return False
    return hmac.compare_digest(candidate.encode('utf-8'), stored.encode('utf-8'))


def generate_reset_code() -> str:
    """Six-digit numeric one-time code from a CSPRNG."""
    return f"{secrets.randbelow(1_000_000):06d}"


def _encode(claims: Dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    now = datetime.utcnow()
    to_encode = dict(claims)
    to_encode.update({
        "iat": now,
        "exp": now + expires_delta,
        "jti": secrets.token_urlsafe(16)  # Unique token ID
    })
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def create_access_token(
    user_id: str,
    tenant_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a short-lived access token signed with JWT_SECRET

    Args:
        user_id: Subject user ID
        tenant_id: Tenant the user belongs to
        expires_delta: Override for ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        str: Encoded JWT token
    """
    return _encode(
        {"userId": user_id, "tenantId": tenant_id, "type": ACCESS_TOKEN_TYPE},
        settings.JWT_SECRET,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    user_id: str,
    tenant_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a long-lived refresh token signed with JWT_REFRESH_SECRET"""
    return _encode(
        {"userId": user_id, "tenantId": tenant_id, "type": REFRESH_TOKEN_TYPE},
        settings.JWT_REFRESH_SECRET,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify an access token

    Args:
        token: JWT token string

    Returns:
        Optional[Dict]: Decoded claims, or None if invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        return None
    return payload


def decode_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a refresh token signature and expiry.

    The ``type`` claim is left for the caller to check.
    """
    try:
        return jwt.decode(token, settings.JWT_REFRESH_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
