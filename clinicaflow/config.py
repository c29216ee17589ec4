"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Project root (the directory holding the clinicaflow package)
_BASE_DIR = Path(__file__).resolve().parent.parent

_DEV_JWT_SECRET = "dev-access-secret-change-in-production-0123456789"
_DEV_JWT_REFRESH_SECRET = "dev-refresh-secret-change-in-production-0123456789"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "ClinicaFlow API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    WORKERS: int = 4

    # Database (PostgreSQL in production, SQLite accepted for local runs)
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "clinicaflow"
    POSTGRES_USER: str = "clinicaflow"
    POSTGRES_PASSWORD: str = "clinicaflow"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Tokens
    JWT_SECRET: str = _DEV_JWT_SECRET
    JWT_REFRESH_SECRET: str = _DEV_JWT_REFRESH_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    MIN_SECRET_LENGTH: int = 32

    # Passwords
    BCRYPT_ROUNDS: int = 10
    MIN_PASSWORD_LENGTH: int = 6
    PASSWORD_RESET_EXPIRE_MINUTES: int = 15

    # Rate Limiting
    AUTH_RATE_LIMIT_PER_MINUTE: int = 10
    AUTH_RATE_LIMIT_PER_HOUR: int = 50

    # Email (SMTP)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    SMTP_TIMEOUT_SECONDS: float = 10.0
    EMAIL_FROM: str = "noreply@allooral.com"
    FRONTEND_URL: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Admin seed
    ADMIN_NAME: str = "Administrador"
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_CLINIC_NAME: str = "Allo Oral Clinic"

    # Database initialization discipline
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated origins from env.

        Examples:
            CORS_ORIGINS=["http://localhost:3000","https://app.allooral.com"]
            CORS_ORIGINS=http://localhost:3000,https://app.allooral.com
        """
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, str):
            return [parsed]
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed if str(origin).strip()]

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def get_log_file(self) -> str:
        p = self.LOG_FILE
        if not p or p.startswith(".."):
            return str(_BASE_DIR / "logs" / "app.log")
        return p

    def get_cors_origins(self) -> List[str]:
        origins = list(self.CORS_ORIGINS)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins

    def get_database_url(self) -> str:
        """
        Resolve database URL.

        Priority:
          1) Explicit DATABASE_URL
          2) Construct from POSTGRES_* parts with safe URL encoding
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        user = quote_plus(self.POSTGRES_USER)
        password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Refuse to run with weak token secrets.

        Both JWT secrets must be at least MIN_SECRET_LENGTH characters and
        must differ from each other. Production additionally rejects the
        development defaults and a weak seeded admin password.

        Raises:
            ValueError: If an insecure configuration is detected.
        """
        for name in ("JWT_SECRET", "JWT_REFRESH_SECRET"):
            value = getattr(self, name)
            if len(value or "") < self.MIN_SECRET_LENGTH:
                raise ValueError(
                    f"{name} must be at least {self.MIN_SECRET_LENGTH} characters "
                    "(e.g. `openssl rand -hex 32`)."
                )

        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be different.")

        if not self.is_production:
            return

        if self.JWT_SECRET == _DEV_JWT_SECRET or self.JWT_REFRESH_SECRET == _DEV_JWT_REFRESH_SECRET:
            raise ValueError("Development JWT secrets cannot be used in production.")

        if self.ADMIN_EMAIL and len(self.ADMIN_PASSWORD) < 10:
            raise ValueError(
                "Insecure ADMIN_PASSWORD for production. Set a strong admin password before startup."
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
