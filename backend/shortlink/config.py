"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from shortlink.core.exceptions import ConfigurationError

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # Application
    APP_NAME: str = "Shortlink"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database (PostgreSQL)
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "shortlink_db"
    POSTGRES_USER: str = "shortlink"
    POSTGRES_PASSWORD: str = "shortlink"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Token signing: two independent secrets, no defaults
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    TOKEN_CLOCK_SKEW_SECONDS: int = 15

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # Cookies
    ACCESS_COOKIE_NAME: str = "access_token"
    REFRESH_COOKIE_NAME: str = "refresh_token"
    COOKIE_SAMESITE: str = "strict"
    COOKIE_PATH: str = "/"

    # Links
    SHORT_URL_LENGTH: int = 7
    LINK_DEFAULT_EXPIRE_DAYS: int = 365

    # Geolocation (MaxMind GeoLite2 Country database)
    GEOIP_DATABASE_PATH: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:5173"]

    # Database initialization discipline
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    @field_validator("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
    @classmethod
    def _require_secret(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("COOKIE_SAMESITE")
    @classmethod
    def _normalize_samesite(cls, value: str) -> str:
        v = value.lower().strip()
        if v not in {"lax", "strict", "none"}:
            raise ValueError("COOKIE_SAMESITE must be one of lax, strict, none")
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated origins from env.

        Examples:
            CORS_ORIGINS=["http://localhost:5173","http://example.com"]
            CORS_ORIGINS=http://localhost:5173,http://example.com
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
            return str(_BASE_DIR.parent / "logs" / "app.log")
        return p

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
            f"postgresql+psycopg2://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Validate token secrets.

        Raises:
            ConfigurationError: If the secrets are shared, or weak in production.
        """
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ConfigurationError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different."
            )

        if not self.is_production:
            return

        for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET"):
            if len(getattr(self, name)) < 32:
                raise ConfigurationError(
                    f"Insecure {name} for production. Use a strong key (e.g. `openssl rand -hex 32`)."
                )


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, failing fast on missing secrets."""
    try:
        settings = Settings(**overrides)
    except PydanticValidationError as exc:
        missing = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigurationError(
            f"Invalid or missing configuration: {', '.join(missing)}"
        ) from exc
    settings.validate_security_settings()
    return settings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return load_settings()
