"""Core configuration management using Pydantic settings."""
from functools import lru_cache
from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import EmailStr, model_validator, field_validator
from typing import Optional


# Valid log levels
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/newsletter.db"
    database_connect_timeout: int = 2  # seconds to wait for a pooled connection

    # Redis (session storage)
    redis_url: str = "redis://localhost:6379/0"

    # Application
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    app_base_url: str = "http://127.0.0.1:8000"  # Used to build confirmation links

    # Signs flash-message cookies
    hmac_secret: str

    # Email gateway
    email_base_url: str
    email_sender: EmailStr
    email_authorization_token: str
    email_timeout_milliseconds: int = 10000

    # Sessions
    session_ttl_seconds: int = 8 * 60 * 60
    session_cookie_secure: bool = False

    # Logging
    log_level: str = "INFO"

    # Default Admin Account
    admin_username: Optional[str] = None  # If set, creates admin account on startup
    admin_password: Optional[str] = None

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_login: str = "5/minute"  # Login attempts per minute

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}")
        return upper_v

    @field_validator('app_base_url', 'email_base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def email_timeout_seconds(self) -> float:
        return self.email_timeout_milliseconds / 1000

    @model_validator(mode='after')
    def validate_config(self) -> 'Settings':
        """Validate configuration after all fields are set."""
        if len(self.hmac_secret) < 32:
            raise ValueError("HMAC secret must be at least 32 characters for security")
        if bool(self.admin_username) != bool(self.admin_password):
            raise ValueError("admin_username and admin_password must be set together")
        return self


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide settings once."""
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings the app was built with."""
    return request.app.state.settings
