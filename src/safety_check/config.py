"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_APP_BASE_URL = "http://localhost:3000"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App settings
    app_name: str = "Safety Check Network API"
    debug: bool = False
    secret_key: str  # Required, no default
    app_base_url: str = DEFAULT_APP_BASE_URL

    # Database
    database_url: str = "sqlite+aiosqlite:///./safety_check.db"
    database_connect_retries: int = 3
    database_retry_backoff_seconds: float = 0.5
    database_auto_create: bool = False

    # JWT Authentication
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_days: int = 7

    # Outbound mail for pings
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = ""
    smtp_use_tls: bool = True

    # Users allowed to read the admin listing
    admin_usernames: list[str] = []

    search_result_limit: int = 10

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str, info) -> str:
        """Validate that secret_key is secure."""
        if not v:
            raise ValueError("SECRET_KEY is required")

        # In production mode, ensure secret key is strong
        debug = info.data.get("debug", False)
        if not debug:
            if len(v) < 32:
                raise ValueError("SECRET_KEY must be at least 32 characters in production mode")
            if v in ("change-me-in-production", "secret", "password", "changeme"):
                raise ValueError("SECRET_KEY must not be a common weak value")

        return v

    @field_validator("admin_usernames")
    @classmethod
    def normalize_admin_usernames(cls, v: list[str]) -> list[str]:
        """Usernames are stored lowercased, so compare against lowercased names."""
        return [name.strip().lower() for name in v if name.strip()]

    @property
    def smtp_configured(self) -> bool:
        """Whether enough SMTP settings are present to attempt delivery."""
        return bool(self.smtp_host)

    @property
    def mail_sender(self) -> str:
        return self.smtp_from_email or self.smtp_user

    def validate_runtime_config(self) -> list[str]:
        """Validate runtime configuration and return warnings."""
        warnings = []

        if not self.smtp_configured:
            warnings.append("SMTP_HOST is not set - friend pings will not be delivered")
        elif not self.mail_sender:
            warnings.append("SMTP_FROM_EMAIL and SMTP_USER are empty - mail has no sender")

        if self.app_base_url == DEFAULT_APP_BASE_URL:
            warnings.append(
                "APP_BASE_URL is the local default - links in ping emails point to localhost"
            )

        # Warn about debug mode in production
        if self.debug:
            warnings.append("DEBUG mode is enabled - should be disabled in production")

        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
