"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Calculate project root: config.py is in backend/, so go up one level
_CONFIG_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _CONFIG_DIR.parent

# Secrets that ship in examples and templates; tokens are refused while one is in use.
PLACEHOLDER_SECRET_KEYS = frozenset(
    {
        "secret",
        "changeme",
        "change-me",
        "change-me-in-production",
        "your-secret-key",
        "your-secret-key-here",
    }
)


def is_usable_secret(secret: str | None) -> bool:
    """True when ``secret`` is set, not blank and not a known placeholder."""
    if not secret or not secret.strip():
        return False
    return secret.strip().lower() not in PLACEHOLDER_SECRET_KEYS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / "backend" / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Admin Console", description="Application name")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Expose internal error messages in API responses")
    log_level: str = Field(default="INFO", description="Root log level")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed to call the API with credentials",
    )

    # Security
    secret_key: str | None = Field(
        default=None,
        description="Secret key for session tokens; tokens are refused while unset",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    session_expire_minutes: int = Field(default=7 * 24 * 60, description="Session token lifetime in minutes")
    session_cookie_name: str = Field(default="auth-token", description="Name of the session cookie")
    bcrypt_rounds: int = Field(default=12, description="bcrypt work factor")

    # Login throttling
    login_rate_limit_enabled: bool = Field(default=True, description="Throttle login attempts per client")
    login_rate_limit_attempts: int = Field(default=10, description="Login attempts allowed per window")
    login_rate_limit_window_seconds: int = Field(default=60, description="Length of the throttling window")
    forwarded_allow_ips: list[str] = Field(
        default=[],
        description="Proxy addresses trusted to set X-Forwarded-For; empty ignores the header",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./admin_console.db",
        description="SQLAlchemy database connection URL",
    )
    database_echo: bool = Field(default=False, description="Log emitted SQL")

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str:
        """Validate and normalize database URL."""
        if v is None or not str(v).strip():
            raise ValueError("DATABASE_URL is required")
        return str(v).strip()

    @field_validator("app_env", mode="before")
    @classmethod
    def normalize_app_env(cls, v: str) -> str:
        """Normalize app environment to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @field_validator("secret_key", mode="before")
    @classmethod
    def normalize_secret_key(cls, v: str | None) -> str | None:
        """Treat a blank secret as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("session_expire_minutes")
    @classmethod
    def validate_session_expire_minutes(cls, v: int) -> int:
        if v < 1 or v > 43200:
            raise ValueError("SESSION_EXPIRE_MINUTES must be between 1 and 43200 (30 days)")
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < 4 or v > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @field_validator("login_rate_limit_attempts", "login_rate_limit_window_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Login rate limit values must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cookie_secure(self) -> bool:
        """Session cookies carry the Secure flag in production."""
        return self.is_production

    @property
    def secret_key_configured(self) -> bool:
        """True when a real signing secret is set (not blank, not a known placeholder)."""
        return is_usable_secret(self.secret_key)


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings: Application settings instance

    Example:
        ```python
        from backend.config import get_settings

        settings = get_settings()
        print(settings.database_url)
        ```
    """
    return Settings()


# Global settings instance
settings = get_settings()
