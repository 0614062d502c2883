"""Application configuration loaded from environment variables.

Settings for the database, the signed auth-state handshake, the external
account-linking provider, chat model providers and rate limiting. Uses
pydantic-settings for validation and .env file support.

Settings are built once by the app factory (``load_settings``) and passed
explicitly into the components that need them.
"""

from typing import Literal

from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from open_gamma.core.errors import ConfigurationError

# Minimum length for AUTH_SECRET (256 bits = 32 bytes)
MIN_AUTH_SECRET_LENGTH = 32

_POSTGRES_SCHEMES = ("postgres://", "postgresql://", "postgresql+asyncpg://")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Database
    database_url: str

    # Application
    environment: Literal["development", "test", "production"] = "development"
    log_level: str = "INFO"

    # CORS: credentials are used, so origins must be explicit
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Signed auth-state handshake and session cookie
    auth_secret: SecretStr
    auth_url: str = "http://localhost:3000"
    auth_state_ttl_seconds: int = 600
    auth_issuer: str = "open-gamma"
    session_ttl_seconds: int = 60 * 60 * 24 * 30
    session_cookie_name: str = "open-gamma.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # External account-linking provider (Composio)
    composio_api_key: SecretStr
    composio_base_url: str = "https://backend.composio.dev/api/v3"
    auth_config_id: str = Field(
        validation_alias=AliasChoices("auth_config_id", "composio_auth_config_id"),
    )

    # Chat model providers (optional; a provider without a key is unavailable)
    openai_api_key: SecretStr | None = None
    anthropic_api_key: SecretStr | None = None
    google_api_key: SecretStr | None = None
    chat_max_output_tokens: int = 4096

    # Rate limiting
    chat_rate_limit_max_requests: int = 10
    chat_rate_limit_window_seconds: float = 60.0
    rate_limit_enabled: bool = True

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Require a PostgreSQL URL and switch it to the asyncpg driver."""
        v = v.strip()
        if not v.startswith(_POSTGRES_SCHEMES):
            msg = "DATABASE_URL must be a postgres:// or postgresql:// URL"
            raise ValueError(msg)
        _, rest = v.split("://", 1)
        if not rest:
            msg = "DATABASE_URL is missing host information"
            raise ValueError(msg)
        return f"postgresql+asyncpg://{rest}"

    @field_validator("auth_secret")
    @classmethod
    def check_auth_secret(cls, v: SecretStr) -> SecretStr:
        """Reject empty or short signing secrets."""
        if len(v.get_secret_value()) < MIN_AUTH_SECRET_LENGTH:
            msg = (
                f"AUTH_SECRET must be at least {MIN_AUTH_SECRET_LENGTH} characters. "
                'Generate with: python -c "import secrets; '
                'print(secrets.token_hex(32))"'
            )
            raise ValueError(msg)
        return v

    @field_validator("composio_api_key")
    @classmethod
    def check_composio_api_key(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("COMPOSIO_API_KEY must not be empty")
        return v

    @field_validator("auth_config_id")
    @classmethod
    def check_auth_config_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("AUTH_CONFIG_ID must not be empty")
        return v

    @field_validator("auth_url")
    @classmethod
    def check_auth_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("AUTH_URL must be an http(s) URL")
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_security_invariants(self) -> "Settings":
        """Validate cross-field security requirements.

        Checks:
        - SameSite=None requires the Secure flag (browser requirement)
        - CORS must not use a wildcard origin (incompatible with credentials)
        - Rate limit and TTL values must be positive
        """
        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Session cookies are incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.chat_rate_limit_max_requests < 1:
            raise ValueError("CHAT_RATE_LIMIT_MAX_REQUESTS must be at least 1")
        if self.chat_rate_limit_window_seconds <= 0:
            raise ValueError("CHAT_RATE_LIMIT_WINDOW_SECONDS must be positive")
        if self.auth_state_ttl_seconds <= 0:
            raise ValueError("AUTH_STATE_TTL_SECONDS must be positive")

        return self

    @property
    def callback_url(self) -> str:
        """Where the linking provider sends the browser after consent."""
        return f"{self.auth_url}/auth/callback"

    @property
    def cookie_secure(self) -> bool:
        """Secure flag for cookies; always on in production."""
        return self.auth_cookie_secure or self.environment == "production"


def load_settings(**overrides: object) -> Settings:
    """Build settings from the environment, failing fast on bad values.

    Args:
        **overrides: Explicit values that take precedence over the environment.

    Returns:
        Validated Settings.

    Raises:
        ConfigurationError: If required values are missing or malformed.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except PydanticValidationError as exc:
        fields = sorted(
            ".".join(str(part) for part in err["loc"]) or "settings"
            for err in exc.errors()
        )
        msg = f"Invalid configuration: {', '.join(fields)}"
        raise ConfigurationError(msg) from exc
