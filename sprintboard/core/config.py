# sprintboard/core/config.py - Service configuration
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, SecretStr
from typing import List, Optional


class Settings(BaseSettings):
    """
    Settings for the Sprintboard API, read from the environment or .env
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database Settings
    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./sprintboard.db",
        description="SQLAlchemy async database URL (postgresql+asyncpg or sqlite+aiosqlite)"
    )

    # Session token settings (tokens are issued by the identity provider)
    JWT_SECRET_KEY: SecretStr = Field(
        SecretStr("change-me-in-production"),
        description="Secret key shared with the identity provider for signing session tokens"
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    AUTH_REQUIRED: bool = Field(True, description="Require a bearer token on mutating endpoints")

    # Application Settings
    ENVIRONMENT: str = Field("development", description="Environment name")
    LOG_LEVEL: str = Field("INFO", description="Log level")

    # Logging Configuration
    ENABLE_JSON_LOGGING: bool = Field(False, description="Enable JSON structured logging")

    # OpenTelemetry Tracing Settings
    ENABLE_OTEL_EXPORTER: bool = Field(False, description="Enable OpenTelemetry tracing")
    ENABLE_OTEL_CONSOLE_EXPORT: bool = Field(False, description="Print finished spans to the console")

    # CORS Settings
    CORS_ORIGINS: str = Field(
        "http://localhost:5173,http://127.0.0.1:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # Rate Limiting Settings
    RATE_LIMIT_ENABLED: bool = Field(True, description="Enable rate limiting")
    DEFAULT_RATE_LIMIT: str = Field("300/minute", description="Default rate limit")

    # Performance Settings
    DB_POOL_SIZE: int = Field(20, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(0, description="Database max overflow connections")

    # Integrations
    GITHUB_WEBHOOK_SECRET: Optional[SecretStr] = Field(
        None, description="Shared secret for verifying X-Hub-Signature-256 on GitHub webhooks"
    )

    # Push channel
    WS_QUEUE_SIZE: int = Field(256, description="Pending events buffered per viewer before it is dropped")
    WS_PING_INTERVAL_SECONDS: float = Field(30.0, description="Client keep-alive ping interval")

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def should_use_json_logging(self) -> bool:
        """Use JSON logging in production or when explicitly enabled"""
        return self.ENVIRONMENT == "production" or self.ENABLE_JSON_LOGGING


# Create settings instance
settings = Settings()
