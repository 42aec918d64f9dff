"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch OAuth
    twitch_client_id: str = Field(..., description="Twitch OAuth Client ID")
    twitch_client_secret: str = Field(..., description="Twitch OAuth Client Secret")

    # Discord OAuth (optional, Discord routes are unavailable without it)
    discord_client_id: str = Field(default="", description="Discord OAuth Client ID")
    discord_client_secret: str = Field(default="", description="Discord OAuth Client Secret")

    # API access
    api_key: str = Field(..., description="Shared secret expected in the r0_key header")

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")
    database_ssl: str | None = Field(default=None, description="asyncpg ssl mode, e.g. 'require'")
    run_migrations: bool = Field(default=True, description="Apply pending migrations on startup")

    # Server URLs
    api_url: str = Field(
        default="http://localhost:8000", description="Public base URL used in OAuth redirect URIs"
    )

    # Environment
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # OAuth lifecycle
    state_ttl_minutes: int = Field(default=10, description="Lifetime of an OAuth state token")
    http_timeout: float = Field(default=10.0, description="Timeout for identity provider calls")
    enable_token_sweep: bool = Field(default=True, description="Run the token sweep scheduler")
    token_sweep_interval: int = Field(
        default=3600, description="Seconds between two token sweep cycles"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Development mode keeps accounts enabled when a token refresh fails."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
