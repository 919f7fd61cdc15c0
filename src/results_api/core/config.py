"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="SQLAlchemy async connection string (postgresql+asyncpg://...)",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )
    database_pool_size: int = Field(
        default=10,
        description="Connections kept open in the store connection pool",
        gt=0,
    )
    database_max_overflow: int = Field(
        default=5,
        description="Extra connections allowed beyond the pool size under load",
        ge=0,
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit every stderr log record as JSON",
    )

    # Results source
    results_source_url: str | None = Field(
        default=None,
        description="URL of the published CSV results feed",
    )
    results_allowed_domains: str = Field(
        default="",
        description="Comma-separated list of allowed hostnames for the results feed (empty = any)",
    )
    results_fetch_timeout: float = Field(
        default=30.0,
        description="Results feed request timeout in seconds",
        gt=0,
    )
    results_skip_malformed_rows: bool = Field(
        default=False,
        description="Skip rows that fail validation instead of rejecting the whole batch",
    )

    @property
    def results_allowed_domain_list(self) -> list[str]:
        """Parse allowed domains string into a lowercase list."""
        if not self.results_allowed_domains.strip():
            return []
        return [d.strip().lower() for d in self.results_allowed_domains.split(",") if d.strip()]

    # Refresh scheduler
    results_refresh_enabled: bool = Field(
        default=True,
        description="Enable the background results refresh loop",
    )
    results_refresh_interval: int = Field(
        default=3600,
        description="Seconds between results refresh cycles",
        ge=10,
    )

    # Cache
    results_cache_ttl: int = Field(
        default=60,
        description="Seconds a cached latest snapshot stays fresh",
        gt=0,
        le=3600,
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (\"*\" allows any)",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
