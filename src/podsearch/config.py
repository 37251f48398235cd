"""Central configuration management using pydantic-settings.

All configuration is loaded from environment variables with sensible defaults.
Create a .env file for local development (see .env.example).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EmptySelection = Literal["all", "none"]


class DatabaseSettings(BaseSettings):
    """Backend connection configuration.

    Setting LOCAL_POSTGRES_DSN selects the direct Postgres backend; otherwise
    the managed REST backend is used and needs SUPABASE_URL and
    SUPABASE_SERVICE_ROLE_KEY. Neither is validated until first use.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    local_postgres_dsn: str | None = Field(
        default=None, description="Postgres connection string for the direct backend"
    )
    supabase_url: str | None = Field(default=None, description="Managed service base URL")
    supabase_service_role_key: str | None = Field(
        default=None, description="Managed service credential"
    )
    database_timeout_seconds: float = Field(
        default=10.0, description="HTTP timeout for the managed REST backend"
    )

    @property
    def use_local_postgres(self) -> bool:
        return bool(self.local_postgres_dsn)


class SearchSettings(BaseSettings):
    """Search behaviour configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    table: str = Field(default="article", description="Table holding searchable articles")
    health_limit: int = Field(default=200, description="Rows returned by the health probe")
    podcast_empty_selection: EmptySelection = Field(
        default="all", description="Podcast domains to filter on when none are selected"
    )
    company_empty_selection: EmptySelection = Field(
        default="none", description="Company domains to filter on when none are selected"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all config sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()
