"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./context_man.db",
        validation_alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    # Create missing tables on API/MCP startup (no migration tooling)
    auto_create_tables: bool = Field(default=True, validation_alias="AUTO_CREATE_TABLES")

    # REST API
    api_host: str = Field(default="localhost", validation_alias="API_HOST")
    api_port: int = Field(default=7777, validation_alias="API_PORT")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # MCP server
    mcp_transport: Literal["stdio", "http"] = Field(
        default="stdio", validation_alias="MCP_TRANSPORT",
    )
    mcp_host: str = Field(default="localhost", validation_alias="MCP_HOST")
    mcp_port: int = Field(default=7778, validation_alias="MCP_PORT")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL",
    )

    # Federated search: max ranked candidates kept per collection before the global merge
    search_candidate_limit: int = Field(
        default=100, ge=1, validation_alias="SEARCH_CANDIDATE_LIMIT",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        """True when the configured database is SQLite (no connection pool sizing)."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
