"""
Application settings and configuration management.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Repository layer settings, read from ``REPOKIT_*`` environment variables."""

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./repokit.db",
        description="Database connection string (plain sqlite:// and postgresql:// are upgraded to async drivers)"
    )

    @field_validator('database_url', mode='after')
    @classmethod
    def strip_database_url(cls, v: str) -> str:
        """Strip whitespace from database URL to avoid common configuration errors."""
        return v.strip() if v else v

    log_level: str = Field(default="INFO")
    sql_echo: bool = Field(
        default=False,
        description="Pass echo=True to the SQLAlchemy engine"
    )

    # PostgreSQL pool configuration
    postgres_pool_size: int = Field(default=5, description="PostgreSQL connection pool size")
    postgres_max_overflow: int = Field(default=10, description="PostgreSQL maximum pool overflow")
    postgres_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    postgres_pool_recycle: int = Field(default=3600, description="Seconds before a pooled connection is recycled")
    postgres_pool_pre_ping: bool = Field(default=True, description="Ping connections before use")

    # SQLite configuration
    sqlite_busy_timeout_ms: int = Field(
        default=5000,
        description="PRAGMA busy_timeout applied to file-backed SQLite connections"
    )

    model_config = SettingsConfigDict(
        env_prefix="REPOKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
