"""
Configuration management using Pydantic settings.
Holds the store URL, connection pool limits, retry policy and diagnostic options.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Catalog layer settings with environment variable support."""

    # Application configuration
    app_name: str = "Rental Catalog"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/rental_catalog"

    # Connection pool configuration
    pool_max_size: int = Field(5, ge=1, description="Maximum live connections")
    pool_queue_limit: int = Field(7, ge=0, description="Maximum queued waiters, 0 for unbounded")
    pool_max_idle: int = Field(5, ge=0, description="Maximum idle connections kept open")
    pool_idle_timeout: float = Field(60.0, gt=0, description="Seconds before an idle connection is closed")
    pool_acquire_timeout: float = Field(10.0, gt=0, description="Seconds to wait for a free connection")
    pool_drain_timeout: float = Field(5.0, ge=0, description="Seconds to wait for checked-out connections at shutdown")

    # Query executor configuration
    query_retry_attempts: int = Field(3, ge=1, description="Attempts per query on pool exhaustion")
    query_retry_base_delay: float = Field(0.1, ge=0, description="Backoff unit in seconds")
    slow_query_threshold: float = Field(1.0, gt=0, description="Seconds before a query is logged as slow")

    # Pool diagnostics
    pool_monitor_enabled: Optional[bool] = None
    pool_monitor_interval: float = Field(30.0, gt=0)
    pool_monitor_warn_threshold: Optional[int] = Field(None, ge=1)

    # Composite view defaults
    placeholder_image_url: str = "/placeholder.svg"
    featured_limit: int = Field(8, ge=1)
    dashboard_recent_limit: int = Field(5, ge=1)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def monitor_enabled(self) -> bool:
        """Pool monitor runs outside production unless configured explicitly."""
        if self.pool_monitor_enabled is None:
            return not self.is_production
        return self.pool_monitor_enabled

    @property
    def monitor_warn_threshold(self) -> int:
        """Active connection count at which the pool monitor warns."""
        return self.pool_monitor_warn_threshold or self.pool_max_size

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the process lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
