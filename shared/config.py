"""
Shared configuration management for the Feature Flags service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FLAGS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class FlagsConfig(BaseConfig):
    """Rule store settings."""

    # Rule storage
    adapter: str = Field(default="memory", description="memory, redis or postgres")
    serializer: str = Field(default="pickle", description="pickle or json")
    register_default_groups: bool = Field(default=False)
    backup_path: Optional[str] = Field(default=None)

    # Redis adapter
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="feature-flags:")
    redis_set_key: str = Field(default="feature-flags")

    # Postgres adapter
    postgres_dsn: str = Field(default="postgres://localhost:5432/flags")
    postgres_table: str = Field(default="feature_flags")
    postgres_min_pool_size: int = Field(default=2)
    postgres_max_pool_size: int = Field(default=10)
    postgres_command_timeout: float = Field(default=30)

    # Observability
    metrics_port: Optional[int] = Field(default=None)


class ServiceConfig(FlagsConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
