"""
Shared configuration management for the OAPIS Registry.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REGISTRY_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache store; an empty URL selects the in-process store
    redis_url: Optional[str] = Field(default=None)

    # Public surface
    public_base_url: str = Field(default="https://npm.oapis.org")
    banner: str = Field(default="npm.oapis.org - OpenAPI-based npm registry")

    # Upstream API descriptions
    description_scheme: str = Field(default="https")
    description_path: str = Field(default="openapi.json")
    default_tld: str = Field(default="com")
    fetch_timeout_seconds: float = Field(default=10.0)

    # Package materialization
    package_version: str = Field(default="1.0.0")
    archive_ttl_seconds: int = Field(default=300)
    compress_archives: bool = Field(default=True)

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: Optional[str] = Field(default=None)
    enable_console_tracing: bool = Field(default=False)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
