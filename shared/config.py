"""
Shared configuration management for the Service Intake Gateway.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="INTAKE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Persistence; empty DSN selects the in-memory store
    postgres_dsn: str = Field(default="")

    # Token signing
    jwt_secret: str = Field(default="")
    jwt_algorithm: str = Field(default="HS256")
    token_lifetime_seconds: int = Field(default=43200, gt=0)

    # Token transport
    token_header: str = Field(default="Authorization")
    token_scheme: str = Field(default="Bearer")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
