"""
Base configuration settings.

Application-wide settings shared by the HTTP layer and logging:
environment name, log level and CORS origins.

Dependencies: pydantic_settings
System role: Foundation for the aggregated Settings class
"""

from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict
from pydantic import Field


class BaseSettings(PydanticBaseSettings):
    """Application-level settings read without an environment prefix."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="Knowledge Engine API",
        description="Title reported by the OpenAPI schema",
    )
    environment: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    cors_allow_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed by the CORS middleware (JSON list in the environment)",
    )
