"""Application configuration management using Pydantic Settings.

This module loads and validates environment variables using Pydantic Settings.
All configuration is loaded from environment variables or a .env file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        api_base_url: Base URL of the tenant data API (survey fetch, classify, submit)
        api_timeout_seconds: Timeout for survey fetch and submission calls
        classifier_timeout_seconds: Upper bound on a single classification call
        environment: Application environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        survey_source: Where survey definitions come from ("api" or "local")
        surveys_dir: Path to directory containing local survey YAML files
        session_timeout_minutes: Idle minutes before a response session is discarded
        allowed_origins: List of allowed CORS origins
    """

    # Collaborator API Configuration
    api_base_url: str = Field(
        description="Base URL of the tenant data API"
    )
    api_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for survey fetch and submission requests"
    )
    classifier_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for one visitor classification call"
    )

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    survey_source: str = Field(
        default="api",
        description="Survey definition source: 'api' or 'local'"
    )
    surveys_dir: str = Field(
        default="./surveys",
        description="Path to surveys directory"
    )
    session_timeout_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Idle minutes before a response session expires"
    )
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("survey_source")
    @classmethod
    def validate_survey_source(cls, v: str) -> str:
        """Validate survey source is a known backend."""
        allowed = {"api", "local"}
        if v.lower() not in allowed:
            raise ValueError(f"Survey source must be one of {allowed}")
        return v.lower()

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Validate base URL is absolute and strip any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("API base URL must start with http:// or https://")
        return v.rstrip("/")

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed_origins string into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton

    Note:
        Uses lru_cache to ensure settings are only loaded once
        and shared across the application.
    """
    return Settings()
