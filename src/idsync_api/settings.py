"""Settings for the identity sync admin API."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the identity sync admin API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads,
    validates and documents configuration values from:
    1. Environment variables (production)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    # Directory gateway
    directory_url: str
    """Base URL of the LDAP directory gateway (required), e.g. https://ldap-gateway.internal/api."""

    directory_api_token: Optional[str] = None
    """Bearer token sent to the directory gateway."""

    directory_timeout_seconds: float = 10.0
    """Per-request timeout for directory gateway calls."""

    enterprise_build: bool = False
    """Enterprise build/license flag. Aggregate LDAP sync status is only queried when enabled."""

    # Storage
    domain_db_connection_string: Optional[str] = None
    """PostgreSQL connection string for users and sessions. In-memory stores are used when unset."""

    # Logging
    log_level: str = "INFO"
    """Minimum log level written to stdout."""

    @field_validator("directory_url")
    @classmethod
    def validate_directory_url(cls, v):
        """Validate that the directory URL is an http(s) URL and drop the trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("directory_url must start with http:// or https://")
        return v.rstrip("/")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )
