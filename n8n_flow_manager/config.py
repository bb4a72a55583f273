"""Configuration management for the n8n flow manager."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="N8N_",
        extra="ignore",
    )

    backend_url: str = Field(
        "http://localhost:5678", description="Base URL of the n8n instance"
    )
    api_key: str | None = Field(None, description="n8n public API key")
    request_timeout: float = Field(30.0, gt=0, description="HTTP timeout in seconds")
    handler_timeout: float = Field(
        300.0, gt=0, description="Deadline for a single handler call in seconds"
    )
    retry_attempts: int = Field(3, ge=1, description="Attempts for transient backend errors")
    verify_ssl: bool = Field(True, description="Verify TLS certificates")
    flows_directory: str = Field("flows", description="Where exported workflows live")
    backup_directory: str = Field("backups", description="Where pre-import backups go")
    git_author_name: str = Field("n8n Flow Manager")
    git_author_email: str = Field("flows@localhost")
    test_timeout: float = Field(30.0, gt=0, description="Max wait for a test execution")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging verbosity"
    )

    @field_validator("backend_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(
                "backend_url must look like http://localhost:5678 or https://n8n.example.com"
            )
        return value.rstrip("/")

    @classmethod
    def load(cls) -> "Settings":
        """Load settings using optional env file from ``N8N_CONFIG_FILE``."""
        env_file = os.getenv("N8N_CONFIG_FILE")
        kwargs = {"_env_file": env_file} if env_file else {}
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
            raise ConfigurationError(
                f"invalid configuration: {', '.join(fields)}", {"fields": fields}
            ) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings, loading them on first use."""
    return Settings.load()


__all__ = ["Settings", "get_settings"]
