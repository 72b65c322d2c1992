"""Centralized application settings using pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
# Look for .env in the backend directory or project root
env_path = Path(__file__).parent.parent.parent / ".env"
if not env_path.exists():
    env_path = Path(__file__).parent.parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]


class Settings(BaseSettings):
    """Environment-aware configuration (payroll API, polling cadence, cache)."""

    # Application settings
    app_name: str = "Payslip Portal"
    log_level: str = "INFO"

    # Remote payroll API
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the payroll REST API",
    )
    api_timeout_seconds: float = Field(
        default=20.0,
        description="Per-request timeout for payroll API calls",
    )

    # Job polling
    poll_interval_ms: int = Field(
        default=3000,
        ge=0,
        description="Delay between job status checks",
    )
    poll_max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Give up on a job after this many status checks (unset = never)",
    )

    # Redis settings (list view cache)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    list_cache_ttl_seconds: int = 300

    # Upload limits
    employee_upload_max_bytes: int = 10 * 1024 * 1024
    payslip_upload_max_bytes: int = 50 * 1024 * 1024

    # CORS settings - stored as string, converted to list via property
    cors_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins",
        exclude=True,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string to list."""
        if self.cors_origins_raw is None or not self.cors_origins_raw.strip():
            return list(DEFAULT_CORS_ORIGINS)
        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]
        return origins if origins else list(DEFAULT_CORS_ORIGINS)

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @field_validator("api_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are joined as base + '/path', so drop a trailing slash."""
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Provide singleton-like access for dependency injection."""
    return Settings()
