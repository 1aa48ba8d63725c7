"""Pydantic Settings for the envelope service.

All environment variables use the ENVELOPE_ prefix.
Example: ENVELOPE_PORT=8000, ENVELOPE_SERVICE_KEY=my-secret-key
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class EnvelopeSettings(BaseSettings):
    """Service configuration validated from environment variables."""

    # Service
    port: int = 8000
    service_key: str  # X-Service-Key for auth
    log_level: str = "INFO"

    # Pagination
    default_page_limit: int = Field(default=20, ge=1, le=100)
    max_page_limit: int = Field(default=100, ge=1, le=100)

    # Rate limiting
    rate_limit_tokens: int = Field(default=120, ge=1)
    rate_limit_interval_seconds: int = Field(default=60, ge=1)

    # Resource registry
    resources_path: str = str(Path(__file__).with_name("resources.yaml"))

    model_config = {"env_prefix": "ENVELOPE_"}

    @model_validator(mode="after")
    def _default_within_max(self) -> EnvelopeSettings:
        if self.default_page_limit > self.max_page_limit:
            raise ValueError("default_page_limit cannot exceed max_page_limit")
        return self
