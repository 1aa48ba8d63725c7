"""Shared test fixtures for the envelope test suite."""

from __future__ import annotations

import os

import pytest

from src.config.resources import ResourceConfig
from src.config.settings import EnvelopeSettings
from src.resilience.rate_limiter import ClientRateLimiter
from src.services.resource_store import ResourceStore

TEST_SERVICE_KEY = "test-key"


# ---------------------------------------------------------------------------
# Ensure required env vars are set for EnvelopeSettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal env vars so EnvelopeSettings can be instantiated in tests."""
    if "ENVELOPE_SERVICE_KEY" not in os.environ:
        monkeypatch.setenv("ENVELOPE_SERVICE_KEY", TEST_SERVICE_KEY)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> EnvelopeSettings:
    """Test settings with safe defaults."""
    return EnvelopeSettings(
        service_key=TEST_SERVICE_KEY,
        rate_limit_tokens=1000,
        rate_limit_interval_seconds=60,
    )


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def appointment_config() -> ResourceConfig:
    return ResourceConfig(
        name="appointment",
        allowed_fields=["title", "clientId", "location", "notes", "status"],
        allowed_update_fields=["title", "notes", "status"],
        searchable_fields=["title", "location"],
        filterable_fields=["clientId", "status"],
        status_vocabulary="progress",
    )


@pytest.fixture
def store(appointment_config: ResourceConfig) -> ResourceStore:
    return ResourceStore(appointment_config)


@pytest.fixture
def rate_limiter(settings: EnvelopeSettings) -> ClientRateLimiter:
    return ClientRateLimiter(
        tokens=settings.rate_limit_tokens,
        interval_seconds=settings.rate_limit_interval_seconds,
    )

