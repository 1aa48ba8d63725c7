"""Configuration module: settings and resource registry."""

from src.config.resources import ResourceConfig, load_resources
from src.config.settings import EnvelopeSettings

__all__ = [
    "EnvelopeSettings",
    "ResourceConfig",
    "load_resources",
]
