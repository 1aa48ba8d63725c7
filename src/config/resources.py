"""Resource registry models and YAML loader.

Each resource served by the generic CRUD router is declared in YAML with the
fields a create / update body may set (ALLOWED_FIELDS / ALLOWED_UPDATE_FIELDS),
the fields free-text search and equality filters apply to, and the status
vocabulary its ``status`` field draws from.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from src.models.status import STATUS_VOCABULARIES

logger = logging.getLogger(__name__)

_RESOURCE_NAME_PATTERN = r"^[a-z][a-z0-9-]*(/[a-z][a-z0-9-]*)*$"


class ResourceConfig(BaseModel):
    """Field allow-lists and query behaviour for one resource."""

    name: str = Field(pattern=_RESOURCE_NAME_PATTERN)
    allowed_fields: list[str] = Field(default_factory=list)
    allowed_update_fields: list[str] | None = None
    searchable_fields: list[str] = Field(default_factory=list)
    filterable_fields: list[str] = Field(default_factory=list)
    status_vocabulary: Literal["lifecycle", "approval", "payment", "progress"] | None = None
    max_limit: int = Field(default=100, ge=1, le=100)
    soft_delete: bool = True

    @field_validator("allowed_fields", "searchable_fields", "filterable_fields")
    @classmethod
    def _unique(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @property
    def update_fields(self) -> list[str]:
        if self.allowed_update_fields is None:
            return self.allowed_fields
        return self.allowed_update_fields

    def status_values(self) -> set[str] | None:
        """Values the ``status`` field accepts, or ``None`` when unrestricted."""
        if self.status_vocabulary is None:
            return None
        return {member.value for member in STATUS_VOCABULARIES[self.status_vocabulary]}


_DEFAULT_RESOURCES: dict[str, ResourceConfig] = {
    "appointment": ResourceConfig(
        name="appointment",
        allowed_fields=["title", "clientId", "scheduledAt", "durationMinutes", "location", "notes", "status"],
        searchable_fields=["title", "location"],
        filterable_fields=["clientId", "status"],
        status_vocabulary="progress",
    ),
}


def load_resources(yaml_path: str) -> dict[str, ResourceConfig]:
    """Parse a resource registry YAML file into typed ResourceConfig objects.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        A dict mapping resource names to ResourceConfig instances. If the file
        is missing or unusable, returns the built-in default registry.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Resource registry not found at %s; using built-in defaults", yaml_path)
        return dict(_DEFAULT_RESOURCES)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse resource registry YAML at %s: %s", yaml_path, exc)
        return dict(_DEFAULT_RESOURCES)

    if not isinstance(raw, dict) or not isinstance(raw.get("resources"), dict):
        logger.warning("Resource registry YAML missing 'resources' key; using built-in defaults")
        return dict(_DEFAULT_RESOURCES)

    resources: dict[str, ResourceConfig] = {}
    for name, config in raw["resources"].items():
        try:
            resources[name] = ResourceConfig.model_validate({**(config or {}), "name": name})
        except ValueError as exc:
            logger.error("Invalid resource config '%s': %s, skipping", name, exc)

    if not resources:
        logger.warning("Resource registry at %s declares no valid resources; using built-in defaults", yaml_path)
        return dict(_DEFAULT_RESOURCES)

    return resources
