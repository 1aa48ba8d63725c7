"""Route tables and the route → contract-pattern mapping.

A route table lists every endpoint per module:

    {"modules": {"appointment": [{"method": "GET", "fullPath": "/api/appointment"}, ...]}}

Each route maps onto one of the envelope patterns: list, get, create, update,
delete or bulk mutation.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

_ARABIC = re.compile(r"[\u0600-\u06FF]")


class ContractKind(str, Enum):
    """Which envelope pattern a route's request/response follows."""

    LIST = "list"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK = "bulk"


@dataclass(frozen=True)
class RouteSpec:
    """One endpoint of the route table."""

    method: str
    path: str
    module: str | None = None

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"unsupported HTTP method {self.method!r}")
        object.__setattr__(self, "method", method)

    @property
    def key(self) -> str:
        """``METHOD|normalized-path`` identity used for deduplication."""
        return f"{self.method}|{normalize_endpoint(self.path)}"


class RouteTableError(ValueError):
    """Route table file is missing or malformed."""


def normalize_endpoint(endpoint: str) -> str:
    """Canonical form of an endpoint path for cross-source comparison.

    Drops the query string and ``/api`` / ``/api/vN`` prefixes, turns every
    path parameter spelling (``:id``, ``${id}``, ``$id``) into ``:param``,
    lower-cases, and strips trailing slashes.
    """
    path = endpoint.split("?", 1)[0]
    path = re.sub(r"^/api/v\d+", "", path)
    path = re.sub(r"^/api", "", path)
    path = re.sub(r"\$\{[^}]+\}", ":param", path)
    path = re.sub(r"/:\w+", "/:param", path)
    path = re.sub(r"/\$\w+", "/:param", path)
    path = path.lower().rstrip("/")
    if not path.startswith("/"):
        path = "/" + path
    return path


def is_valid_endpoint(endpoint: Any) -> bool:
    """Reject entries that are not API paths (messages, bare params)."""
    if not isinstance(endpoint, str):
        return False
    stripped = endpoint.strip()
    if not stripped.startswith("/"):
        return False
    if _ARABIC.search(stripped):
        return False
    return True


def path_segments(path: str) -> list[str]:
    """Segments after the ``/api`` (and ``/vN``) prefix."""
    parts = [part for part in path.split("?", 1)[0].split("/") if part]
    if parts and parts[0] == "api":
        parts = parts[1:]
    if parts and re.fullmatch(r"v\d+", parts[0]):
        parts = parts[1:]
    return parts


def _is_param(segment: str) -> bool:
    return segment.startswith(":") or segment.startswith("$")


def classify_route(route: RouteSpec) -> ContractKind:
    """Map a route onto its envelope pattern.

    GET without path parameters lists, GET with one fetches a single item.
    POST to a ``bulk-*`` action is a bulk mutation.
    """
    segments = path_segments(route.path)
    if route.method == "GET":
        if any(_is_param(segment) for segment in segments):
            return ContractKind.GET
        return ContractKind.LIST
    if route.method == "POST":
        if segments and segments[-1].startswith("bulk-"):
            return ContractKind.BULK
        return ContractKind.CREATE
    if route.method in {"PUT", "PATCH"}:
        return ContractKind.UPDATE
    return ContractKind.DELETE


def pascal_case(name: str) -> str:
    """``leave-allocations`` / ``leave_allocations`` → ``LeaveAllocations``."""
    words = re.split(r"[^A-Za-z0-9]+", name)
    return "".join(word[:1].upper() + word[1:] for word in words if word)


def resource_name(route: RouteSpec) -> str:
    """Type name of the resource a route belongs to."""
    if route.module:
        return pascal_case(route.module)
    segments = path_segments(route.path)
    return pascal_case(segments[0]) if segments else "Root"


def action_name(route: RouteSpec) -> str:
    """PascalCase of the trailing non-parameter segments after the resource."""
    segments = path_segments(route.path)[1:]
    trailing: list[str] = []
    for segment in reversed(segments):
        if _is_param(segment):
            if trailing:
                break
            continue
        trailing.append(segment)
    return "".join(pascal_case(segment) for segment in reversed(trailing))


def _read_table(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise RouteTableError(f"cannot parse route table {path}: {exc}") from exc


def load_route_table(path: str | Path) -> list[RouteSpec]:
    """Read a JSON or YAML route table into RouteSpecs, deduplicated by key."""
    path = Path(path)
    if not path.exists():
        raise RouteTableError(f"route table not found: {path}")

    raw = _read_table(path)
    if not isinstance(raw, dict) or not isinstance(raw.get("modules"), dict):
        raise RouteTableError(f"route table {path} has no 'modules' mapping")

    routes: list[RouteSpec] = []
    seen: set[str] = set()
    for module, entries in raw["modules"].items():
        if not isinstance(entries, list):
            logger.warning("Skipping module %s: expected a list of endpoints", module)
            continue
        for entry in entries:
            endpoint = entry.get("fullPath") or entry.get("path") if isinstance(entry, dict) else None
            if not is_valid_endpoint(endpoint):
                logger.warning("Skipping invalid endpoint in module %s: %r", module, entry)
                continue
            try:
                route = RouteSpec(method=str(entry.get("method", "")), path=endpoint, module=module)
            except ValueError as exc:
                logger.warning("Skipping endpoint %s in module %s: %s", endpoint, module, exc)
                continue
            if route.key in seen:
                continue
            seen.add(route.key)
            routes.append(route)

    logger.info("Loaded %d routes from %s", len(routes), path)
    return routes


def group_by_module(routes: list[RouteSpec]) -> dict[str, list[RouteSpec]]:
    grouped: dict[str, list[RouteSpec]] = {}
    for route in routes:
        module = route.module or (path_segments(route.path) or ["root"])[0]
        grouped.setdefault(module, []).append(route)
    return grouped
