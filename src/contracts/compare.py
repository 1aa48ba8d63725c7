"""Frontend vs backend contract comparison.

Compares the endpoints and enums a frontend expects (``frontend-structure.json``)
with the backend route table and status vocabularies, and renders the result
as a markdown report.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.contracts.routes import RouteSpec, RouteTableError, is_valid_endpoint, normalize_endpoint, path_segments
from src.models.status import STATUS_VOCABULARIES

logger = logging.getLogger(__name__)

_MAX_ROWS_PER_MODULE = 50


class FrontendEndpoint(BaseModel):
    """One API call site found in the frontend."""

    method: str
    endpoint: str
    source: str | None = None

    @field_validator("method")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


class FrontendEnum(BaseModel):
    """An enum declared by the frontend; ``values`` may be a list or a mapping."""

    name: str
    values: list[str] | dict[str, str] = Field(default_factory=list)

    def value_set(self) -> set[str]:
        if isinstance(self.values, dict):
            return set(self.values.values())
        return set(self.values)


class FrontendStructure(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_endpoints: list[FrontendEndpoint] = Field(default_factory=list, alias="apiEndpoints")
    enums: list[FrontendEnum] = Field(default_factory=list)


@dataclass
class MethodMismatch:
    path: str
    frontend_method: str
    backend_method: str


@dataclass
class EndpointComparison:
    frontend_only: list[FrontendEndpoint] = field(default_factory=list)
    backend_only: list[RouteSpec] = field(default_factory=list)
    method_mismatches: list[MethodMismatch] = field(default_factory=list)


@dataclass
class EnumValueMismatch:
    name: str
    frontend_only: list[str]
    backend_only: list[str]


@dataclass
class EnumComparison:
    frontend_only: list[str] = field(default_factory=list)
    backend_only: list[str] = field(default_factory=list)
    value_mismatches: list[EnumValueMismatch] = field(default_factory=list)


@dataclass
class ContractComparison:
    endpoints: EndpointComparison
    enums: EnumComparison

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoints": {
                "frontendOnly": [ep.model_dump(exclude_none=True) for ep in self.endpoints.frontend_only],
                "backendOnly": [{"method": r.method, "fullPath": r.path} for r in self.endpoints.backend_only],
                "methodMismatch": [asdict(m) for m in self.endpoints.method_mismatches],
            },
            "enums": asdict(self.enums),
        }

    @property
    def has_mismatches(self) -> bool:
        return any(
            (
                self.endpoints.frontend_only,
                self.endpoints.backend_only,
                self.endpoints.method_mismatches,
                self.enums.frontend_only,
                self.enums.value_mismatches,
            )
        )


def load_frontend_structure(path: str | Path) -> FrontendStructure:
    path = Path(path)
    if not path.exists():
        raise RouteTableError(f"frontend structure not found: {path}")
    try:
        return FrontendStructure.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise RouteTableError(f"cannot parse frontend structure {path}: {exc}") from exc


def backend_enums() -> dict[str, list[str]]:
    """Status vocabularies keyed by enum class name."""
    return {
        vocabulary.__name__: [member.value for member in vocabulary]
        for vocabulary in STATUS_VOCABULARIES.values()
    }


def compare_endpoints(
    frontend: list[FrontendEndpoint],
    backend: list[RouteSpec],
) -> EndpointComparison:
    """Diff frontend call sites against backend routes by ``METHOD|path`` key.

    A frontend call whose normalized path exists in the backend under another
    method is reported as a method mismatch, not as frontend-only.
    """
    frontend_by_key: dict[str, FrontendEndpoint] = {}
    for ep in frontend:
        if not is_valid_endpoint(ep.endpoint):
            continue
        key = f"{ep.method}|{normalize_endpoint(ep.endpoint)}"
        frontend_by_key.setdefault(key, ep)

    backend_by_key: dict[str, RouteSpec] = {}
    for route in backend:
        backend_by_key.setdefault(route.key, route)

    backend_methods_by_path: dict[str, list[str]] = defaultdict(list)
    for key in backend_by_key:
        method, path = key.split("|", 1)
        backend_methods_by_path[path].append(method)
    frontend_paths = {key.split("|", 1)[1] for key in frontend_by_key}

    result = EndpointComparison()
    for key, ep in frontend_by_key.items():
        if key in backend_by_key:
            continue
        path = key.split("|", 1)[1]
        if backend_methods_by_path.get(path):
            result.method_mismatches.append(
                MethodMismatch(
                    path=ep.endpoint,
                    frontend_method=ep.method,
                    backend_method=backend_methods_by_path[path][0],
                )
            )
        else:
            result.frontend_only.append(ep)

    for key, route in backend_by_key.items():
        if key not in frontend_by_key and key.split("|", 1)[1] not in frontend_paths:
            result.backend_only.append(route)

    return result


def compare_enums(
    frontend: list[FrontendEnum],
    backend: dict[str, list[str]],
) -> EnumComparison:
    """Diff enums by case-insensitive name, then by value set."""
    frontend_by_name = {e.name.lower(): e for e in frontend}
    backend_by_name = {name.lower(): (name, values) for name, values in backend.items()}

    result = EnumComparison()
    for name, enum in frontend_by_name.items():
        if name not in backend_by_name:
            result.frontend_only.append(enum.name)
            continue
        frontend_values = enum.value_set()
        backend_values = set(backend_by_name[name][1])
        only_frontend = sorted(frontend_values - backend_values)
        only_backend = sorted(backend_values - frontend_values)
        if only_frontend or only_backend:
            result.value_mismatches.append(
                EnumValueMismatch(name=enum.name, frontend_only=only_frontend, backend_only=only_backend)
            )

    for name, (original, _values) in backend_by_name.items():
        if name not in frontend_by_name:
            result.backend_only.append(original)

    return result


def compare_contracts(frontend: FrontendStructure, backend: list[RouteSpec]) -> ContractComparison:
    endpoints = compare_endpoints(frontend.api_endpoints, backend)
    enums = compare_enums(frontend.enums, backend_enums())
    logger.info(
        "Compared contracts: %d frontend-only, %d backend-only, %d method mismatches, %d enum mismatches",
        len(endpoints.frontend_only),
        len(endpoints.backend_only),
        len(endpoints.method_mismatches),
        len(enums.value_mismatches),
    )
    return ContractComparison(endpoints=endpoints, enums=enums)


def _module_of(path: str) -> str:
    segments = path_segments(path)
    return segments[0] if segments else "root"


def _grouped(items: list[Any], path_of) -> list[tuple[str, list[Any]]]:
    groups: dict[str, list[Any]] = defaultdict(list)
    for item in items:
        groups[_module_of(path_of(item))].append(item)
    return sorted(groups.items(), key=lambda pair: (-len(pair[1]), pair[0]))


def render_report(comparison: ContractComparison, generated: datetime | None = None) -> str:
    """Markdown report of a contract comparison."""
    generated = generated or datetime.now(timezone.utc)
    endpoints, enums = comparison.endpoints, comparison.enums

    lines = [
        "# Frontend vs Backend Contract Mismatch Report",
        "",
        f"> Generated: {generated.isoformat()}",
        "",
        "## Summary",
        "",
        "| Category | Frontend Only | Backend Only | Mismatches |",
        "|----------|--------------|--------------|------------|",
        f"| API Endpoints | {len(endpoints.frontend_only)} | {len(endpoints.backend_only)} "
        f"| {len(endpoints.method_mismatches)} |",
        f"| Enums | {len(enums.frontend_only)} | {len(enums.backend_only)} | {len(enums.value_mismatches)} |",
        "",
        "---",
        "",
        "## Endpoints the frontend calls but the backend does not serve",
        "",
    ]
    for module, eps in _grouped(endpoints.frontend_only, lambda ep: ep.endpoint):
        lines += [f"### {module} ({len(eps)} missing)", "", "| Method | Endpoint | Source File |",
                  "|--------|----------|-------------|"]
        lines += [f"| {ep.method} | `{ep.endpoint}` | {ep.source or '-'} |" for ep in eps[:_MAX_ROWS_PER_MODULE]]
        if len(eps) > _MAX_ROWS_PER_MODULE:
            lines.append(f"| ... | *{len(eps) - _MAX_ROWS_PER_MODULE} more* | - |")
        lines.append("")

    lines += ["---", "", "## Backend endpoints the frontend never calls", ""]
    for module, routes in _grouped(endpoints.backend_only, lambda route: route.path):
        lines += [f"### {module} ({len(routes)} unused)", "", "| Method | Endpoint |", "|--------|----------|"]
        lines += [f"| {route.method} | `{route.path}` |" for route in routes[:_MAX_ROWS_PER_MODULE]]
        if len(routes) > _MAX_ROWS_PER_MODULE:
            lines.append(f"| ... | *{len(routes) - _MAX_ROWS_PER_MODULE} more* |")
        lines.append("")

    lines += [
        "---",
        "",
        "## Method mismatches",
        "",
        "| Path | Frontend Method | Backend Method |",
        "|------|-----------------|----------------|",
    ]
    lines += [
        f"| `{m.path}` | {m.frontend_method} | {m.backend_method} |" for m in endpoints.method_mismatches
    ]

    lines += ["", "---", "", "## Enum value mismatches", ""]
    for mismatch in enums.value_mismatches:
        lines += [f"### {mismatch.name}", ""]
        if mismatch.frontend_only:
            lines += ["**Frontend-only values:** " + ", ".join(f"`{v}`" for v in mismatch.frontend_only), ""]
        if mismatch.backend_only:
            lines += ["**Backend-only values:** " + ", ".join(f"`{v}`" for v in mismatch.backend_only), ""]

    if enums.frontend_only:
        lines += ["## Enums missing from the backend", ""]
        lines += [f"- `{name}`" for name in enums.frontend_only]
        lines.append("")
    if enums.backend_only:
        lines += ["## Backend enums not exposed to the frontend", ""]
        lines += [f"- `{name}`" for name in enums.backend_only]
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"
