"""TypeScript contract stub rendering.

``render_common`` emits ``common.ts`` straight from the envelope and request
models so the client types cannot drift from the server. ``render_stub``
emits one ``<module>.stub.ts`` per route-table module: every route becomes a
request/response pair in the envelope pattern its method and path select.
Type names that would repeat inside a file get the route's action appended.
"""

from __future__ import annotations

import json
import types
import typing
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal, TypeVar, Union

from pydantic import BaseModel

from src.contracts.routes import ContractKind, RouteSpec, action_name, classify_route, resource_name
from src.models.requests import (
    AuditFields,
    BulkDeleteRequest,
    BulkUpdateRequest,
    DateRangeParams,
    IdParam,
    PaginationParams,
    SearchParams,
    SoftDeleteFields,
)
from src.models.responses import (
    ApiResponse,
    BulkOperationError,
    BulkOperationResponse,
    ErrorResponse,
    PaginatedResponse,
    Pagination,
)
from src.models.status import STATUS_VOCABULARIES

COMMON_MODELS: tuple[type[BaseModel], ...] = (
    ApiResponse,
    Pagination,
    PaginatedResponse,
    ErrorResponse,
    BulkOperationError,
    BulkOperationResponse,
    PaginationParams,
    SearchParams,
    DateRangeParams,
    IdParam,
    AuditFields,
    SoftDeleteFields,
    BulkDeleteRequest,
    BulkUpdateRequest,
)

_SCALARS: dict[Any, str] = {
    bool: "boolean",
    int: "number",
    float: "number",
    str: "string",
    date: "string",
    datetime: "string",
    Any: "any",
    type(None): "null",
}


def ts_type(annotation: Any) -> str:
    """TypeScript spelling of a model field annotation."""
    if annotation in _SCALARS:
        return _SCALARS[annotation]
    if isinstance(annotation, TypeVar):
        return annotation.__name__

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin in (Union, types.UnionType):
        return " | ".join(ts_type(arg) for arg in args)
    if origin is Literal:
        return " | ".join(_ts_literal(arg) for arg in args)
    if origin in (list, tuple, set, frozenset):
        inner = ts_type(args[0]) if args else "any"
        return f"({inner})[]" if " | " in inner else f"{inner}[]"
    if origin is dict:
        value = ts_type(args[1]) if len(args) == 2 else "any"
        return f"Record<string, {value}>"
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return " | ".join(f'"{member.value}"' for member in annotation)
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation.__name__
    return "any"


def _ts_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value)
    return str(value)


def _without_none(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (Union, types.UnionType):
        args = tuple(arg for arg in typing.get_args(annotation) if arg is not type(None))
        if len(args) == 1:
            return args[0]
        return Union[args]  # noqa: UP007
    return annotation


def render_interface(model: type[BaseModel]) -> str:
    """One ``export interface`` block for a pydantic model."""
    parameters = model.__pydantic_generic_metadata__.get("parameters") or ()
    generic = f"<{', '.join(param.__name__ for param in parameters)}>" if parameters else ""

    lines = [f"export interface {model.__name__}{generic} {{"]
    for name, field in model.model_fields.items():
        wire_name = field.alias or name
        # Literal discriminators are always on the wire even though they default.
        optional = not field.is_required() and typing.get_origin(field.annotation) is not Literal
        annotation = _without_none(field.annotation) if optional else field.annotation
        lines.append(f"  {wire_name}{'?' if optional else ''}: {ts_type(annotation)};")
    lines.append("}")
    return "\n".join(lines)


def render_common(generated: date | None = None) -> str:
    """Render ``common.ts``: envelope interfaces plus status unions."""
    generated = generated or date.today()
    blocks = [
        "/**\n"
        " * Common API Contracts\n"
        " * Shared envelope, request primitives and status vocabularies\n"
        f" * Generated: {generated.isoformat()}\n"
        " */",
    ]
    blocks.extend(render_interface(model) for model in COMMON_MODELS)
    for vocabulary in STATUS_VOCABULARIES.values():
        blocks.append(f"export type {vocabulary.__name__} = {ts_type(vocabulary)};")
    return "\n\n".join(blocks) + "\n"


class _Names:
    """Hands out type names, appending the route action on repeats."""

    def __init__(self) -> None:
        self._used: set[str] = set()

    def claim(self, base: str, route: RouteSpec, prefix: str, suffix: str) -> str:
        candidate = f"{prefix}{base}{suffix}"
        if candidate in self._used:
            candidate = f"{prefix}{base}{action_name(route)}{suffix}"
        counter = 2
        unique = candidate
        while unique in self._used:
            unique = f"{candidate}{counter}"
            counter += 1
        self._used.add(unique)
        return unique


def _route_block(route: RouteSpec, entity: str, names: _Names) -> tuple[str, set[str]]:
    kind = classify_route(route)
    header = f"// {route.method} {route.path}"
    imports: set[str] = set()

    if kind is ContractKind.LIST:
        params = names.claim(entity, route, "", "ListParams")
        response = names.claim(entity, route, "", "ListResponse")
        imports.add("PaginatedResponse")
        body = (
            f"export interface {params} {{\n"
            "  page?: number;\n"
            "  limit?: number;\n"
            "  search?: string;\n"
            "  sort?: string;\n"
            "  // TODO: Add filters\n"
            "}\n"
            f"export type {response} = PaginatedResponse<{entity}>;"
        )
    elif kind is ContractKind.GET:
        response = names.claim(entity, route, "Get", "Response")
        imports.add("ApiResponse")
        body = f"export type {response} = ApiResponse<{entity}>;"
    elif kind is ContractKind.DELETE:
        response = names.claim(entity, route, "Delete", "Response")
        imports.add("ApiResponse")
        body = f"export type {response} = ApiResponse<{{ deleted: boolean }}>;"
    elif kind is ContractKind.BULK:
        request = names.claim(entity, route, "Bulk", "Request")
        response = names.claim(entity, route, "Bulk", "Response")
        if route.path.rstrip("/").endswith("bulk-delete"):
            imports.add("BulkDeleteRequest")
            request_type = "BulkDeleteRequest"
        else:
            imports.add("BulkUpdateRequest")
            request_type = f"BulkUpdateRequest<Partial<{entity}>>"
        imports.add("BulkOperationResponse")
        body = (
            f"export type {request} = {request_type};\n"
            f"export type {response} = BulkOperationResponse;"
        )
    else:
        prefix = "Create" if kind is ContractKind.CREATE else "Update"
        allow_list = "ALLOWED_FIELDS" if kind is ContractKind.CREATE else "ALLOWED_UPDATE_FIELDS"
        request = names.claim(entity, route, prefix, "Request")
        response = names.claim(entity, route, prefix, "Response")
        imports.add("ApiResponse")
        body = (
            f"export interface {request} {{\n"
            f"  // TODO: Add fields from controller {allow_list}\n"
            "}\n"
            f"export type {response} = ApiResponse<{entity}>;"
        )

    return f"{header}\n{body}", imports


def render_stub(module: str, routes: list[RouteSpec], generated: date | None = None) -> str:
    """Render ``<module>.stub.ts`` for the routes of one module."""
    generated = generated or date.today()
    names = _Names()
    imports: set[str] = set()
    blocks: list[str] = []

    entities: list[str] = []
    for route in routes:
        entity = resource_name(route)
        if entity not in entities:
            entities.append(entity)
        block, used = _route_block(route, entity, names)
        blocks.append(block)
        imports |= used

    title = " ".join(part.capitalize() for part in module.replace("/", "-").split("-") if part)
    header = (
        "/**\n"
        f" * {title} API Contracts\n"
        " * Auto-generated stub - fill in request/response types\n"
        f" * Generated: {generated.isoformat()}\n"
        " */"
    )
    sections = [header]
    if imports:
        sections.append(f"import {{ {', '.join(sorted(imports))} }} from './common';")
    sections.extend(
        f"export interface {entity} {{\n  _id: string;\n  // TODO: Add fields from model\n}}"
        for entity in entities
    )
    sections.extend(blocks)
    return "\n\n".join(sections) + "\n"
