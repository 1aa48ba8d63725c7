"""Contract tooling: route tables, TypeScript stubs and contract comparison."""

from src.contracts.compare import compare_contracts, compare_endpoints, compare_enums, render_report
from src.contracts.routes import (
    ContractKind,
    RouteSpec,
    RouteTableError,
    classify_route,
    load_route_table,
    normalize_endpoint,
)
from src.contracts.stubs import render_common, render_stub

__all__ = [
    "ContractKind",
    "RouteSpec",
    "RouteTableError",
    "classify_route",
    "compare_contracts",
    "compare_endpoints",
    "compare_enums",
    "load_route_table",
    "normalize_endpoint",
    "render_common",
    "render_report",
    "render_stub",
]
