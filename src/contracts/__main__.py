"""Contract tooling CLI.

    python -m src.contracts stubs --routes docs/api-endpoints.json --out contracts/generated
    python -m src.contracts compare --routes docs/api-endpoints.json \
        --frontend docs/frontend-structure.json --out docs/CONTRACT_MISMATCHES.md
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from src.contracts.compare import compare_contracts, load_frontend_structure, render_report
from src.contracts.routes import RouteTableError, group_by_module, load_route_table
from src.contracts.stubs import render_common, render_stub
from src.logging_config import configure_logging

logger = logging.getLogger(__name__)


def stub_filename(module: str) -> str:
    return f"{module.replace('/', '-')}.stub.ts"


def cmd_stubs(args: argparse.Namespace) -> int:
    routes = load_route_table(args.routes)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    (out_dir / "common.ts").write_text(render_common(), encoding="utf-8")
    written = 1
    for module, module_routes in group_by_module(routes).items():
        target = out_dir / stub_filename(module)
        if target.exists() and not args.overwrite:
            logger.info("Keeping existing stub %s", target)
            continue
        target.write_text(render_stub(module, module_routes), encoding="utf-8")
        written += 1

    logger.info("Wrote %d contract files to %s", written, out_dir)
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    routes = load_route_table(args.routes)
    frontend = load_frontend_structure(args.frontend)
    comparison = compare_contracts(frontend, routes)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_report(comparison), encoding="utf-8")
    out.with_suffix(".json").write_text(json.dumps(comparison.to_dict(), indent=2), encoding="utf-8")
    logger.info("Wrote contract report to %s", out)

    if args.strict and comparison.has_mismatches:
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="API envelope contract tooling")
    parser.add_argument("--log-level", default="INFO", help="Log level")

    subparsers = parser.add_subparsers(dest="command")

    stubs_parser = subparsers.add_parser("stubs", help="Generate TypeScript contract stubs")
    stubs_parser.add_argument("--routes", required=True, help="Route table (JSON or YAML)")
    stubs_parser.add_argument("--out", default="contracts/generated", help="Output directory")
    stubs_parser.add_argument("--overwrite", action="store_true", help="Replace existing stub files")

    compare_parser = subparsers.add_parser("compare", help="Compare frontend and backend contracts")
    compare_parser.add_argument("--routes", required=True, help="Route table (JSON or YAML)")
    compare_parser.add_argument("--frontend", required=True, help="frontend-structure.json")
    compare_parser.add_argument("--out", default="docs/CONTRACT_MISMATCHES.md", help="Markdown report path")
    compare_parser.add_argument("--strict", action="store_true", help="Exit 1 when mismatches exist")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "stubs":
            return cmd_stubs(args)
        if args.command == "compare":
            return cmd_compare(args)
    except RouteTableError as exc:
        logger.error("%s", exc)
        return 2

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
