from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from api_usage import __version__
from api_usage.core.config import LOG_LEVELS, load_config
from api_usage.core.errors import ConfigError, ExporterError
from api_usage.core.logging_setup import configure_logging
from api_usage.core.spec_store import SpecificationSource


def _source(args: argparse.Namespace) -> SpecificationSource:
    return SpecificationSource(url=args.url, file=args.file, timeout=args.timeout)


def cmd_serve(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log.level, config.log.format)

    # uvicorn is only needed to serve
    from api_usage.main import run_server

    return run_server(config)


def cmd_routes(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    try:
        spec = _source(args).load()
    except ExporterError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    meta = spec.meta
    print(f"{meta.title} {meta.version} (base path: {meta.base_path or '/'}, endpoints: {meta.endpoint_count})")
    for method, templates in spec.routes().items():
        for t in templates:
            print(f"{method:<8}{t}")
    return 0


def cmd_match(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    try:
        spec = _source(args).load()
    except ExporterError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    match = spec.match_path(args.method, args.uri)
    if match is None:
        print("no match")
        return 1
    suffix = f" ({match.operation_id})" if match.operation_id else ""
    print(f"{match.method} {match.path}{suffix}")
    return 0


def _add_source_args(p: argparse.ArgumentParser) -> None:
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", help="URL of the OpenAPI specification")
    src.add_argument("--file", help="File path of the OpenAPI specification")
    p.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds for --url")
    p.add_argument("--log-level", default="warning", choices=LOG_LEVELS)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="api-usage", description="Kong OpenAPI prometheus exporter")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Start the prometheus metrics server")
    serve.add_argument("--config", default=None, help="Config file (default $API_USAGE_CONFIG or ./config.yaml)")
    serve.set_defaults(func=cmd_serve)

    routes = sub.add_parser("routes", help="List the routes declared by a specification")
    _add_source_args(routes)
    routes.set_defaults(func=cmd_routes)

    match = sub.add_parser("match", help="Resolve one request against a specification")
    _add_source_args(match)
    match.add_argument("method", help="HTTP method, e.g. GET")
    match.add_argument("uri", help="Request URI, e.g. /api/v1/users/42")
    match.set_defaults(func=cmd_match)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
