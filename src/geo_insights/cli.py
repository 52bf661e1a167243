"""CLI entrypoint for geo-insights.

Runs workflows once from the terminal, or serves the REST API.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from geo_insights import __version__
from geo_insights.config import ServiceSettings
from geo_insights.engine.errors import InvalidInput, StoreUnavailable
from geo_insights.engine.models import WorkflowExecution, WorkflowStatus
from geo_insights.logging import configure_logging
from geo_insights.server.app import build_engine

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geo-insights",
        description="IP geolocation and AI location insights, run as tracked workflows",
    )
    parser.add_argument("--version", action="version", version=f"geo-insights {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    serve.add_argument("--port", type=int, default=8000, help="Port to listen on")

    locate = subparsers.add_parser("locate", help="Run the location workflow for an IP")
    locate.add_argument("ip", help="IPv4 or IPv6 address to geolocate")

    analyze = subparsers.add_parser(
        "analyze",
        help="Run the location analysis workflow (IP and/or city + country)",
    )
    analyze.add_argument("--ip", default=None, help="IP address to geolocate first")
    analyze.add_argument("--city", default=None, help="City name")
    analyze.add_argument("--country", default=None, help="Country name")
    analyze.add_argument(
        "--purpose",
        default="general",
        help="Why the location matters, e.g. 'travel', 'relocation', 'business'",
    )

    return parser


def _print_execution(execution: WorkflowExecution) -> int:
    print(json.dumps(execution.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    return 0 if execution.status == WorkflowStatus.COMPLETED else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ServiceSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn

        from geo_insights.server.app import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
        return 0

    engine = build_engine(settings)
    try:
        if args.command == "locate":
            return _print_execution(engine.start_location_workflow(args.ip))

        if args.command == "analyze":
            return _print_execution(
                engine.start_location_analysis_workflow(
                    ip=args.ip,
                    city=args.city,
                    country=args.country,
                    purpose=args.purpose,
                )
            )
    except InvalidInput as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1
    except StoreUnavailable:
        logger.exception("Execution store unavailable")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
