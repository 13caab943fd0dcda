"""Entry point for the clinic slots agent."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import structlog
import uvicorn

from .config import Settings
from .scraper import AvailabilityScraper
from .utils import parse_month


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Scrape appointment availability from a clinic booking calendar.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    commands = parser.add_subparsers(dest="command", required=True)

    scrape_cmd = commands.add_parser("scrape", help="Run one scrape and print the result as JSON.")
    scrape_cmd.add_argument("--url", help="Booking page URL (defaults to TARGET_CLINIC_URL).")
    scrape_cmd.add_argument("--proxy", help="Proxy server URI (defaults to the next entry of PROXY_LIST).")
    scrape_cmd.add_argument("--month", help="Target month as YYYY-MM.")
    scrape_cmd.add_argument(
        "--no-raw",
        action="store_true",
        help="Omit captured responses from the output.",
    )

    serve_cmd = commands.add_parser("serve", help="Serve the HTTP API.")
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def run_scrape(args: argparse.Namespace, settings: Settings) -> int:
    url = args.url or settings.target_url
    if not url:
        print("Error: no --url given and TARGET_CLINIC_URL is not set", file=sys.stderr)
        return 2

    target_month = None
    if args.month:
        target_month = parse_month(args.month)
        if target_month is None:
            print(f"Error: invalid --month: {args.month}", file=sys.stderr)
            return 2

    if args.no_raw:
        settings = settings.model_copy(update={"include_raw_data": False})

    result = asyncio.run(AvailabilityScraper(settings).scrape(url, args.proxy, target_month))
    print(json.dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2, ensure_ascii=False))
    return 1 if result.degraded else 0


def run_server(args: argparse.Namespace) -> int:
    uvicorn.run(
        "clinic_slots_agent.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
    )
    return 0


def cli(argv: Optional[List[str]] = None) -> int:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = Settings()
    except Exception as exc:  # pragma: no cover - startup validation
        LOGGER.exception("settings.error", error=str(exc))
        return 2

    if args.command == "serve":
        return run_server(args)
    return run_scrape(args, settings)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
