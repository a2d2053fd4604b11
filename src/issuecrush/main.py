"""CLI entrypoint for the IssueCrush server."""

from __future__ import annotations

import argparse
import logging

import uvicorn
from pydantic import ValidationError

from issuecrush import __version__
from issuecrush.config import Settings
from issuecrush.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="issuecrush",
        description="Session-holding GitHub proxy and AI issue summaries",
    )
    parser.add_argument("--version", action="version", version=f"issuecrush {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: PORT or 3000)")
    serve.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as e:
        # Logging isn't configured yet; keep this simple.
        print(f"Configuration error: {e}")
        return 2

    configure_logging(args.log_level or settings.log_level)

    if args.command == "serve":
        host = args.host or settings.host
        port = args.port or settings.port
        logger.info("Starting server", extra={"host": host, "port": port})
        uvicorn.run(
            "issuecrush.server.app:create_app",
            factory=True,
            host=host,
            port=port,
            log_config=None,
        )
        return 0

    logger.error("Unknown command", extra={"command": args.command})
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
