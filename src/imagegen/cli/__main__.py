"""CLI entry point for the image generation backend.

Usage:
    python -m imagegen.cli serve [--host HOST] [--port PORT] [--reload]
    python -m imagegen.cli init-db
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog
import uvicorn

from imagegen.core import timezone  # noqa: F401
from imagegen.core.config import Settings, configure_logging
from imagegen.core.database import create_engine, create_schema

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Gemini image generation backend")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, help="Bind port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    init_db = subparsers.add_parser("init-db", help="Create database tables and exit")
    init_db.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def init_db(settings: Settings) -> None:
    engine = create_engine(
        settings.resolved_database_url,
        pool_size=settings.db_pool_size,
        timeout_seconds=settings.db_timeout_seconds,
    )
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code: 0 (success), 1 (error)
    """
    args = parse_args(argv)
    settings = Settings()  # type: ignore[call-arg]

    if args.command == "serve":
        uvicorn.run(
            "imagegen.app:app",
            host=args.host or settings.host,
            port=args.port or settings.port,
            reload=args.reload,
        )
        return 0

    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    try:
        asyncio.run(init_db(settings))
    except Exception as e:
        logger.error("cli.init_db_failed", error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("cli.init_db_completed", db_url=settings.safe_database_url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
