#!/usr/bin/env python3
"""
Book Store API -- development server launcher.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload
  DEBUG=true python main.py

Environment variables (see core/config.py for the full list):
  SECRET_KEY     JWT signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file next to the code.
  HOST, PORT     Defaults for --host and --port (127.0.0.1, 3000).
"""

import argparse

import uvicorn

from core.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="bookstore",
        description="Serve the Book Store REST API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --host 0.0.0.0 --port 8080
  python main.py --reload
        """,
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Interface to bind (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to listen on (default: {settings.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only)",
    )
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default="info",
        help="uvicorn log level (default: info)",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload, log_level=args.log_level)


if __name__ == "__main__":
    main()
