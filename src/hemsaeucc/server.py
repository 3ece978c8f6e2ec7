"""
HEMSAEUCC - Relay server process.

Opens the relay store, builds the HTTP application and serves it with
uvicorn. Requests are handled concurrently; the store serializes writes.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from . import __version__
from .config import Config
from .errors import HemsaeuccError
from .relay import create_app
from .relay_store import RelayStore
from .utils import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="HEMSAEUCC relay - stores sealed packets until recipients fetch them",
    )
    parser.add_argument("--version", action="version", version=f"HEMSAEUCC relay {__version__}")
    parser.add_argument("--config", type=str, default=None, help="Path to config.toml")
    parser.add_argument("--host", type=str, default=None, help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 8080)")
    parser.add_argument("--db", type=str, default=None, help="Relay database file (default: messages.db)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the relay server."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(Path(args.config).expanduser() if args.config else None)
    except HemsaeuccError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level="DEBUG" if args.debug else config.get("logging", "level", "INFO"),
        console=config.get("logging", "console_logging", True),
        log_file=config.get_log_file(),
    )

    host = args.host or config.get("relay", "host")
    port = args.port or config.get("relay", "port")
    db_path = Path(args.db or config.get("relay", "db_file")).expanduser()

    try:
        store = RelayStore(db_path)
    except HemsaeuccError as e:
        logger.error(f"Cannot start relay: {e}")
        sys.exit(1)

    app = create_app(store)
    logger.info(f"HEMSAEUCC relay running on {host}:{port} (db: {db_path})")

    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    finally:
        store.close()
        logger.info("Relay stopped")


if __name__ == "__main__":
    main()
