"""
Process entry point for the todo service.

Usage:
    python -m todo_service [--host HOST] [--port PORT]
    todo-service [--host HOST] [--port PORT]

uvicorn handles SIGINT/SIGTERM: it stops accepting connections and waits up to
SHUTDOWN_TIMEOUT_SECONDS for in-flight requests before exiting.
"""
from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn

from .errors import ConfigError
from .main import create_app
from .middleware import configure_logging
from .settings import get_settings

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="todo-service", description="Run the todo HTTP service.")
    parser.add_argument("--host", default=None, help="Listen address (overrides HOST)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (overrides PORT)")
    return parser.parse_args(argv)


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> int:
    """Run the service until interrupted. Return the process exit code."""
    args = _parse_args(argv)
    try:
        settings = get_settings()
    except ConfigError as e:
        configure_logging()
        logger.error("Invalid configuration: %s", e.message)
        return 1

    configure_logging(settings.log_level)
    try:
        app = create_app(settings)
    except ConfigError as e:
        logger.error("Failed to start: %s", e.message)
        return 1

    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port
    logger.info("Listening on %s:%s", host, port)
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_graceful_shutdown=int(settings.shutdown_timeout_seconds),
        log_config=None,
    )
    logger.info("Server gracefully stopped")
    return 0
