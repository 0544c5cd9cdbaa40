#!/usr/bin/env python3
"""
MEXC Portfolio Server
=====================

Serves a read-only snapshot of a MEXC futures account as JSON at
/api/portfolio-data, together with the static frontend.

Usage:
    python portfolio-server.py                      # .env from config/ or project root
    python portfolio-server.py --env path/to/.env
    python portfolio-server.py --port 8080 --log-level DEBUG
    python portfolio-server.py --metrics            # Prometheus exporter on METRICS_PORT

Required environment:
    MEXC_API_KEY, MEXC_SECRET_KEY
"""

import argparse
import sys

import uvicorn
from loguru import logger

from portfolio_server import __version__
from portfolio_server.api import create_app
from portfolio_server.utils.config import _validate_config, load_config
from portfolio_server.utils.logging_config import setup_logging_from_config


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MEXC futures portfolio server")
    parser.add_argument("--env", help="Path to .env file")
    parser.add_argument("--host", help="Bind address (overrides HOST)")
    parser.add_argument("--port", type=int, help="Listen port (overrides PORT)")
    parser.add_argument("--log-level", help="Console log level (overrides LOG_LEVEL)")
    parser.add_argument("--metrics", action="store_true", help="Enable the Prometheus exporter")
    return parser.parse_args(argv)


def apply_overrides(config, args: argparse.Namespace) -> None:
    """Apply command line overrides on top of the loaded configuration."""
    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.log_level is not None:
        config.logging.level = args.log_level.upper()
    if args.metrics:
        config.metrics.enabled = True


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.env)
        apply_overrides(config, args)
        _validate_config(config)
    except ValueError as e:
        logger.error(str(e))
        return 1

    setup_logging_from_config(config)

    logger.info("=" * 60)
    logger.info(f"MEXC Portfolio Server v{__version__}")
    logger.info(f"Exchange: {config.network.base_url}")
    logger.info(f"Settlement currency: {config.portfolio.settlement_currency}")
    logger.info("=" * 60)

    app = create_app(config)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="warning")
    return 0


if __name__ == "__main__":
    sys.exit(main())
