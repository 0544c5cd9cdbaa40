"""
Portfolio Server Utils Package
Configuration, logging and small helpers
"""

from portfolio_server.utils.config import Config, load_config
from portfolio_server.utils.logging_config import setup_logging, setup_logging_from_config
from portfolio_server.utils.utils import (
    safe_float,
    safe_int,
    safe_div,
    format_ms_date,
    timestamp_ms,
    retry_async,
    Timer,
)

__all__ = [
    "Config",
    "load_config",
    "setup_logging",
    "setup_logging_from_config",
    "safe_float",
    "safe_int",
    "safe_div",
    "format_ms_date",
    "timestamp_ms",
    "retry_async",
    "Timer",
]
