"""
Logging configuration for the portfolio server.

Console output is coloured for dark terminals; file output is plain text with
daily rotation. A separate request log keeps the per-snapshot summaries.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger


# =============================================================================
# ANSI Colors
# =============================================================================

class Colors:
    """ANSI color codes for dark terminal backgrounds"""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[38;5;203m"
    GREEN = "\033[38;5;114m"
    YELLOW = "\033[38;5;221m"
    BLUE = "\033[38;5;111m"
    CYAN = "\033[38;5;80m"
    GRAY = "\033[38;5;245m"


LEVEL_TAGS = {
    'TRACE': 'TRCE',
    'DEBUG': 'DBUG',
    'INFO': 'INFO',
    'SUCCESS': 'SUCC',
    'WARNING': 'WARN',
    'ERROR': 'ERR!',
    'CRITICAL': 'CRIT',
}

LEVEL_COLORS = {
    'TRACE': Colors.GRAY,
    'DEBUG': Colors.GRAY,
    'INFO': Colors.CYAN,
    'SUCCESS': Colors.GREEN,
    'WARNING': Colors.YELLOW,
    'ERROR': Colors.RED,
    'CRITICAL': Colors.RED + Colors.BOLD,
}

REQUEST_LOG_KEYWORDS = ("portfolio", "pnl", "equity")


def short_module_name(name: str) -> str:
    """Strip the package prefixes so console columns stay narrow."""
    for prefix in ("portfolio_server.", "core.", "utils."):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return name


# =============================================================================
# Formatters
# =============================================================================

def format_console(record: dict) -> str:
    """
    Console formatter.

    Format: [HH:MM:SS] [LEVEL] module  message
    """
    timestamp = record["time"].astimezone(timezone.utc).strftime("%H:%M:%S")

    level = record["level"].name
    level_color = LEVEL_COLORS.get(level, Colors.RESET)
    level_tag = LEVEL_TAGS.get(level, 'INFO')

    module = short_module_name(record["name"] or "")[:12].ljust(12)

    msg = record["message"]
    lowered = msg.lower()
    msg_color = Colors.RESET
    if any(word in lowered for word in ('error', 'failed', 'unavailable')):
        msg_color = Colors.RED
    elif any(word in lowered for word in ('degraded', 'missing', 'retry')):
        msg_color = Colors.YELLOW
    elif 'pnl' in lowered or 'equity' in lowered:
        msg_color = Colors.BLUE
    elif any(word in lowered for word in ('started', 'connected', 'loaded')):
        msg_color = Colors.GREEN

    formatted = (
        f"{Colors.GRAY}[{timestamp}]{Colors.RESET} "
        f"{level_color}[{level_tag}]{Colors.RESET} "
        f"{Colors.DIM}{module}{Colors.RESET} "
        f"{msg_color}{{message}}{Colors.RESET}"
    )

    if record["exception"]:
        formatted += "\n{exception}"

    return formatted + "\n"


def format_file(record: dict) -> str:
    """
    Plain formatter for file output - no colors, UTC timestamps.

    Format: YYYY-MM-DD HH:MM:SS | LEVEL | module:function:line - message
    """
    timestamp = record["time"].astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    level_tag = LEVEL_TAGS.get(record["level"].name, 'INFO')
    module = short_module_name(record["name"] or "")
    formatted = f"{timestamp} | {level_tag: <4} | {module}:{record['function']}:{record['line']} - {{message}}"
    if record["exception"]:
        formatted += "\n{exception}"

    return formatted + "\n"


def is_request_record(record: dict) -> bool:
    lowered = record["message"].lower()
    return any(keyword in lowered for keyword in REQUEST_LOG_KEYWORDS)


# =============================================================================
# Logging Setup
# =============================================================================

def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_retention_days: int = 14,
    enable_request_log: bool = True,
) -> None:
    """
    Configure loguru sinks.

    Args:
        log_level: Minimum console log level
        log_dir: Directory for log files; None disables file logging
        log_retention_days: Days to keep old logs
        enable_request_log: Whether to create a separate snapshot/request log
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level=log_level,
        format=format_console,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "portfolio_{time:YYYY-MM-DD}.log",
            level="DEBUG",
            format=format_file,
            rotation="00:00",
            retention=f"{log_retention_days} days",
            compression="gz",
            enqueue=True,
        )

        if enable_request_log:
            logger.add(
                log_dir / "requests_{time:YYYY-MM-DD}.log",
                level="INFO",
                format=format_file,
                rotation="00:00",
                retention=f"{log_retention_days} days",
                compression="gz",
                enqueue=True,
                filter=is_request_record,
            )

    logger.info(f"Logging initialized: {log_level} level, {log_retention_days} day retention")


def setup_logging_from_config(config) -> None:
    """Configure logging from a loaded Config."""
    log_dir = Path(config.logging.log_dir) if config.logging.file_logging else None
    setup_logging(
        log_level=config.logging.level,
        log_dir=log_dir,
        log_retention_days=config.logging.retention_days,
    )


def log_snapshot(equity: float, unrealized_pnl: float, positions: int, warnings: int) -> None:
    """Log a one-line portfolio summary"""
    pnl_sign = '+' if unrealized_pnl >= 0 else ''
    logger.info(
        f"Portfolio snapshot: Equity=${equity:,.2f} | "
        f"uPnL=${pnl_sign}{unrealized_pnl:,.2f} | "
        f"Positions={positions} | Warnings={warnings} | "
        f"at {datetime.now(timezone.utc).strftime('%H:%M:%S')}"
    )
