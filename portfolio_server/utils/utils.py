"""
Utility Functions for the Portfolio Server
===========================================
Common helper functions.
"""

import asyncio
import math
import time
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


def safe_float(value: Any, default: float = 0.0) -> float:
    """Parse an exchange numeric field; missing, null or garbage gives default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    """Parse an exchange integer field."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def safe_div(a: float, b: float, default: float = 0.0) -> float:
    """Safe division with default for zero denominator."""
    return a / b if b != 0 else default


def timestamp_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(ms: int) -> datetime:
    """Convert milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def format_ms_date(ms: Optional[int], fmt: str = "%Y-%m-%d", missing: str = "N/A") -> str:
    """Format a millisecond epoch as a date string, or `missing` when absent."""
    if not ms or ms <= 0:
        return missing
    try:
        return ms_to_datetime(ms).strftime(fmt)
    except (OverflowError, OSError, ValueError):
        return missing


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with seconds precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


async def retry_async(
    func,
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,)
) -> Any:
    """Retry async function with exponential backoff."""
    last_exception = None
    current_delay = delay

    for attempt in range(max_retries):
        try:
            return await func()
        except exceptions as e:
            last_exception = e
            if attempt < max_retries - 1:
                logger.warning(f"Retry {attempt + 1}/{max_retries} after {current_delay}s: {e}")
                await asyncio.sleep(current_delay)
                current_delay *= backoff

    raise last_exception


class Timer:
    """Simple timer context manager."""

    def __init__(self, name: str = ""):
        self.name = name
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = (time.perf_counter() - self.start) * 1000  # ms
        if self.name:
            logger.debug(f"{self.name}: {self.elapsed:.1f}ms")

    @property
    def seconds(self) -> float:
        return self.elapsed / 1000
