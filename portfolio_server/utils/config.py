"""
Configuration Module for the MEXC Portfolio Server
===================================================
Loads and validates configuration from .env file and the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger


PROJECT_ROOT = Path(__file__).resolve().parents[2]

VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class CredentialsConfig:
    """API credentials."""
    api_key: str = ""
    secret_key: str = ""

    @property
    def is_set(self) -> bool:
        return bool(self.api_key and self.secret_key)


@dataclass
class NetworkConfig:
    """Exchange connection settings."""
    base_url: str = "https://contract.mexc.com"
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 0.5
    min_request_interval: float = 0.05


@dataclass
class ServerConfig:
    """HTTP server settings."""
    host: str = "0.0.0.0"
    port: int = 10000
    static_dir: str = str(PROJECT_ROOT / "public")
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class PortfolioConfig:
    """Snapshot computation settings."""
    settlement_currency: str = "USDT"
    history_page_size: int = 200
    top_trades: int = 3
    date_format: str = "%Y-%m-%d"


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    log_dir: str = "logs"
    retention_days: int = 14
    file_logging: bool = True


@dataclass
class MetricsConfig:
    """Prometheus settings."""
    enabled: bool = False
    port: int = 9090


@dataclass
class Config:
    """Complete configuration."""
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)


def _get_env(key: str, default: str = "") -> str:
    """Get environment variable."""
    return os.getenv(key, default)


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    val = os.getenv(key)
    if val:
        try:
            return float(val)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {key}={val!r}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get int environment variable."""
    val = os.getenv(key)
    if val:
        try:
            return int(val)
        except ValueError:
            logger.warning(f"Ignoring non-integer {key}={val!r}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get bool environment variable."""
    val = os.getenv(key)
    if val:
        return val.lower() in ("true", "1", "yes", "on")
    return default


def _get_env_list(key: str, default: List[str]) -> List[str]:
    """Get comma separated environment variable."""
    val = os.getenv(key)
    if val:
        items = [item.strip() for item in val.split(",") if item.strip()]
        if items:
            return items
    return list(default)


def load_config(env_path: Optional[str] = None, require_credentials: bool = True) -> Config:
    """
    Load configuration from .env file.

    Args:
        env_path: Path to .env file. If None, searches in config/ and project root.
        require_credentials: Fail validation when the API key pair is missing.

    Returns:
        Loaded Config object
    """
    if env_path:
        if Path(env_path).exists():
            load_dotenv(env_path)
            logger.info(f"Loaded config from {env_path}")
        else:
            logger.warning(f"{env_path} not found - using environment only")
    else:
        # Try config/.env first, then root
        config_env = Path("config/.env")
        root_env = Path(".env")

        if config_env.exists():
            load_dotenv(config_env)
            logger.info(f"Loaded config from {config_env}")
        elif root_env.exists():
            load_dotenv(root_env)
            logger.info(f"Loaded config from {root_env}")
        else:
            logger.warning("No .env file found - using environment only")

    config = Config(
        credentials=CredentialsConfig(
            api_key=_get_env("MEXC_API_KEY").strip(),
            secret_key=_get_env("MEXC_SECRET_KEY").strip(),
        ),
        network=NetworkConfig(
            base_url=_get_env("MEXC_BASE_URL", "https://contract.mexc.com").rstrip("/"),
            request_timeout=_get_env_float("REQUEST_TIMEOUT", 30.0),
            max_retries=_get_env_int("MAX_RETRIES", 3),
            retry_delay=_get_env_float("RETRY_DELAY", 0.5),
            min_request_interval=_get_env_float("MIN_REQUEST_INTERVAL", 0.05),
        ),
        server=ServerConfig(
            host=_get_env("HOST", "0.0.0.0"),
            port=_get_env_int("PORT", 10000),
            static_dir=_get_env("STATIC_DIR", str(PROJECT_ROOT / "public")),
            cors_origins=_get_env_list("CORS_ORIGINS", ["*"]),
        ),
        portfolio=PortfolioConfig(
            settlement_currency=_get_env("SETTLEMENT_CURRENCY", "USDT").upper(),
            history_page_size=_get_env_int("HISTORY_PAGE_SIZE", 200),
            top_trades=_get_env_int("TOP_TRADES", 3),
            date_format=_get_env("DATE_FORMAT", "%Y-%m-%d"),
        ),
        logging=LoggingConfig(
            level=_get_env("LOG_LEVEL", "INFO").upper(),
            log_dir=_get_env("LOG_DIR", "logs"),
            retention_days=_get_env_int("LOG_RETENTION_DAYS", 14),
            file_logging=_get_env_bool("LOG_TO_FILE", True),
        ),
        metrics=MetricsConfig(
            enabled=_get_env_bool("METRICS_ENABLED", False),
            port=_get_env_int("METRICS_PORT", 9090),
        ),
    )

    _validate_config(config, require_credentials=require_credentials)

    return config


def _validate_config(config: Config, require_credentials: bool = True) -> None:
    """Validate configuration."""
    errors = []

    # Check credentials
    if require_credentials:
        if not config.credentials.api_key:
            errors.append("MEXC_API_KEY is required")
        if not config.credentials.secret_key:
            errors.append("MEXC_SECRET_KEY is required")

    # Check network
    if config.network.request_timeout <= 0:
        errors.append(f"REQUEST_TIMEOUT must be > 0, got {config.network.request_timeout}")

    if config.network.max_retries < 1:
        errors.append(f"MAX_RETRIES must be >= 1, got {config.network.max_retries}")

    # Check server
    if not 1 <= config.server.port <= 65535:
        errors.append(f"PORT must be 1-65535, got {config.server.port}")

    if config.metrics.enabled and not 1 <= config.metrics.port <= 65535:
        errors.append(f"METRICS_PORT must be 1-65535, got {config.metrics.port}")

    # Check portfolio params
    if not 1 <= config.portfolio.history_page_size <= 1000:
        errors.append(f"HISTORY_PAGE_SIZE must be 1-1000, got {config.portfolio.history_page_size}")

    if config.portfolio.top_trades < 1:
        errors.append(f"TOP_TRADES must be >= 1, got {config.portfolio.top_trades}")

    if config.logging.level not in VALID_LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}")

    if errors:
        for e in errors:
            logger.error(f"Config error: {e}")
        raise ValueError(f"Configuration validation failed: {errors}")

    logger.info("Configuration validated successfully")
