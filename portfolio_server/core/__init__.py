"""
Portfolio Server Core Package
Exchange client, reconciliation and metrics
"""

from portfolio_server.core.errors import ExchangeError, PortfolioUnavailableError
from portfolio_server.core.exchange import MexcFuturesClient, create_signature
from portfolio_server.core.metrics import MetricsServer
from portfolio_server.core.portfolio import build_snapshot
from portfolio_server.core.service import PortfolioService

__all__ = [
    "ExchangeError",
    "PortfolioUnavailableError",
    "MexcFuturesClient",
    "create_signature",
    "MetricsServer",
    "build_snapshot",
    "PortfolioService",
]
