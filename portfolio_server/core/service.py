"""
Portfolio Service
=================
Fetches every source concurrently and reconciles them into one snapshot.

Account sources (assets, positions) are required: without them equity and
PNL are meaningless and the request fails. Market and history sources are
optional: a failure there is logged, counted and reported as a warning
while the snapshot is still served.
"""

import asyncio
from typing import Any, Dict, List, Optional

from loguru import logger

from portfolio_server.core.errors import PortfolioUnavailableError
from portfolio_server.core.exchange import MexcFuturesClient
from portfolio_server.core.metrics import MetricsServer
from portfolio_server.core.models import PortfolioSnapshot
from portfolio_server.core.portfolio import build_snapshot
from portfolio_server.utils.logging_config import log_snapshot
from portfolio_server.utils.utils import Timer


REQUIRED_SOURCES = ("assets", "positions")
OPTIONAL_SOURCES = ("history", "tickers", "contracts")


class PortfolioService:
    """Builds portfolio snapshots from the exchange."""

    def __init__(self, client: MexcFuturesClient, config, metrics: Optional[MetricsServer] = None):
        self.client = client
        self.config = config
        self.metrics = metrics

    async def fetch_sources(self) -> Dict[str, Any]:
        """Fetch all five sources concurrently. Failed sources hold their exception."""
        results = await asyncio.gather(
            self.client.get_assets(),
            self.client.get_open_positions(),
            self.client.get_history_orders(self.config.portfolio.history_page_size),
            self.client.get_tickers(),
            self.client.get_contract_details(),
            return_exceptions=True,
        )
        return dict(zip(REQUIRED_SOURCES + OPTIONAL_SOURCES, results))

    async def get_snapshot(self) -> PortfolioSnapshot:
        """Fetch and reconcile one snapshot."""
        with Timer("portfolio snapshot") as timer:
            try:
                sources = await self.fetch_sources()
                warnings = self._check_sources(sources)
                snapshot = build_snapshot(
                    assets=sources["assets"],
                    positions=sources["positions"],
                    history=sources["history"],
                    tickers=sources["tickers"],
                    contracts=sources["contracts"],
                    config=self.config.portfolio,
                    warnings=warnings,
                )
            except Exception:
                if self.metrics:
                    self.metrics.record_failure()
                raise

        for warning in snapshot.warnings:
            logger.warning(f"Snapshot degraded: {warning}")

        log_snapshot(
            snapshot.total_balance,
            snapshot.unrealized_pnl,
            snapshot.open_positions_count,
            len(snapshot.warnings),
        )

        if self.metrics:
            self.metrics.record_snapshot(
                snapshot.total_balance,
                snapshot.unrealized_pnl,
                snapshot.open_positions_count,
                timer.seconds,
            )

        return snapshot

    async def get_portfolio_data(self) -> Dict[str, Any]:
        """Snapshot as the JSON-ready dict served to the frontend."""
        snapshot = await self.get_snapshot()
        return snapshot.to_dict()

    def _check_sources(self, sources: Dict[str, Any]) -> List[str]:
        """
        Apply the partial-failure policy in place.

        Raises PortfolioUnavailableError when a required source failed;
        replaces failed optional sources with an empty list and returns
        a warning for each.
        """
        failed_required = []
        for name in REQUIRED_SOURCES:
            result = sources[name]
            if isinstance(result, BaseException):
                self._record_error(name, result)
                failed_required.append(f"{name}: {result}")

        if failed_required:
            first = sources[REQUIRED_SOURCES[0]]
            if not isinstance(first, BaseException):
                first = sources[REQUIRED_SOURCES[1]]
            raise PortfolioUnavailableError(
                "Portfolio unavailable - " + "; ".join(failed_required),
                endpoint=getattr(first, "endpoint", ""),
                status=getattr(first, "status", None),
                code=getattr(first, "code", None),
            ) from first

        warnings = []
        for name in OPTIONAL_SOURCES:
            result = sources[name]
            if isinstance(result, BaseException):
                self._record_error(name, result)
                sources[name] = []
                warnings.append(f"{name} unavailable: {result}")

        return warnings

    def _record_error(self, source: str, error: BaseException) -> None:
        logger.error(f"Fetching {source} failed: {error}")
        if self.metrics:
            self.metrics.record_error(source)
