"""
Tests for the portfolio service (fetch, partial-failure policy, metrics).
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from portfolio_server.core.errors import ExchangeError, PortfolioUnavailableError
from portfolio_server.core.metrics import MetricsServer
from portfolio_server.core.service import PortfolioService


@pytest.fixture
def client(asset_rows, position_rows, history_rows, ticker_rows, contract_rows):
    """Mock exchange client returning the shared fixture rows."""
    client = MagicMock()
    client.get_assets = AsyncMock(return_value=asset_rows)
    client.get_open_positions = AsyncMock(return_value=position_rows)
    client.get_history_orders = AsyncMock(return_value=history_rows)
    client.get_tickers = AsyncMock(return_value=ticker_rows)
    client.get_contract_details = AsyncMock(return_value=contract_rows)
    return client


@pytest.fixture
def metrics():
    return MetricsServer(port=0, registry=CollectorRegistry())


def sample(metrics: MetricsServer, name: str, labels=None) -> float:
    value = metrics.registry.get_sample_value(name, labels or {})
    return value if value is not None else 0.0


class TestFetch:
    """Tests for concurrent fetching."""

    @pytest.mark.asyncio
    async def test_fetch_sources(self, client, config):
        """Every source is fetched and keyed by name."""
        config.portfolio.history_page_size = 50
        service = PortfolioService(client, config)

        sources = await service.fetch_sources()

        assert set(sources) == {"assets", "positions", "history", "tickers", "contracts"}
        client.get_history_orders.assert_awaited_once_with(50)

    @pytest.mark.asyncio
    async def test_failures_captured(self, client, config):
        """A failing source holds its exception instead of cancelling the others."""
        client.get_tickers.side_effect = ExchangeError("boom")
        service = PortfolioService(client, config)

        sources = await service.fetch_sources()

        assert isinstance(sources["tickers"], ExchangeError)
        assert isinstance(sources["assets"], list)


class TestSnapshot:
    """Tests for get_snapshot and the partial-failure policy."""

    @pytest.mark.asyncio
    async def test_full_snapshot(self, client, config):
        """All sources succeed."""
        service = PortfolioService(client, config)

        data = await service.get_portfolio_data()

        assert data["totalBalance"] == 1250.5
        assert data["openPositionsCount"] == 2
        assert data["unrealizedPnl"] == pytest.approx(30.0)
        assert data["warnings"] == []

    @pytest.mark.asyncio
    async def test_required_source_failure(self, client, config):
        """A failed assets fetch fails the whole snapshot."""
        client.get_assets.side_effect = ExchangeError("Invalid ApiKey", endpoint="/assets", status=401)
        service = PortfolioService(client, config)

        with pytest.raises(PortfolioUnavailableError) as exc:
            await service.get_snapshot()

        assert "assets: Invalid ApiKey" in str(exc.value)
        assert exc.value.status == 401
        assert exc.value.endpoint == "/assets"

    @pytest.mark.asyncio
    async def test_positions_failure(self, client, config):
        """A failed positions fetch fails the whole snapshot."""
        client.get_open_positions.side_effect = ExchangeError("timeout")
        service = PortfolioService(client, config)

        with pytest.raises(PortfolioUnavailableError, match="positions"):
            await service.get_snapshot()

    @pytest.mark.asyncio
    async def test_optional_source_failure(self, client, config):
        """A failed ticker fetch degrades the snapshot with warnings."""
        client.get_tickers.side_effect = ExchangeError("tickers down")
        service = PortfolioService(client, config)

        snapshot = await service.get_snapshot()

        assert snapshot.warnings[0] == "tickers unavailable: tickers down"
        assert snapshot.unrealized_pnl == 0.0
        assert all(not p.price_available for p in snapshot.open_positions)
        assert snapshot.total_balance == 1250.5

    @pytest.mark.asyncio
    async def test_history_failure(self, client, config):
        """A failed history fetch leaves no ranked trades."""
        client.get_history_orders.side_effect = ExchangeError("history down")
        service = PortfolioService(client, config)

        snapshot = await service.get_snapshot()

        assert snapshot.best_trades == []
        assert snapshot.realized_pnl == 0.0
        assert "history unavailable: history down" in snapshot.warnings


class TestMetrics:
    """Tests for metric recording."""

    @pytest.mark.asyncio
    async def test_success_recorded(self, client, config, metrics):
        """A served snapshot updates gauges and the request counter."""
        service = PortfolioService(client, config, metrics=metrics)

        await service.get_snapshot()

        assert sample(metrics, "portfolio_equity") == 1250.5
        assert sample(metrics, "portfolio_open_positions") == 2
        assert sample(metrics, "portfolio_requests_total", {"outcome": "ok"}) == 1
        assert sample(metrics, "portfolio_snapshot_latency_seconds_count") == 1

    @pytest.mark.asyncio
    async def test_failure_recorded(self, client, config, metrics):
        """A failed snapshot counts the error source and the failed request."""
        client.get_assets.side_effect = ExchangeError("down")
        service = PortfolioService(client, config, metrics=metrics)

        with pytest.raises(PortfolioUnavailableError):
            await service.get_snapshot()

        assert sample(metrics, "portfolio_errors_total", {"source": "assets"}) == 1
        assert sample(metrics, "portfolio_requests_total", {"outcome": "error"}) == 1

    @pytest.mark.asyncio
    async def test_reconciliation_failure_recorded(self, client, config, metrics, monkeypatch):
        """An exception while building the snapshot counts as a failed request."""
        def broken(**kwargs):
            raise ZeroDivisionError("bad row")

        monkeypatch.setattr("portfolio_server.core.service.build_snapshot", broken)
        service = PortfolioService(client, config, metrics=metrics)

        with pytest.raises(ZeroDivisionError):
            await service.get_snapshot()

        assert sample(metrics, "portfolio_requests_total", {"outcome": "error"}) == 1
        assert sample(metrics, "portfolio_requests_total", {"outcome": "ok"}) == 0

    @pytest.mark.asyncio
    async def test_optional_error_counted(self, client, config, metrics):
        """Optional failures are counted but the request still succeeds."""
        client.get_contract_details.side_effect = ExchangeError("down")
        service = PortfolioService(client, config, metrics=metrics)

        await service.get_snapshot()

        assert sample(metrics, "portfolio_errors_total", {"source": "contracts"}) == 1
        assert sample(metrics, "portfolio_requests_total", {"outcome": "ok"}) == 1
