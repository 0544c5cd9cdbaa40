"""
Prometheus Metrics for the Portfolio Server
============================================
Exposes snapshot and request metrics for monitoring.

Metrics:
- portfolio_equity: Equity of the settlement asset
- portfolio_unrealized_pnl: Computed unrealized PNL
- portfolio_open_positions: Open position count
- portfolio_requests_total: Snapshot requests served
- portfolio_errors_total: Failed fetches/snapshots by source
- portfolio_snapshot_latency_seconds: Time to fetch and reconcile a snapshot
"""

from typing import Optional

from loguru import logger
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class MetricsServer:
    """Prometheus metrics on a dedicated registry."""

    def __init__(self, port: int = 9090, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.registry = registry or CollectorRegistry()
        self._server = None
        self._thread = None

        # Gauges (current values)
        self.equity = Gauge(
            "portfolio_equity", "Equity of the settlement asset", registry=self.registry
        )
        self.unrealized_pnl = Gauge(
            "portfolio_unrealized_pnl", "Computed unrealized PNL", registry=self.registry
        )
        self.open_positions = Gauge(
            "portfolio_open_positions", "Open position count", registry=self.registry
        )

        # Counters (cumulative)
        self.requests_total = Counter(
            "portfolio_requests_total", "Snapshot requests", ["outcome"], registry=self.registry
        )
        self.errors_total = Counter(
            "portfolio_errors_total", "Failed fetches by source", ["source"], registry=self.registry
        )

        self.snapshot_latency = Histogram(
            "portfolio_snapshot_latency_seconds",
            "Time to fetch and reconcile a snapshot",
            buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10, 30],
            registry=self.registry,
        )

    def start(self) -> bool:
        """Start the metrics HTTP server."""
        try:
            self._server, self._thread = start_http_server(self.port, registry=self.registry)
            logger.info(f"Prometheus metrics server started on port {self.port}")
            return True
        except OSError as e:
            if "Address already in use" in str(e):
                logger.warning(f"Port {self.port} in use - metrics server disabled")
            else:
                logger.error(f"Failed to start metrics server: {e}")
            return False

    def stop(self) -> None:
        """Shut down the metrics HTTP server."""
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        logger.info("Metrics server stopped")

    def record_snapshot(self, equity: float, unrealized_pnl: float, positions: int, latency: float) -> None:
        """Record a successful snapshot."""
        self.equity.set(equity)
        self.unrealized_pnl.set(unrealized_pnl)
        self.open_positions.set(positions)
        self.snapshot_latency.observe(latency)
        self.requests_total.labels(outcome="ok").inc()

    def record_failure(self) -> None:
        """Record a snapshot that could not be built."""
        self.requests_total.labels(outcome="error").inc()

    def record_error(self, source: str) -> None:
        """Record a failed fetch."""
        self.errors_total.labels(source=source).inc()
