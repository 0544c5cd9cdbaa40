"""
HTTP surface: one JSON endpoint for the frontend plus the static files.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from portfolio_server.core.exchange import MexcFuturesClient
from portfolio_server.core.metrics import MetricsServer
from portfolio_server.core.service import PortfolioService
from portfolio_server.utils.config import Config


def create_app(config: Config, service: Optional[PortfolioService] = None) -> FastAPI:
    """
    Build the FastAPI app.

    When `service` is given it is used as-is and the app does not manage an
    exchange connection (tests pass a service backed by a mock client).
    """
    owns_client = service is None
    if service is None:
        metrics = MetricsServer(port=config.metrics.port) if config.metrics.enabled else None
        service = PortfolioService(MexcFuturesClient(config), config, metrics=metrics)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_client:
            await service.client.connect()
            if service.metrics:
                service.metrics.start()
        logger.info(f"Portfolio server started on {config.server.host}:{config.server.port}")
        try:
            yield
        finally:
            if owns_client:
                await service.client.disconnect()
                if service.metrics:
                    service.metrics.stop()

    app = FastAPI(title="MEXC Portfolio Server", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/api/portfolio-data")
    async def portfolio_data():
        try:
            return await service.get_portfolio_data()
        except Exception as e:
            logger.exception(f"Error in /api/portfolio-data: {e}")
            return JSONResponse(
                status_code=500,
                content={"error": str(e) or "An internal server error occurred."},
            )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    static_dir = Path(config.server.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.warning(f"Static directory {static_dir} missing - frontend not served")

    return app
