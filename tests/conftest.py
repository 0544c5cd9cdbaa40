"""
Shared fixtures: a test configuration and exchange rows shaped like MEXC responses.
"""

import pytest

from portfolio_server.utils.config import Config, CredentialsConfig, NetworkConfig


@pytest.fixture
def config(tmp_path):
    """Configuration with credentials and no request pacing."""
    config = Config(
        credentials=CredentialsConfig(api_key="test_key", secret_key="test_secret"),
        network=NetworkConfig(
            base_url="https://contract.example.test",
            max_retries=3,
            retry_delay=0.0,
            min_request_interval=0.0,
        ),
    )
    config.server.static_dir = str(tmp_path / "static")
    return config


@pytest.fixture
def asset_rows():
    return [
        {
            "currency": "BTC",
            "equity": 0.5,
            "positionMargin": 0.1,
            "availableBalance": 0.4,
            "cashBalance": 0.5,
            "unrealized": 0,
        },
        {
            "currency": "USDT",
            "equity": 1250.5,
            "positionMargin": 300.0,
            "availableBalance": 900.25,
            "cashBalance": 1200.0,
            "frozenBalance": 0,
            "unrealized": 50.5,
        },
    ]


@pytest.fixture
def position_rows():
    return [
        {
            "positionId": 1001,
            "symbol": "BTC_USDT",
            "positionType": 1,
            "holdVol": 100,
            "holdAvgPrice": 60000.0,
            "im": 200.0,
            "leverage": 30,
            "liquidatePrice": 41000.0,
        },
        {
            "positionId": 1002,
            "symbol": "ETH_USDT",
            "positionType": 2,
            "holdVol": 50,
            "holdAvgPrice": 3000.0,
            "im": 100.0,
            "leverage": 15,
        },
    ]


@pytest.fixture
def ticker_rows():
    return [
        {"symbol": "BTC_USDT", "lastPrice": 60500.0, "fairPrice": 60490.0},
        {"symbol": "ETH_USDT", "lastPrice": 2950.0, "fairPrice": 2951.0},
        {"symbol": "SOL_USDT", "lastPrice": 150.0},
    ]


@pytest.fixture
def contract_rows():
    return [
        {"symbol": "BTC_USDT", "contractSize": 0.0001},
        {"symbol": "ETH_USDT", "contractSize": 0.01},
        {"symbol": "SOL_USDT", "contractSize": 1},
    ]


@pytest.fixture
def history_rows():
    # 2024-01-15 00:00:00 UTC = 1705276800000 ms
    return [
        {"orderId": "1", "symbol": "BTC_USDT", "state": 3, "profit": 120.0, "updateTime": 1705276800000},
        {"orderId": "2", "symbol": "ETH_USDT", "state": 3, "profit": -45.5, "updateTime": 1705363200000},
        {"orderId": "3", "symbol": "SOL_USDT", "state": 3, "profit": 0, "updateTime": 1705363200000},
        {"orderId": "4", "symbol": "SOL_USDT", "state": 4, "profit": 999.0, "updateTime": 1705363200000},
        {"orderId": "5", "symbol": "BTC_USDT", "state": 3, "profit": 10.0},
        {"orderId": "6", "symbol": "DOGE_USDT", "state": 3, "profit": -200.0, "updateTime": 1705449600000},
        {"orderId": "7", "symbol": "XRP_USDT", "state": 3, "profit": 75.25, "updateTime": 1705449600000},
        {"orderId": "8", "symbol": "ADA_USDT", "state": 3, "profit": 5.0, "updateTime": 1705449600000},
        {"orderId": "9", "symbol": "ADA_USDT", "state": 3, "profit": -1.0, "updateTime": 1705449600000},
        {"orderId": "10", "symbol": "LTC_USDT", "state": 3, "profit": -3.0, "updateTime": 1705449600000},
    ]


ENV_KEYS = [
    "MEXC_API_KEY",
    "MEXC_SECRET_KEY",
    "MEXC_BASE_URL",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "MIN_REQUEST_INTERVAL",
    "HOST",
    "PORT",
    "STATIC_DIR",
    "CORS_ORIGINS",
    "SETTLEMENT_CURRENCY",
    "HISTORY_PAGE_SIZE",
    "TOP_TRADES",
    "DATE_FORMAT",
    "LOG_LEVEL",
    "LOG_DIR",
    "LOG_RETENTION_DAYS",
    "LOG_TO_FILE",
    "METRICS_ENABLED",
    "METRICS_PORT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the loader reads and restore them afterwards."""
    for key in ENV_KEYS:
        # setenv first so values written by load_dotenv are undone at teardown
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch
