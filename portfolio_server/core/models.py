"""
Exchange and snapshot data shapes.

Inputs mirror the MEXC contract API responses and are parsed leniently:
a numeric field that is missing or unparseable falls back to a default
instead of failing the whole request. Outputs serialize to the camelCase
JSON the frontend reads.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

from portfolio_server.utils.utils import safe_float, safe_int


class PositionType(IntEnum):
    LONG = 1
    SHORT = 2


class OrderState(IntEnum):
    UNINFORMED = 1
    UNCOMPLETED = 2
    COMPLETED = 3
    CANCELLED = 4
    INVALID = 5


# =============================================================================
# Exchange Inputs
# =============================================================================

@dataclass
class AssetBalance:
    """Account balance for one currency."""
    currency: str
    equity: float = 0.0
    position_margin: float = 0.0
    available_balance: float = 0.0
    cash_balance: float = 0.0
    unrealized: float = 0.0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AssetBalance":
        return cls(
            currency=str(data.get("currency") or ""),
            equity=safe_float(data.get("equity")),
            position_margin=safe_float(data.get("positionMargin")),
            available_balance=safe_float(data.get("availableBalance")),
            cash_balance=safe_float(data.get("cashBalance")),
            unrealized=safe_float(data.get("unrealized")),
        )


@dataclass
class OpenPosition:
    """Open futures position."""
    symbol: str
    position_type: int
    hold_vol: float = 0.0
    hold_avg_price: float = 0.0
    initial_margin: float = 0.0
    leverage: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OpenPosition":
        return cls(
            symbol=str(data.get("symbol") or ""),
            position_type=safe_int(data.get("positionType")),
            hold_vol=safe_float(data.get("holdVol")),
            hold_avg_price=safe_float(data.get("holdAvgPrice")),
            initial_margin=safe_float(data.get("im")),
            leverage=safe_int(data.get("leverage")),
        )

    @property
    def is_long(self) -> bool:
        return self.position_type == PositionType.LONG

    @property
    def direction(self) -> int:
        return 1 if self.is_long else -1


@dataclass
class Ticker:
    """Latest market prices for one contract."""
    symbol: str
    last_price: float = 0.0
    fair_price: float = 0.0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Ticker":
        return cls(
            symbol=str(data.get("symbol") or ""),
            last_price=safe_float(data.get("lastPrice")),
            fair_price=safe_float(data.get("fairPrice")),
        )

    @property
    def price(self) -> float:
        """Last trade price, or the fair (mark) price when no trade is reported."""
        return self.last_price if self.last_price > 0 else self.fair_price


@dataclass
class ContractSpec:
    """Contract metadata."""
    symbol: str
    contract_size: float = 1.0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ContractSpec":
        size = safe_float(data.get("contractSize"), 1.0)
        return cls(
            symbol=str(data.get("symbol") or ""),
            contract_size=size if size > 0 else 1.0,
        )


@dataclass
class HistoricalOrder:
    """Order from the history endpoint."""
    symbol: str
    state: int = 0
    profit: float = 0.0
    update_time: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "HistoricalOrder":
        update_time = safe_int(data.get("updateTime"))
        return cls(
            symbol=str(data.get("symbol") or ""),
            state=safe_int(data.get("state")),
            profit=safe_float(data.get("profit")),
            update_time=update_time or None,
        )

    @property
    def is_completed(self) -> bool:
        return self.state == OrderState.COMPLETED


# =============================================================================
# Snapshot Outputs
# =============================================================================

@dataclass
class PositionView:
    """Open position marked to the current price."""
    symbol: str
    position_type: str
    leverage: int
    entry_price: float
    current_price: float
    contract_size: float
    volume: float
    pnl: float
    pnl_percentage: float
    price_available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "positionType": self.position_type,
            "leverage": self.leverage,
            "entryPrice": self.entry_price,
            "currentPrice": self.current_price,
            "contractSize": self.contract_size,
            "volume": self.volume,
            "pnl": self.pnl,
            "pnlPercentage": self.pnl_percentage,
            "priceAvailable": self.price_available,
        }


@dataclass
class ClosedTrade:
    """Completed order with a realized profit or loss."""
    symbol: str
    profit: float
    close_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "profit": self.profit,
            "closeDate": self.close_date,
        }


@dataclass
class PortfolioSnapshot:
    """Reconciled account state returned to the frontend."""
    total_balance: float = 0.0
    assets_value: float = 0.0
    available_balance: float = 0.0
    unrealized_pnl: float = 0.0
    exchange_unrealized_pnl: float = 0.0
    realized_pnl: float = 0.0
    open_positions: List[PositionView] = field(default_factory=list)
    best_trades: List[ClosedTrade] = field(default_factory=list)
    worst_trades: List[ClosedTrade] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    updated_at: str = ""

    @property
    def open_positions_count(self) -> int:
        return len(self.open_positions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalBalance": self.total_balance,
            "assetsValue": self.assets_value,
            "availableBalance": self.available_balance,
            "unrealizedPnl": self.unrealized_pnl,
            "exchangeUnrealizedPnl": self.exchange_unrealized_pnl,
            "realizedPnl": self.realized_pnl,
            "openPositionsCount": self.open_positions_count,
            "openPositions": [p.to_dict() for p in self.open_positions],
            "bestTrades": [t.to_dict() for t in self.best_trades],
            "worstTrades": [t.to_dict() for t in self.worst_trades],
            "warnings": list(self.warnings),
            "updatedAt": self.updated_at,
        }
