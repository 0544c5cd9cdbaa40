"""
Portfolio Reconciliation
========================
Combines independently fetched account and market data into one snapshot.

The sources are not fetched atomically, so they can disagree: a position may
reference a contract that has no ticker yet, the contract list may be
missing a symbol, the settlement asset may be absent from a fresh account.
Each mismatch degrades the affected figure and is reported in
`warnings` rather than failing the snapshot or producing a PNL from a zero
price.

PNL for a position:
    pnl = (current_price - entry_price) * volume * contract_size * direction
where direction is +1 for longs and -1 for shorts, and `volume` is in
contracts.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from portfolio_server.core.models import (
    AssetBalance,
    ClosedTrade,
    ContractSpec,
    HistoricalOrder,
    OpenPosition,
    PortfolioSnapshot,
    PositionView,
    Ticker,
)
from portfolio_server.utils.config import PortfolioConfig
from portfolio_server.utils.utils import format_ms_date, safe_div, utc_now_iso


def find_settlement_asset(assets: Iterable[AssetBalance], currency: str) -> Optional[AssetBalance]:
    """First asset in the settlement currency (case-insensitive)."""
    wanted = currency.upper()
    for asset in assets:
        if asset.currency.upper() == wanted:
            return asset
    return None


def account_equity(asset: AssetBalance) -> float:
    """
    Equity reported for the asset.

    Some responses carry `equity` as 0 or null while the cash balance is set;
    in that case equity is rebuilt from cash plus unrealized PNL.
    """
    if asset.equity != 0:
        return asset.equity
    if asset.cash_balance != 0:
        return asset.cash_balance + asset.unrealized
    return 0.0


def build_price_map(tickers: Iterable[Ticker]) -> Dict[str, float]:
    """symbol -> current price, skipping tickers with no usable price."""
    prices = {}
    for ticker in tickers:
        if ticker.symbol and ticker.price > 0:
            prices[ticker.symbol] = ticker.price
    return prices


def build_contract_size_map(contracts: Iterable[ContractSpec]) -> Dict[str, float]:
    """symbol -> contract size."""
    return {c.symbol: c.contract_size for c in contracts if c.symbol}


def position_pnl(position: OpenPosition, current_price: float, contract_size: float) -> float:
    """Unrealized PNL of a position marked at `current_price`."""
    return (
        (current_price - position.hold_avg_price)
        * position.hold_vol
        * contract_size
        * position.direction
    )


def mark_position(
    position: OpenPosition,
    prices: Dict[str, float],
    contract_sizes: Dict[str, float],
) -> Tuple[PositionView, List[str]]:
    """Mark one position to market. Returns the view and any warnings raised."""
    warnings = []

    contract_size = contract_sizes.get(position.symbol)
    if contract_size is None:
        contract_size = 1.0
        if contract_sizes:
            warnings.append(f"No contract size for {position.symbol}; assuming 1")

    current_price = prices.get(position.symbol)
    price_available = current_price is not None
    if price_available:
        pnl = position_pnl(position, current_price, contract_size)
    else:
        current_price = position.hold_avg_price
        pnl = 0.0
        warnings.append(f"No ticker price for {position.symbol}; PNL not marked")

    view = PositionView(
        symbol=position.symbol,
        position_type="Long" if position.is_long else "Short",
        leverage=position.leverage,
        entry_price=position.hold_avg_price,
        current_price=current_price,
        contract_size=contract_size,
        volume=position.hold_vol,
        pnl=pnl,
        pnl_percentage=safe_div(pnl, max(position.initial_margin, 0.0)) * 100,
        price_available=price_available,
    )
    return view, warnings


def closed_trades(orders: Iterable[HistoricalOrder], date_format: str = "%Y-%m-%d") -> List[ClosedTrade]:
    """Completed orders that realized a non-zero profit or loss."""
    return [
        ClosedTrade(
            symbol=order.symbol,
            profit=order.profit,
            close_date=format_ms_date(order.update_time, date_format),
        )
        for order in orders
        if order.is_completed and order.profit != 0
    ]


def rank_trades(trades: List[ClosedTrade], top: int) -> Tuple[List[ClosedTrade], List[ClosedTrade]]:
    """Best (largest profits first) and worst (largest losses first) trades."""
    profitable = sorted((t for t in trades if t.profit > 0), key=lambda t: t.profit, reverse=True)
    losing = sorted((t for t in trades if t.profit < 0), key=lambda t: t.profit)
    return profitable[:top], losing[:top]


def _parse_all(rows: Optional[Iterable[Dict[str, Any]]], model) -> List[Any]:
    return [model.from_api(row) for row in (rows or [])]


def build_snapshot(
    assets: Optional[Iterable[Dict[str, Any]]],
    positions: Optional[Iterable[Dict[str, Any]]],
    history: Optional[Iterable[Dict[str, Any]]],
    tickers: Optional[Iterable[Dict[str, Any]]],
    contracts: Optional[Iterable[Dict[str, Any]]],
    config: Optional[PortfolioConfig] = None,
    warnings: Optional[List[str]] = None,
) -> PortfolioSnapshot:
    """
    Reconcile raw exchange rows into a PortfolioSnapshot.

    Args:
        assets: Rows from the account assets endpoint
        positions: Rows from the open positions endpoint
        history: Rows from the history orders endpoint
        tickers: Rows from the ticker endpoint
        contracts: Rows from the contract detail endpoint
        config: Snapshot settings; defaults apply when None
        warnings: Warnings already collected upstream (e.g. failed sources)

    Returns:
        The reconciled snapshot
    """
    config = config or PortfolioConfig()
    snapshot = PortfolioSnapshot(warnings=list(warnings or []), updated_at=utc_now_iso())

    # Account
    asset = find_settlement_asset(_parse_all(assets, AssetBalance), config.settlement_currency)
    if asset is None:
        snapshot.warnings.append(f"No {config.settlement_currency} asset in account")
    else:
        snapshot.total_balance = account_equity(asset)
        snapshot.assets_value = asset.position_margin
        snapshot.available_balance = asset.available_balance
        snapshot.exchange_unrealized_pnl = asset.unrealized

    # Open positions
    prices = build_price_map(_parse_all(tickers, Ticker))
    contract_sizes = build_contract_size_map(_parse_all(contracts, ContractSpec))

    for position in _parse_all(positions, OpenPosition):
        view, position_warnings = mark_position(position, prices, contract_sizes)
        snapshot.open_positions.append(view)
        snapshot.warnings.extend(position_warnings)

    snapshot.unrealized_pnl = sum((p.pnl for p in snapshot.open_positions), 0.0)

    # Closed trades
    trades = closed_trades(_parse_all(history, HistoricalOrder), config.date_format)
    snapshot.realized_pnl = sum((t.profit for t in trades), 0.0)
    snapshot.best_trades, snapshot.worst_trades = rank_trades(trades, config.top_trades)

    if snapshot.open_positions and asset is not None:
        drift = snapshot.unrealized_pnl - snapshot.exchange_unrealized_pnl
        logger.debug(
            f"uPnL computed={snapshot.unrealized_pnl:.4f} "
            f"exchange={snapshot.exchange_unrealized_pnl:.4f} drift={drift:.4f}"
        )

    return snapshot
