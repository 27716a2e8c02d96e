# tradebook/logic.py

import math
import os
from datetime import date
from typing import Iterable, List, Optional

from tradebook.logger import logger
from tradebook.parsing import parse_date
from tradebook.schemas import (
    AllocationSlice,
    PortfolioSummary,
    PositionDetail,
    PositionSummary,
    SymbolTradeStats,
    TradeStats,
    TransactionResponse,
)

# Starting account balance the portfolio summary is measured against
INITIAL_CAPITAL = float(os.getenv("INITIAL_CAPITAL", "2000"))


def safe_percent(value: Optional[float], base: Optional[float]) -> Optional[float]:
    """
    Expresses value as a percentage of base.

    Args:
        value (Optional[float]): Numerator.
        base (Optional[float]): Denominator.

    Returns:
        Optional[float]: value / base * 100, or None when either side is missing,
        the base is zero, or the result is not finite.
    """
    if value is None or base is None or base == 0:
        return None
    percent = value / base * 100
    return percent if math.isfinite(percent) else None


def _is_sell(tx) -> bool:
    return tx.type == "sell"


def _latest_first(transactions: list) -> list:
    """
    Orders one asset's transactions newest first.

    Transactions with a readable date come first, by date and then id. Those
    whose date is missing or unreadable follow, by id alone, so a dated
    entry is never displaced by one whose date cannot be compared.
    """
    dated = []
    undated = []
    for tx in transactions:
        when = parse_date(tx.date)
        if when is None:
            undated.append(tx)
        else:
            dated.append((when, tx))
    dated.sort(key=lambda item: (item[0], item[1].id), reverse=True)
    undated.sort(key=lambda tx: tx.id, reverse=True)
    return [tx for _, tx in dated] + undated


def _group_by_name(transactions: Iterable) -> dict:
    groups = {}
    for tx in transactions:
        groups.setdefault(tx.name, []).append(tx)
    return groups


def summarize_position(name: str, transactions: list) -> PositionSummary:
    """
    Rolls one asset's transactions into a position.

    Args:
        name (str): Asset name shared by every transaction.
        transactions (list): Non-empty list of that asset's transactions.

    Returns:
        PositionSummary: Net quantity, cost basis, reference price and realized profit.
    """
    buys = [tx for tx in transactions if not _is_sell(tx)]
    sells = [tx for tx in transactions if _is_sell(tx)]

    # fsum keeps the totals exact regardless of input order
    total_buy_quantity = math.fsum(float(tx.quantity) for tx in buys)
    total_buy_cost = math.fsum(float(tx.quantity) * float(tx.price_per_unit) for tx in buys)
    total_sell_quantity = math.fsum(float(tx.quantity) for tx in sells)
    net_quantity = total_buy_quantity - total_sell_quantity

    average_buy_price = total_buy_cost / total_buy_quantity if total_buy_quantity > 0 else None

    # No live price feed: the most recent logged price stands in for the market
    latest = _latest_first(transactions)[0]
    current_reference_price = float(latest.price_per_unit)

    realized_profit = None
    realized_profit_percent = None
    if average_buy_price is not None and average_buy_price > 0 and sells:
        realized_profit = math.fsum(
            (float(tx.price_per_unit) - average_buy_price) * float(tx.quantity) for tx in sells
        )
        realized_profit_percent = safe_percent(realized_profit, average_buy_price * total_sell_quantity)

    return PositionSummary(
        name=name,
        net_quantity=net_quantity,
        total_buy_quantity=total_buy_quantity,
        total_sell_quantity=total_sell_quantity,
        average_buy_price=average_buy_price,
        current_reference_price=current_reference_price,
        holdings_value=net_quantity * current_reference_price,
        realized_profit=realized_profit,
        realized_profit_percent=realized_profit_percent,
    )


def aggregate_positions(transactions: Iterable) -> List[PositionSummary]:
    """
    Derives one position per distinct asset name from a flat transaction list.

    The result depends only on the set of transactions, not on their order.

    Args:
        transactions (Iterable): Transaction records (ORM rows or anything with the same attributes).

    Returns:
        List[PositionSummary]: Positions sorted by holdings value, largest first.
    """
    positions = [summarize_position(name, group) for name, group in _group_by_name(transactions).items()]
    positions.sort(key=lambda p: (-p.holdings_value, p.name))
    logger.debug(f"Aggregated {len(positions)} positions.")
    return positions


def position_detail(transactions: Iterable, name: str) -> PositionDetail:
    """
    Collects a single asset's transactions, newest first, with its position.

    Args:
        transactions (Iterable): All transaction records.
        name (str): Asset name to select.

    Returns:
        PositionDetail: Empty transactions and no summary when the name is unknown.
    """
    selected = [tx for tx in transactions if tx.name == name]
    if not selected:
        return PositionDetail(name=name, transactions=[], summary=None)

    ordered = _latest_first(selected)
    return PositionDetail(
        name=name,
        transactions=[TransactionResponse.model_validate(tx, from_attributes=True) for tx in ordered],
        summary=summarize_position(name, selected),
    )


def summarize_portfolio(positions: List[PositionSummary], initial_capital: float = INITIAL_CAPITAL) -> PortfolioSummary:
    """
    Combines positions into account level totals against the initial capital.

    Each position's holdings value is floored at zero before summing, so a net
    short position never adds capital back.

    Args:
        positions (List[PositionSummary]): Output of aggregate_positions.
        initial_capital (float): Starting balance.

    Returns:
        PortfolioSummary: Profit, balance and remaining capital figures.
    """
    total_profit = sum(p.realized_profit or 0.0 for p in positions)
    total_usdt = initial_capital + total_profit
    holdings_value = sum(max(p.holdings_value, 0.0) for p in positions)
    remaining_capital = total_usdt - holdings_value

    return PortfolioSummary(
        initial_capital=initial_capital,
        total_profit=total_profit,
        all_time_profit_percent=safe_percent(total_profit, initial_capital),
        total_usdt=total_usdt,
        total_usdt_percent=safe_percent(total_usdt, initial_capital),
        holdings_value=holdings_value,
        remaining_capital=remaining_capital,
        remaining_capital_percent=safe_percent(remaining_capital, total_usdt),
    )


def allocation_slices(positions: List[PositionSummary]) -> List[AllocationSlice]:
    """
    Builds pie chart data for the positions still held, valued at cost basis.

    Args:
        positions (List[PositionSummary]): Output of aggregate_positions.

    Returns:
        List[AllocationSlice]: One slice per held asset, or a single USDT slice when nothing is held.
    """
    held = [
        (p.name, p.net_quantity * p.average_buy_price)
        for p in positions
        if p.net_quantity > 0 and p.average_buy_price is not None
    ]
    if not held:
        return [AllocationSlice(name="USDT", value=0.0, percent=100.0)]

    total = sum(value for _, value in held)
    return [AllocationSlice(name=name, value=value, percent=safe_percent(value, total)) for name, value in held]


def trade_profit(
    open_price: Optional[float],
    close_price: Optional[float],
    direction: str,
    level: float,
    volume: float,
) -> Optional[float]:
    """
    Computes the leveraged profit of a trade between two prices.

    Args:
        open_price (Optional[float]): Entry price.
        close_price (Optional[float]): Exit price, None while the trade is open.
        direction (str): 'long' or 'short'.
        level (float): Leverage multiplier.
        volume (float): Notional size.

    Returns:
        Optional[float]: Signed profit, or None when it cannot be determined.
    """
    if close_price is None or open_price is None:
        return None
    open_price = float(open_price)
    close_price = float(close_price)
    if open_price == 0:
        return None

    if direction == "short":
        price_change_ratio = (open_price - close_price) / open_price
    else:
        price_change_ratio = (close_price - open_price) / open_price

    profit = float(volume) * float(level) * price_change_ratio
    return profit if math.isfinite(profit) else None


def calculate_trade_profit(trade) -> Optional[float]:
    """Realized profit of a logged trade; None while it is still open."""
    return trade_profit(trade.open_price, trade.close_price, trade.direction, trade.level, trade.volume)


def preview_trade_profit(trade, close_price: Optional[float]) -> Optional[float]:
    """Profit the trade would realize if closed at close_price. Nothing is written."""
    return trade_profit(trade.open_price, close_price, trade.direction, trade.level, trade.volume)


def summarize_trades(trades: Iterable) -> TradeStats:
    """
    Totals profit and loss over closed trades, overall and per symbol.

    Args:
        trades (Iterable): Logged trade records.

    Returns:
        TradeStats: Totals plus per-symbol figures sorted by profit, largest first.
    """
    open_trades = 0
    closed_trades = 0
    total_profit = 0.0
    total_loss = 0.0
    symbols = {}

    for trade in trades:
        if trade.close_price is None:
            open_trades += 1
            continue

        closed_trades += 1
        entry = symbols.setdefault(
            trade.name,
            SymbolTradeStats(name=trade.name, total_orders=0, total_profit=0.0, total_loss=0.0),
        )
        entry.total_orders += 1

        pnl = calculate_trade_profit(trade)
        if pnl is None:
            continue
        if pnl >= 0:
            total_profit += pnl
            entry.total_profit += pnl
        else:
            total_loss += abs(pnl)
            entry.total_loss += abs(pnl)

    return TradeStats(
        open_trades=open_trades,
        closed_trades=closed_trades,
        total_profit=total_profit,
        total_loss=total_loss,
        net_profit=total_profit - total_loss,
        symbols=sorted(symbols.values(), key=lambda s: s.total_profit, reverse=True),
    )


def filter_trades(
    trades: Iterable,
    name: Optional[str] = None,
    source: Optional[str] = None,
    strategy_id: Optional[int] = None,
    status: str = "all",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list:
    """
    Narrows the trade list the way the trading history view does.

    Name and source match case-insensitive substrings. The date range is
    inclusive and applies to the open date; a trade whose open date cannot be
    read always passes it.

    Args:
        trades (Iterable): Logged trade records.
        name (Optional[str]): Substring of the symbol.
        source (Optional[str]): Substring of the signal source.
        strategy_id (Optional[int]): Strategy the trade is tagged with.
        status (str): "all", "opening" or "closed".
        date_from (Optional[date]): Earliest open date.
        date_to (Optional[date]): Latest open date.

    Returns:
        list: The matching trades, in their original order.
    """
    name_filter = (name or "").strip().lower()
    source_filter = (source or "").strip().lower()

    matches = []
    for trade in trades:
        if name_filter and name_filter not in trade.name.lower():
            continue
        if source_filter and source_filter not in (trade.source or "").lower():
            continue
        if strategy_id is not None and trade.strategy_id != strategy_id:
            continue
        if status == "opening" and trade.close_price is not None:
            continue
        if status == "closed" and trade.close_price is None:
            continue

        opened = parse_date(trade.open_date)
        if opened is not None:
            if date_from is not None and opened < date_from:
                continue
            if date_to is not None and opened > date_to:
                continue

        matches.append(trade)
    return matches
