"""Wallet P&L calculation using weighted-average cost basis.

Two named modes:

- strict: trades are classified by which side carries the base currency,
  prices come from the base-currency amounts actually paid or received, and
  P&L is realized-only. No external price feed is consulted.
- simple: swaps are valued in USD using the current SOL price (fallback when
  the feed is down), and each token's P&L also marks the still-held quantity
  to its current price. The cumulative timeline in this mode is the final
  total spread evenly across trades, not a replay of per-trade P&L.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Protocol, TypeVar

import pandas as pd

from walletscope.models.schema import (
    AnalysisReport,
    BestPerformer,
    DirectionalTrade,
    NormalizedTrade,
    PnlMode,
    PnlPoint,
    PortfolioSummary,
    PositionSummary,
    RawTransaction,
    Timeframe,
    TradeSide,
)
from walletscope.scoring.ledger import Ledger
from walletscope.tokens.classifier import classify_directional, classify_swap
from walletscope.tokens.constants import WSOL_MINT, is_base_token
from walletscope.tokens.pricing import usd_price

logger = logging.getLogger(__name__)

DEFAULT_SOL_PRICE = 100.0

T = TypeVar("T", DirectionalTrade, NormalizedTrade)


class PriceSource(Protocol):
    async def fetch_prices(self, mints: Iterable[str]) -> dict[str, dict[str, float]]: ...


def filter_by_timeframe(
    transactions: Iterable[RawTransaction],
    timeframe: Timeframe | str,
    now: float | None = None,
) -> list[RawTransaction]:
    """Keep transactions with ``timestamp >= cutoff``. Missing timestamps count as 0."""
    timeframe = Timeframe(timeframe)
    cutoff = timeframe.cutoff(time.time() if now is None else now)
    return [tx for tx in transactions if (tx.timestamp or 0) >= cutoff]


def _classify_all(
    transactions: Iterable[RawTransaction],
    wallet: str,
    classify: Callable[[RawTransaction, str], T | None],
) -> list[T]:
    """Classify every transaction, oldest first. Bad records are skipped."""
    trades: list[T] = []
    for tx in transactions:
        try:
            trade = classify(tx, wallet)
        except (ValueError, ArithmeticError) as e:
            logger.warning("Skipping unclassifiable transaction %s: %s", tx.signature, e)
            continue
        if trade is not None:
            trades.append(trade)
    trades.sort(key=lambda t: t.timestamp)
    return trades


def classify_trades(transactions: Iterable[RawTransaction], wallet: str) -> list[NormalizedTrade]:
    return _classify_all(transactions, wallet, classify_swap)


def trade_mints(trades: Iterable[NormalizedTrade]) -> set[str]:
    """Distinct mints seen on either leg, plus SOL when anything was seen."""
    mints: set[str] = set()
    for trade in trades:
        mints.add(trade.token_in.mint)
        mints.add(trade.token_out.mint)
    if mints:
        mints.add(WSOL_MINT)
    return mints


def _summarize(
    mode: PnlMode,
    rows: list[PositionSummary],
    history: list[PnlPoint],
    total_trades: int,
) -> PortfolioSummary:
    ranked = sorted(rows, key=lambda r: r.pnl, reverse=True)
    winners = sum(1 for r in ranked if r.pnl > 0)
    losers = sum(1 for r in ranked if r.pnl < 0)
    decided = winners + losers
    best = ranked[0] if ranked else None

    return PortfolioSummary(
        mode=mode,
        total_pnl=sum(r.pnl for r in ranked),
        win_rate=winners / decided * 100 if decided else 0.0,
        winners=winners,
        losers=losers,
        total_trades=total_trades,
        total_volume=sum(r.volume for r in ranked),
        best_performer=BestPerformer(symbol=best.symbol, mint=best.mint, pnl=best.pnl) if best else None,
        positions=ranked,
        pnl_history=history,
    )


# --- strict mode ---


def compute_strict_pnl(transactions: Iterable[RawTransaction], wallet: str) -> PortfolioSummary:
    """Realized-only P&L priced in the base currency of each trade."""
    trades = _classify_all(transactions, wallet, classify_directional)
    ledger = Ledger()
    history: list[PnlPoint] = []
    cumulative = 0.0

    for trade in trades:
        position = ledger.position(trade.mint, trade.symbol)
        before = position.realized_pnl
        if trade.side is TradeSide.BUY:
            position.buy(trade.amount, trade.price_per_token, trade.timestamp, trade.signature)
        else:
            position.sell(trade.amount, trade.price_per_token, trade.timestamp, trade.signature)
        cumulative += position.realized_pnl - before
        history.append(PnlPoint(timestamp=trade.timestamp, pnl=cumulative))

    rows = [
        PositionSummary(
            mint=p.mint,
            symbol=p.symbol,
            trades=p.trade_count,
            avg_entry=p.avg_entry_price,
            avg_exit=p.avg_exit_price,
            volume=p.volume,
            total_bought=p.total_bought,
            total_sold=p.total_sold,
            remaining=p.remaining,
            cost_basis=p.total_spent,
            realized_pnl=p.realized_pnl,
            pnl=p.realized_pnl,
            roi=p.roi,
        )
        for p in ledger.positions()
    ]
    return _summarize(PnlMode.STRICT, rows, history, total_trades=len(trades))


# --- simple mode ---


def _simple_summary(
    trades: list[NormalizedTrade],
    prices: dict[str, dict[str, float]],
    fallback_sol_price: float,
) -> PortfolioSummary:
    sol_info = prices.get(WSOL_MINT)
    sol_price = float(sol_info["price"]) if sol_info and sol_info.get("price") else fallback_sol_price
    ledger = Ledger()

    for trade in trades:
        if is_base_token(trade.token_in.mint):
            # Paid base currency, received the target token
            target, usd_value = trade.token_out, trade.token_in.amount * usd_price(trade.token_in.mint, prices, sol_price)
            side = TradeSide.BUY
        else:
            target, usd_value = trade.token_in, trade.token_out.amount * usd_price(trade.token_out.mint, prices, sol_price)
            side = TradeSide.SELL

        if target.amount <= 0:
            continue
        position = ledger.position(target.mint, target.symbol)
        unit_price = usd_value / target.amount
        if side is TradeSide.BUY:
            position.buy(target.amount, unit_price, trade.timestamp, trade.signature)
        else:
            position.sell(target.amount, unit_price, trade.timestamp, trade.signature)

    rows: list[PositionSummary] = []
    for p in ledger.positions():
        current_price = usd_price(p.mint, prices, sol_price)
        unrealized = (p.total_bought - p.total_sold) * current_price
        pnl = p.total_received + unrealized - p.total_spent
        rows.append(PositionSummary(
            mint=p.mint,
            symbol=p.symbol,
            trades=p.trade_count,
            avg_entry=p.avg_entry_price,
            avg_exit=p.avg_exit_price,
            volume=p.volume,
            total_bought=p.total_bought,
            total_sold=p.total_sold,
            remaining=p.remaining,
            cost_basis=p.total_spent,
            realized_pnl=p.realized_pnl,
            unrealized_value=unrealized,
            current_price=current_price,
            pnl=pnl,
            roi=pnl / p.total_spent * 100 if p.total_spent > 0 else 0.0,
        ))

    summary = _summarize(PnlMode.SIMPLE, rows, [], total_trades=len(trades))
    summary.pnl_history = spread_timeline(trades, summary.total_pnl)
    return summary


def spread_timeline(trades: list[NormalizedTrade], final_pnl: float) -> list[PnlPoint]:
    """Approximate cumulative curve: ``final_pnl`` split evenly over trades."""
    if not trades:
        return []
    step = final_pnl / len(trades)
    cumulative = 0.0
    points = []
    for trade in sorted(trades, key=lambda t: t.timestamp):
        cumulative += step
        points.append(PnlPoint(timestamp=trade.timestamp, pnl=cumulative))
    return points


def compute_simple_pnl(
    transactions: Iterable[RawTransaction],
    wallet: str,
    prices: dict[str, dict[str, float]] | None = None,
    fallback_sol_price: float = DEFAULT_SOL_PRICE,
) -> PortfolioSummary:
    """USD-approximated P&L including mark-to-market of held tokens."""
    return _simple_summary(classify_trades(transactions, wallet), prices or {}, fallback_sol_price)


async def calculate_wallet_pnl(
    transactions: Iterable[RawTransaction],
    wallet: str,
    mode: PnlMode | str = PnlMode.STRICT,
    price_source: PriceSource | None = None,
    fallback_sol_price: float = DEFAULT_SOL_PRICE,
) -> PortfolioSummary:
    """Run the aggregator in ``mode``; simple mode prices all seen mints in one call."""
    mode = PnlMode(mode)
    if mode is PnlMode.STRICT:
        return compute_strict_pnl(transactions, wallet)

    trades = classify_trades(transactions, wallet)
    mints = trade_mints(trades)
    prices: dict[str, dict[str, float]] = {}
    if mints and price_source is not None:
        prices = await price_source.fetch_prices(mints)
        if WSOL_MINT not in prices:
            logger.info("SOL price unavailable, using fallback $%.2f", fallback_sol_price)
    return _simple_summary(trades, prices, fallback_sol_price)


def positions_frame(summary: PortfolioSummary | AnalysisReport) -> pd.DataFrame:
    """Positions as a DataFrame, ranked as in the summary."""
    if not summary.positions:
        return pd.DataFrame(columns=list(PositionSummary.model_fields))
    return pd.DataFrame([p.model_dump() for p in summary.positions])
