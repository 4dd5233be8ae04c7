"""Related-wallet detection: counterparties that keep showing up around a wallet.

Every account touched by a transaction (its ``accountData`` balance deltas)
other than the analyzed wallet is a counterparty. Counterparties seen at
least twice are scored 0-100 from four additive bands:

- interaction count:   >10 -> 40, >5 -> 25, else 10
- SOL moved:           >100 -> 30, >10 -> 20, else 10
- recency:             last seen <1 day -> 20, <7 days -> 10
- burst rate:          >5 interactions/day over [first_seen, last_seen] -> 10
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from tqdm.asyncio import tqdm_asyncio

from walletscope.models.schema import PnlMode, RawTransaction, RelatedWallet, RiskLevel
from walletscope.scoring.pnl import DEFAULT_SOL_PRICE, PriceSource, calculate_wallet_pnl
from walletscope.tokens.constants import SECONDS_PER_DAY, lamports_to_sol

logger = logging.getLogger(__name__)

MAX_RELATED_WALLETS = 10
MIN_INTERACTIONS = 2


@dataclass
class _Interactions:
    address: str
    count: int = 0
    native_transferred: float = 0.0
    first_seen: int | None = None
    last_seen: int | None = None

    def record(self, native_change: float, timestamp: int | None) -> None:
        self.count += 1
        self.native_transferred += abs(lamports_to_sol(native_change))
        if timestamp:
            self.first_seen = timestamp if self.first_seen is None else min(self.first_seen, timestamp)
            self.last_seen = timestamp if self.last_seen is None else max(self.last_seen, timestamp)

    @property
    def per_day(self) -> float:
        if self.first_seen is None or self.last_seen is None:
            return 0.0
        period = self.last_seen - self.first_seen
        return self.count / (period / SECONDS_PER_DAY) if period > 0 else 0.0


def score_interactions(
    interactions: int,
    native_transferred: float,
    seconds_since_last: float,
    interactions_per_day: float = 0.0,
) -> int:
    """Additive 0-100 risk score. Non-decreasing in every argument's risk direction."""
    score = 0

    if interactions > 10:
        score += 40
    elif interactions > 5:
        score += 25
    else:
        score += 10

    if native_transferred > 100:
        score += 30
    elif native_transferred > 10:
        score += 20
    else:
        score += 10

    days_since = seconds_since_last / SECONDS_PER_DAY
    if days_since < 1:
        score += 20
    elif days_since < 7:
        score += 10

    if interactions_per_day > 5:
        score += 10

    return score


def risk_level(score: int) -> RiskLevel:
    if score >= 70:
        return RiskLevel.HIGH
    if score >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def detect_related_wallets(
    transactions: Iterable[RawTransaction],
    main_wallet: str,
    now: float | None = None,
    limit: int = MAX_RELATED_WALLETS,
) -> list[RelatedWallet]:
    """Top ``limit`` counterparties of ``main_wallet`` by descending risk score."""
    now = time.time() if now is None else now
    seen: dict[str, _Interactions] = {}

    for tx in transactions:
        for delta in tx.account_data:
            if not delta.account or delta.account == main_wallet:
                continue
            entry = seen.get(delta.account)
            if entry is None:
                entry = seen[delta.account] = _Interactions(delta.account)
            entry.record(delta.native_balance_change, tx.timestamp)

    related: list[RelatedWallet] = []
    for entry in seen.values():
        if entry.count < MIN_INTERACTIONS:
            continue
        last_seen = entry.last_seen or 0
        score = score_interactions(entry.count, entry.native_transferred, now - last_seen, entry.per_day)
        related.append(RelatedWallet(
            address=entry.address,
            interactions=entry.count,
            native_transferred=entry.native_transferred,
            risk_score=score,
            risk_level=risk_level(score),
            first_seen=entry.first_seen or 0,
            last_seen=last_seen,
        ))

    related.sort(key=lambda w: w.risk_score, reverse=True)
    return related[:max(0, min(limit, MAX_RELATED_WALLETS))]


async def enrich_related_wallets(
    related: list[RelatedWallet],
    load_history: Callable[[str], Awaitable[list[RawTransaction]]],
    mode: PnlMode | str = PnlMode.STRICT,
    price_source: PriceSource | None = None,
    concurrency: int = 5,
    progress: bool = False,
    fallback_sol_price: float = DEFAULT_SOL_PRICE,
) -> list[RelatedWallet]:
    """Attach each related wallet's own P&L.

    One task per wallet (at most ``MAX_RELATED_WALLETS``), never recursing
    into the related wallets' own counterparties. A failing wallet gets
    ``pnl = 0`` and the rest of the batch carries on.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _enrich(wallet: RelatedWallet) -> RelatedWallet:
        async with semaphore:
            try:
                history = await load_history(wallet.address)
                summary = await calculate_wallet_pnl(
                    history, wallet.address, mode=mode, price_source=price_source,
                    fallback_sol_price=fallback_sol_price,
                )
            except Exception as e:
                logger.warning("P&L enrichment failed for related wallet %s: %s", wallet.address, e)
                return wallet.model_copy(update={"pnl": 0.0, "pnl_percent": 0.0})

        cost = sum(p.cost_basis for p in summary.positions)
        pct = summary.total_pnl / cost * 100 if cost > 0 else 0.0
        return wallet.model_copy(update={"pnl": summary.total_pnl, "pnl_percent": pct})

    bounded = related[:MAX_RELATED_WALLETS]
    if not bounded:
        return []
    return list(await tqdm_asyncio.gather(
        *(_enrich(w) for w in bounded),
        desc="Enriching related wallets",
        disable=not progress,
    ))
