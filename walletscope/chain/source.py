"""Transaction Source protocol and cursor pagination shared by implementations."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from walletscope.models.schema import RawTransaction

logger = logging.getLogger(__name__)


@runtime_checkable
class TransactionSource(Protocol):
    """Where raw wallet history comes from (Helius, or synthetic demo data)."""

    synthetic: bool

    async def fetch_transactions(
        self,
        wallet: str,
        limit: int = 100,
        type: str | None = None,
        before: str | None = None,
    ) -> list[RawTransaction]:
        """One page, newest first. ``before`` is the last signature of the previous page."""
        ...

    async def fetch_native_balance(self, wallet: str) -> int:
        """Native balance in lamports."""
        ...


async def fetch_history(
    source: TransactionSource,
    wallet: str,
    page_limit: int = 100,
    max_pages: int = 10,
    type: str | None = None,
) -> list[RawTransaction]:
    """Walk pages via the ``before`` cursor until a short page or ``max_pages``."""
    transactions: list[RawTransaction] = []
    before: str | None = None

    for page in range(max_pages):
        batch = await source.fetch_transactions(wallet, limit=page_limit, type=type, before=before)
        transactions.extend(batch)
        logger.debug("Page %d for %s: %d transactions (before=%s)", page + 1, wallet, len(batch), before)
        if len(batch) < page_limit:
            break
        before = batch[-1].signature

    logger.info("Fetched %d transactions for %s", len(transactions), wallet)
    return transactions
