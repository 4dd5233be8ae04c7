"""Current token prices via the Jupiter price API (free, no API key)."""

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from walletscope.config import Settings, get_settings
from walletscope.tokens.constants import STABLECOINS, WSOL_MINT

logger = logging.getLogger(__name__)

# Jupiter rejects requests with more ids than this
MAX_IDS_PER_REQUEST = 100


class JupiterPriceSource:
    """Batch price lookups. Failures degrade to an empty mapping."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.request_timeout, transport=self.transport)

    async def fetch_prices(self, mints: Iterable[str]) -> dict[str, dict[str, float]]:
        """Return ``{mint: {"price": usd}}`` for every mint Jupiter knows.

        An empty input never touches the network.
        """
        ids = sorted({m for m in mints if m})
        if not ids:
            return {}

        results: dict[str, dict[str, float]] = {}
        try:
            async with self._client() as client:
                for i in range(0, len(ids), MAX_IDS_PER_REQUEST):
                    chunk = ids[i:i + MAX_IDS_PER_REQUEST]
                    resp = await client.get(self.settings.jupiter_price_url, params={"ids": ",".join(chunk)})
                    resp.raise_for_status()
                    data = resp.json().get("data") or {}
                    for mint in chunk:
                        info = data.get(mint)
                        if info and info.get("price") is not None:
                            results[mint] = {"price": float(info["price"])}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Jupiter price fetch failed for %d mints: %s", len(ids), e)
            return {}

        logger.debug("Fetched %d/%d prices", len(results), len(ids))
        return results

    async def fetch_price(self, mint: str) -> float | None:
        prices = await self.fetch_prices([mint])
        info = prices.get(mint)
        return info["price"] if info else None


def usd_price(mint: str, prices: dict[str, dict[str, float]], sol_price: float) -> float:
    """Best-effort USD price: stables at par, SOL at ``sol_price``, else the feed."""
    if mint in STABLECOINS:
        return 1.0
    if mint == WSOL_MINT:
        return sol_price
    info = prices.get(mint)
    return float(info["price"]) if info else 0.0
