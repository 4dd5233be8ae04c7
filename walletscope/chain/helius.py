"""Async Helius enhanced-transactions client using httpx."""

from __future__ import annotations

import logging

import httpx

from walletscope.config import Settings, get_settings
from walletscope.errors import UpstreamError
from walletscope.models.schema import RawTransaction, parse_transactions

logger = logging.getLogger(__name__)

# Helius answers 404 with this when a type filter matches nothing
NO_EVENTS_MARKER = "Failed to find events"


class HeliusClient:
    """Transaction Source backed by the Helius ``/v0/addresses`` API."""

    synthetic = False

    def __init__(
        self,
        api_key: str,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = api_key
        self.base_url = self.settings.helius_api_url.rstrip("/")
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.request_timeout, transport=self.transport)

    async def _get(self, path: str, params: dict) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                return await client.get(url, params={"api-key": self.api_key, **params})
        except httpx.HTTPError as e:
            raise UpstreamError(f"Helius request failed: {e}") from e

    async def fetch_transactions(
        self,
        wallet: str,
        limit: int = 100,
        type: str | None = None,
        before: str | None = None,
    ) -> list[RawTransaction]:
        params: dict = {"limit": min(max(limit, 1), 100)}
        if type:
            params["type"] = type
        if before:
            params["before"] = before

        resp = await self._get(f"/addresses/{wallet}/transactions", params)

        if resp.status_code == 404 and NO_EVENTS_MARKER in resp.text:
            logger.debug("No %s events for %s", type or "matching", wallet)
            return []
        if resp.is_error:
            raise UpstreamError(f"Helius API error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(f"Helius returned invalid JSON: {e}") from e
        if not isinstance(data, list):
            raise UpstreamError("Helius returned an unexpected payload")

        return parse_transactions(data)

    async def fetch_native_balance(self, wallet: str) -> int:
        resp = await self._get(f"/addresses/{wallet}/balances", {})
        if resp.is_error:
            raise UpstreamError(f"Helius balance error: {resp.status_code}")
        try:
            return int(resp.json().get("nativeBalance") or 0)
        except (ValueError, AttributeError) as e:
            raise UpstreamError(f"Helius returned an invalid balance: {e}") from e
