"""Shared builders for Helius-shaped transaction records."""

import pytest

from walletscope.config import Settings, get_settings
from walletscope.models.schema import RawTransaction
from walletscope.tokens.constants import USDC_MINT

WALLET = "WaLLetAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
POOL = "PooLBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB"
MINT = "MintCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCC"


def transfer(sender, receiver, mint, amount, symbol=None):
    record = {"fromUserAccount": sender, "toUserAccount": receiver, "mint": mint, "tokenAmount": amount}
    if symbol:
        record["symbol"] = symbol
    return record


def base_swap(signature, timestamp, side, base_amount, token_amount,
              wallet=WALLET, mint=MINT, symbol="BONK", base_mint=USDC_MINT):
    """Transfer-list SWAP where ``wallet`` trades ``mint`` against a base currency."""
    if side == "BUY":
        transfers = [
            transfer(wallet, POOL, base_mint, base_amount, "USDC"),
            transfer(POOL, wallet, mint, token_amount, symbol),
        ]
    else:
        transfers = [
            transfer(wallet, POOL, mint, token_amount, symbol),
            transfer(POOL, wallet, base_mint, base_amount, "USDC"),
        ]
    return RawTransaction.model_validate({
        "signature": signature,
        "timestamp": timestamp,
        "type": "SWAP",
        "tokenTransfers": transfers,
    })


def touch(signature, timestamp, *accounts, lamports=1_000_000_000):
    """Transaction whose accountData touches ``accounts``."""
    return RawTransaction.model_validate({
        "signature": signature,
        "timestamp": timestamp,
        "type": "TRANSFER",
        "accountData": [{"account": a, "nativeBalanceChange": lamports} for a in accounts],
    })


class StaticPrices:
    """Price source answering from a fixed mapping."""

    def __init__(self, prices=None):
        self.prices = prices or {}
        self.requested = []

    async def fetch_prices(self, mints):
        self.requested.append(set(mints))
        return {m: p for m, p in self.prices.items() if m in self.requested[-1]}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        helius_api_key="",
        use_demo_data=False,
        demo_fallback=True,
        duckdb_path=tmp_path / "walletscope.duckdb",
    )


@pytest.fixture
def demo_env(monkeypatch, tmp_path):
    """Environment-driven settings using synthetic data and a scratch DuckDB."""
    monkeypatch.setenv("USE_DEMO_DATA", "true")
    monkeypatch.setenv("HELIUS_API_KEY", "")
    monkeypatch.setenv("DUCKDB_PATH", str(tmp_path / "walletscope.duckdb"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
