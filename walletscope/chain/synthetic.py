"""Deterministic demo data behind the Transaction Source protocol."""

from __future__ import annotations

import random
import time

from walletscope.models.schema import RawTransaction, parse_transactions
from walletscope.tokens.constants import LAMPORTS_PER_SOL, WSOL_MINT

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

DEMO_TOKENS = ["BONK", "WIF", "JUP", "PYTH", "JTO", "MNGO", "ORCA", "RAY", "MOBILE", "PYUSD"]
DEMO_SOURCES = ["JUPITER", "RAYDIUM", "ORCA"]


def _address(rng: random.Random, length: int = 44) -> str:
    return "".join(rng.choice(BASE58_ALPHABET) for _ in range(length))


class SyntheticSource:
    """Fake swap history shaped like Helius enhanced transactions.

    Seeded from the wallet address, so the same wallet always gets the same
    history. Only used when demo data is configured, or as the interactive
    fallback when the real source is unreachable.
    """

    synthetic = True

    def __init__(self, num_transactions: int = 50, seed: int | None = None, now: float | None = None):
        self.num_transactions = num_transactions
        self.seed = seed
        self.now = int(time.time() if now is None else now)
        self._cache: dict[str, list[RawTransaction]] = {}

    def _rng(self, wallet: str) -> random.Random:
        return random.Random(f"{self.seed}:{wallet}")

    def generate(self, wallet: str) -> list[RawTransaction]:
        """Full history for ``wallet``, newest first."""
        if wallet in self._cache:
            return self._cache[wallet]

        rng = self._rng(wallet)
        mints = {symbol: _address(rng) for symbol in DEMO_TOKENS}
        pools = {source: _address(rng) for source in DEMO_SOURCES}
        counterparties = [_address(rng) for _ in range(4)]

        records: list[dict] = []
        for i in range(self.num_transactions):
            symbol = rng.choice(DEMO_TOKENS)
            source = rng.choice(DEMO_SOURCES)
            pool = pools[source]
            buying = rng.random() < 0.6
            sol_amount = round(rng.uniform(0.1, 5.0), 4)
            token_amount = round(sol_amount * rng.uniform(1_000, 50_000), 2)
            lamports = int(sol_amount * LAMPORTS_PER_SOL)
            raw_tokens = str(int(token_amount * 10**6))
            counterparty = rng.choice(counterparties)

            sol_leg = {"fromUserAccount": wallet, "toUserAccount": pool} if buying \
                else {"fromUserAccount": pool, "toUserAccount": wallet}
            token_leg = {"fromUserAccount": pool, "toUserAccount": wallet} if buying \
                else {"fromUserAccount": wallet, "toUserAccount": pool}
            token_side = {"userAccount": wallet, "mint": mints[symbol], "symbol": symbol,
                          "rawTokenAmount": {"tokenAmount": raw_tokens, "decimals": 6}}
            native_side = {"account": wallet, "amount": str(lamports)}

            records.append({
                "signature": f"demo_{rng.getrandbits(64):016x}",
                "timestamp": int(self.now - i * 3600 * rng.uniform(0, 24)),
                "type": "SWAP",
                "source": source,
                "description": f"Swapped SOL for {symbol}" if buying else f"Swapped {symbol} for SOL",
                "fee": 5000,
                "feePayer": wallet,
                "tokenTransfers": [
                    {**sol_leg, "mint": WSOL_MINT, "tokenAmount": sol_amount, "symbol": "SOL"},
                    {**token_leg, "mint": mints[symbol], "tokenAmount": token_amount, "symbol": symbol},
                ],
                "nativeTransfers": [],
                "accountData": [
                    {"account": wallet, "nativeBalanceChange": -lamports if buying else lamports},
                    {"account": pool, "nativeBalanceChange": lamports if buying else -lamports},
                    {"account": counterparty, "nativeBalanceChange": int(rng.uniform(0, 5) * LAMPORTS_PER_SOL)},
                ],
                "events": {"swap": {
                    "nativeInput": native_side if buying else None,
                    "nativeOutput": None if buying else native_side,
                    "tokenInputs": [] if buying else [token_side],
                    "tokenOutputs": [token_side] if buying else [],
                }},
            })

        records.sort(key=lambda r: r["timestamp"], reverse=True)
        self._cache[wallet] = parse_transactions(records)
        return self._cache[wallet]

    async def fetch_transactions(
        self,
        wallet: str,
        limit: int = 100,
        type: str | None = None,
        before: str | None = None,
    ) -> list[RawTransaction]:
        history = self.generate(wallet)
        if type:
            history = [tx for tx in history if tx.type == type]
        start = 0
        if before:
            signatures = [tx.signature for tx in history]
            start = signatures.index(before) + 1 if before in signatures else len(history)
        return history[start:start + limit]

    async def fetch_native_balance(self, wallet: str) -> int:
        return int(self._rng(wallet).uniform(0.5, 250) * LAMPORTS_PER_SOL)
