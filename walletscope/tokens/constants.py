"""Solana mints, unit scales and the base-currency set."""

# 1 SOL = 10^9 lamports
LAMPORTS_PER_SOL = 1_000_000_000

# Wrapped SOL doubles as the canonical mint for native SOL legs
WSOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

NATIVE_SYMBOL = "SOL"
UNKNOWN_SYMBOL = "UNKNOWN"

# Base currencies: mint -> symbol. Decides trade direction.
BASE_TOKENS: dict[str, str] = {
    WSOL_MINT: NATIVE_SYMBOL,
    USDC_MINT: "USDC",
    USDT_MINT: "USDT",
}

# USD-pegged subset of BASE_TOKENS
STABLECOINS: dict[str, str] = {
    USDC_MINT: "USDC",
    USDT_MINT: "USDT",
}

SECONDS_PER_DAY = 86400


def is_base_token(mint: str | None) -> bool:
    return mint in BASE_TOKENS


def lamports_to_sol(lamports: float | int | str | None) -> float:
    """Convert lamports (possibly a numeric string) to whole SOL."""
    if lamports in (None, ""):
        return 0.0
    return float(lamports) / LAMPORTS_PER_SOL
