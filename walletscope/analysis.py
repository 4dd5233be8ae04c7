"""End-to-end wallet analysis: fetch, filter, aggregate, detect, assemble."""

from __future__ import annotations

import logging
import time

from walletscope.chain.helius import HeliusClient
from walletscope.chain.source import TransactionSource, fetch_history
from walletscope.chain.synthetic import SyntheticSource
from walletscope.config import Settings, get_settings
from walletscope.errors import InvalidInputError, NoTransactionsError, UpstreamError
from walletscope.models.schema import AnalysisReport, PnlMode, PortfolioSummary, RawTransaction, Timeframe
from walletscope.scoring.pnl import PriceSource, calculate_wallet_pnl, filter_by_timeframe
from walletscope.scoring.related import detect_related_wallets, enrich_related_wallets
from walletscope.tokens.constants import lamports_to_sol

logger = logging.getLogger(__name__)

# Solana addresses are base58 public keys, 32-44 characters long
MIN_ADDRESS_LENGTH = 32
MAX_ADDRESS_LENGTH = 44


def validate_wallet_address(address: str | None) -> str:
    """Strip and length-check an address. No checksum validation."""
    address = (address or "").strip()
    if not address:
        raise InvalidInputError("Please enter a wallet address")
    if not MIN_ADDRESS_LENGTH <= len(address) <= MAX_ADDRESS_LENGTH:
        raise InvalidInputError("Invalid Solana wallet address")
    return address


def build_source(
    settings: Settings | None = None,
    api_key: str | None = None,
    mode: PnlMode | str = PnlMode.STRICT,
) -> TransactionSource:
    """Pick the Transaction Source.

    Synthetic data is used when configured. Interactive (simple) mode also
    uses it when no Helius key is available at all; strict mode requires a key.
    """
    settings = settings or get_settings()
    if settings.use_demo_data:
        return SyntheticSource()
    if PnlMode(mode) is PnlMode.SIMPLE and not (api_key or settings.helius_api_key):
        logger.warning("No Helius API key provided, using demo data")
        return SyntheticSource()
    return HeliusClient(settings.require_helius_key(api_key), settings=settings)


async def load_transactions(
    source: TransactionSource,
    wallet: str,
    settings: Settings,
    allow_demo_fallback: bool = False,
) -> tuple[list[RawTransaction], bool]:
    """Fetch full history. Returns ``(transactions, synthetic)``.

    Only an upstream failure can fall back to demo data; a reachable source
    reporting zero transactions is returned as-is for the caller to surface.
    """
    try:
        transactions = await fetch_history(
            source, wallet, page_limit=settings.page_limit, max_pages=settings.max_pages,
        )
        return transactions, source.synthetic
    except UpstreamError as e:
        if not allow_demo_fallback:
            raise
        logger.warning("Transaction fetch failed (%s), falling back to demo data", e.message)
        demo = SyntheticSource()
        return await fetch_history(demo, wallet, page_limit=settings.page_limit, max_pages=settings.max_pages), True


async def fetch_balance(source: TransactionSource, wallet: str) -> float:
    """Native balance in SOL; 0 when the source cannot provide it."""
    try:
        return lamports_to_sol(await source.fetch_native_balance(wallet))
    except UpstreamError as e:
        logger.warning("Balance fetch failed for %s: %s", wallet, e.message)
        return 0.0


async def analyze_wallet(
    wallet: str,
    timeframe: Timeframe | str = Timeframe.ALL,
    mode: PnlMode | str = PnlMode.STRICT,
    source: TransactionSource | None = None,
    price_source: PriceSource | None = None,
    enrich_related: bool = False,
    settings: Settings | None = None,
    api_key: str | None = None,
    now: float | None = None,
) -> AnalysisReport:
    """Analyze one wallet.

    strict: realized-only P&L from base-currency trade amounts; an empty
        history yields a zero report.
    simple: USD P&L with current prices; an empty history raises
        ``NoTransactionsError``, and an unreachable source may fall back to
        synthetic data when ``settings.demo_fallback`` is on.
    """
    settings = settings or get_settings()
    wallet = validate_wallet_address(wallet)
    timeframe = Timeframe(timeframe)
    mode = PnlMode(mode)
    now = time.time() if now is None else now
    if source is None:
        source = build_source(settings, api_key=api_key, mode=mode)

    interactive = mode is PnlMode.SIMPLE
    transactions, synthetic = await load_transactions(
        source, wallet, settings, allow_demo_fallback=interactive and settings.demo_fallback,
    )

    if not transactions:
        if interactive:
            raise NoTransactionsError("No transactions found for this wallet")
        return AnalysisReport.from_summary(
            PortfolioSummary(mode=mode), wallet, timeframe, balance=0.0, synthetic=synthetic,
        )

    balance_source = SyntheticSource() if synthetic and not source.synthetic else source
    balance = await fetch_balance(balance_source, wallet)

    window = filter_by_timeframe(transactions, timeframe, now=now)
    logger.info("After %s filter: %d of %d transactions remain", timeframe.value, len(window), len(transactions))

    summary = await calculate_wallet_pnl(
        window, wallet, mode=mode, price_source=price_source,
        fallback_sol_price=settings.fallback_sol_price,
    )

    related = detect_related_wallets(transactions, wallet, now=now, limit=settings.related_wallet_limit)
    if enrich_related and related:
        async def _history(address: str) -> list[RawTransaction]:
            return await fetch_history(
                balance_source, address, page_limit=settings.page_limit, max_pages=settings.max_pages,
            )

        related = await enrich_related_wallets(
            related, _history, mode=mode, price_source=price_source,
            concurrency=settings.enrichment_concurrency,
            fallback_sol_price=settings.fallback_sol_price,
        )

    return AnalysisReport.from_summary(
        summary,
        wallet,
        timeframe,
        transaction_count=len(transactions),
        synthetic=synthetic,
        balance=balance,
        related_wallets=related,
    )
