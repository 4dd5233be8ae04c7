import asyncio

import pytest

from conftest import MINT, WALLET, base_swap, touch
from walletscope.analysis import analyze_wallet, build_source, validate_wallet_address
from walletscope.chain.helius import HeliusClient
from walletscope.chain.synthetic import SyntheticSource
from walletscope.errors import InvalidInputError, NoTransactionsError, UpstreamError
from walletscope.models.schema import PnlMode, RawTransaction, Timeframe

NOW = 1_700_000_000
PEER = "PeerZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZ"


class FakeSource:
    synthetic = False

    def __init__(self, transactions=None, fail=False):
        self.transactions = transactions or []
        self.fail = fail

    async def fetch_transactions(self, wallet, limit=100, type=None, before=None):
        if self.fail:
            raise UpstreamError("Helius API error: 503")
        return self.transactions if before is None else []

    async def fetch_native_balance(self, wallet):
        return 3_000_000_000


@pytest.mark.parametrize("address, message", [
    ("", "Please enter a wallet address"),
    ("   ", "Please enter a wallet address"),
    ("short", "Invalid Solana wallet address"),
    ("x" * 45, "Invalid Solana wallet address"),
])
def test_invalid_addresses(address, message):
    with pytest.raises(InvalidInputError) as exc:
        validate_wallet_address(address)
    assert exc.value.message == message
    assert exc.value.status_code == 400


def test_address_is_stripped():
    assert validate_wallet_address(f"  {WALLET}\n") == WALLET


def test_build_source(settings):
    assert isinstance(build_source(settings, mode=PnlMode.SIMPLE), SyntheticSource)
    assert isinstance(build_source(settings, api_key="k"), HeliusClient)
    with pytest.raises(InvalidInputError):
        build_source(settings, mode=PnlMode.STRICT)
    demo = settings.model_copy(update={"use_demo_data": True})
    assert isinstance(build_source(demo, api_key="k"), SyntheticSource)


def test_require_helius_key(settings):
    assert settings.require_helius_key("override") == "override"
    assert settings.model_copy(update={"helius_api_key": "env"}).require_helius_key() == "env"
    with pytest.raises(InvalidInputError):
        settings.require_helius_key()


def test_strict_empty_history_is_zero_report(settings):
    report = asyncio.run(analyze_wallet(WALLET, mode="strict", source=FakeSource(), settings=settings, now=NOW))
    assert report.total_pnl == 0
    assert report.transaction_count == 0
    assert report.related_wallets == []
    assert not report.synthetic


def test_simple_empty_history_raises(settings):
    with pytest.raises(NoTransactionsError) as exc:
        asyncio.run(analyze_wallet(WALLET, mode="simple", source=FakeSource(), settings=settings, now=NOW))
    assert exc.value.status_code == 404


def test_simple_falls_back_to_demo_data(settings):
    report = asyncio.run(analyze_wallet(
        WALLET, mode="simple", source=FakeSource(fail=True), settings=settings, now=NOW,
    ))
    assert report.synthetic
    assert report.transaction_count == 50
    assert report.balance > 0


def test_strict_does_not_fall_back(settings):
    with pytest.raises(UpstreamError):
        asyncio.run(analyze_wallet(WALLET, mode="strict", source=FakeSource(fail=True), settings=settings, now=NOW))


def test_timeframe_limits_pnl_not_related(settings):
    txs = [
        base_swap("sell", NOW - 3600, "SELL", base_amount=30, token_amount=10),
        base_swap("buy", NOW - 10 * 86400, "BUY", base_amount=10, token_amount=10),
        touch("p2", NOW - 7200, PEER),
        touch("p1", NOW - 20 * 86400, PEER),
    ]
    source = FakeSource(txs)

    all_time = asyncio.run(analyze_wallet(WALLET, timeframe="all", source=source, settings=settings, now=NOW))
    assert all_time.total_pnl == pytest.approx(20.0)
    assert all_time.balance == pytest.approx(3.0)

    day = asyncio.run(analyze_wallet(WALLET, timeframe=Timeframe.DAY, source=source, settings=settings, now=NOW))
    # Without the earlier buy the sell has no cost basis
    assert day.total_pnl == pytest.approx(30.0)
    assert day.transaction_count == 4
    assert [w.address for w in day.related_wallets] == [PEER]


def test_report_serializes_with_camel_case(settings):
    report = asyncio.run(analyze_wallet(
        WALLET, source=SyntheticSource(seed=3, now=NOW), settings=settings, now=NOW,
    ))
    data = report.model_dump(mode="json", by_alias=True)
    for key in ("totalPnL", "winRate", "totalTrades", "totalVolume", "bestPerformer", "pnlHistory", "relatedWallets"):
        assert key in data
    assert data["synthetic"] is True
    assert len(data["relatedWallets"]) <= 10
    assert data["positions"]
    assert {"avgEntry", "avgExit", "costBasis", "realizedPnL", "totalBought"} <= set(data["positions"][0])
    assert "avg_entry" not in data["positions"][0]


class PerWalletSource(FakeSource):
    def __init__(self, histories):
        super().__init__()
        self.histories = histories

    async def fetch_transactions(self, wallet, limit=100, type=None, before=None):
        return self.histories.get(wallet, []) if before is None else []


def _sol_round_trip(wallet, counterparty=None):
    """Buy 1000 tokens for 1 SOL, then sell them for 2 SOL."""
    def leg(signature, timestamp, buying, lamports):
        native = {"account": wallet, "amount": str(lamports)}
        token = {"userAccount": wallet, "mint": MINT, "symbol": "BONK",
                 "rawTokenAmount": {"tokenAmount": "1000", "decimals": 0}}
        accounts = [wallet] + ([counterparty] if counterparty else [])
        return RawTransaction.model_validate({
            "signature": signature,
            "timestamp": timestamp,
            "type": "SWAP",
            "accountData": [{"account": a, "nativeBalanceChange": lamports} for a in accounts],
            "events": {"swap": {
                "nativeInput": native if buying else None,
                "nativeOutput": None if buying else native,
                "tokenInputs": [] if buying else [token],
                "tokenOutputs": [token] if buying else [],
            }},
        })

    return [
        leg(f"{wallet[:4]}-sell", NOW - 100, False, 2_000_000_000),
        leg(f"{wallet[:4]}-buy", NOW - 200, True, 1_000_000_000),
    ]


def test_enrichment_uses_configured_sol_price(settings):
    settings = settings.model_copy(update={"fallback_sol_price": 200.0})
    source = PerWalletSource({
        WALLET: _sol_round_trip(WALLET, counterparty=PEER),
        PEER: _sol_round_trip(PEER),
    })

    report = asyncio.run(analyze_wallet(
        WALLET, mode="simple", source=source, enrich_related=True, settings=settings, now=NOW,
    ))

    assert report.total_pnl == pytest.approx(200.0)
    assert [w.address for w in report.related_wallets] == [PEER]
    assert report.related_wallets[0].pnl == pytest.approx(report.total_pnl)
