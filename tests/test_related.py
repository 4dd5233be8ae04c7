import asyncio

import pytest

from conftest import WALLET, base_swap, touch
from walletscope.models.schema import RawTransaction, RiskLevel
from walletscope.scoring.related import (
    MAX_RELATED_WALLETS,
    detect_related_wallets,
    enrich_related_wallets,
    risk_level,
    score_interactions,
)
from walletscope.tokens.constants import SECONDS_PER_DAY

NOW = 2_000_000_000


def _addr(i):
    return f"Peer{i:02d}".ljust(44, "X")


def test_score_bands():
    assert score_interactions(11, 101, 0, interactions_per_day=6) == 100
    assert score_interactions(6, 11, 2 * SECONDS_PER_DAY) == 25 + 20 + 10
    assert score_interactions(2, 0.5, 30 * SECONDS_PER_DAY) == 20


@pytest.mark.parametrize("counts", [[2, 5, 6, 10, 11, 50]])
def test_score_non_decreasing_in_interactions(counts):
    scores = [score_interactions(c, 5.0, SECONDS_PER_DAY * 3) for c in counts]
    assert scores == sorted(scores)


def test_score_non_decreasing_in_sol_and_recency():
    by_sol = [score_interactions(3, s, 0) for s in (0, 10, 10.5, 100, 101, 10_000)]
    assert by_sol == sorted(by_sol)
    by_age = [score_interactions(3, 1, d * SECONDS_PER_DAY) for d in (30, 7, 6.9, 1, 0.5, 0)]
    assert by_age == sorted(by_age)


def test_risk_levels():
    assert risk_level(70) is RiskLevel.HIGH
    assert risk_level(69) is RiskLevel.MEDIUM
    assert risk_level(40) is RiskLevel.MEDIUM
    assert risk_level(39) is RiskLevel.LOW


def test_single_interaction_filtered_and_main_wallet_excluded():
    txs = [
        touch("t1", NOW - 5 * SECONDS_PER_DAY, WALLET, _addr(1), _addr(2)),
        touch("t2", NOW - 50, WALLET, _addr(1)),
    ]
    related = detect_related_wallets(txs, WALLET, now=NOW)
    assert [w.address for w in related] == [_addr(1)]

    peer = related[0]
    assert peer.interactions == 2
    assert peer.native_transferred == pytest.approx(2.0)
    assert peer.first_seen == NOW - 5 * SECONDS_PER_DAY
    assert peer.last_seen == NOW - 50
    assert peer.risk_score == 10 + 10 + 20
    assert peer.risk_level is RiskLevel.MEDIUM


def test_capped_and_sorted_by_score():
    txs = []
    for i in range(15):
        # Peer i shows up i + 2 times, so later peers score higher
        for j in range(i + 2):
            txs.append(touch(f"t{i}-{j}", NOW - j * SECONDS_PER_DAY, _addr(i)))

    related = detect_related_wallets(txs, WALLET, now=NOW)
    assert len(related) == MAX_RELATED_WALLETS
    scores = [w.risk_score for w in related]
    assert scores == sorted(scores, reverse=True)
    addresses = {w.address for w in related}
    assert {_addr(i) for i in range(9, 15)} <= addresses
    assert _addr(0) not in addresses


def test_empty_history_has_no_related():
    assert detect_related_wallets([], WALLET, now=NOW) == []


def test_serialized_field_names():
    related = detect_related_wallets(
        [touch("a", NOW, _addr(1)), touch("b", NOW, _addr(1))], WALLET, now=NOW,
    )
    data = related[0].model_dump(mode="json", by_alias=True)
    assert {"solTransferred", "riskScore", "riskLevel", "firstSeen", "lastSeen"} <= set(data)


def test_enrichment_isolates_failures():
    good, bad = _addr(1), _addr(2)
    related = detect_related_wallets(
        [touch("a", NOW, good, bad), touch("b", NOW, good, bad)], WALLET, now=NOW,
    )

    async def load_history(address):
        if address == bad:
            raise RuntimeError("source down")
        return [
            base_swap("b1", 1, "BUY", base_amount=10, token_amount=10, wallet=address),
            base_swap("b2", 2, "SELL", base_amount=25, token_amount=10, wallet=address),
        ]

    enriched = asyncio.run(enrich_related_wallets(related, load_history, mode="strict", concurrency=2))
    by_address = {w.address: w for w in enriched}

    assert by_address[bad].pnl == 0.0
    assert by_address[good].pnl == pytest.approx(15.0)
    assert by_address[good].pnl_percent == pytest.approx(150.0)
    assert [w.address for w in enriched] == [w.address for w in related]


def test_equal_scores_keep_first_seen_order():
    peers = [_addr(3), _addr(1), _addr(2)]
    txs = [touch("a", NOW, *peers), touch("b", NOW, *peers)]
    related = detect_related_wallets(txs, WALLET, now=NOW)
    assert len({w.risk_score for w in related}) == 1
    assert [w.address for w in related] == peers


def test_null_account_data_is_tolerated():
    tx = RawTransaction.model_validate({"signature": "x", "timestamp": NOW, "accountData": None})
    assert detect_related_wallets([tx, tx], WALLET, now=NOW) == []
