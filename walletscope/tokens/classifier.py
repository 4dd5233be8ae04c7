"""Classify Helius transactions into normalized swap trades.

Two classification modes are exposed:

- ``classify_swap``: the wallet-centric mode. Uses the pre-parsed swap event
  when Helius provides one, otherwise falls back to matching a transfer the
  wallet sent with a transfer the wallet received, for transactions typed
  (or described) as swaps.
- ``classify_directional``: the base-currency mode. One leg must be a base
  currency (SOL/USDC/USDT) and the other must not; paying base currency out
  is a BUY of the other token, receiving it is a SELL.

Both are pure functions and return None rather than raising on partial data.
"""

from __future__ import annotations

from walletscope.models.schema import (
    DirectionalTrade,
    NativeLeg,
    NormalizedTrade,
    RawTransaction,
    SwapEvent,
    SwapTokenLeg,
    TokenTransfer,
    TradeLeg,
    TradeSide,
)
from walletscope.tokens.constants import (
    BASE_TOKENS,
    NATIVE_SYMBOL,
    UNKNOWN_SYMBOL,
    WSOL_MINT,
    is_base_token,
    lamports_to_sol,
)

SWAP_TYPE = "SWAP"


def is_swap_like(tx: RawTransaction) -> bool:
    """Exact SWAP type, or a description mentioning a swap."""
    return tx.type == SWAP_TYPE or "swap" in tx.description.lower()


def classify_swap(tx: RawTransaction, wallet: str) -> NormalizedTrade | None:
    """Return the swap ``tx`` performed for ``wallet``, or None if it is not one."""
    if tx.kind == "swap_event":
        trade = _from_swap_event(tx, tx.events.swap, wallet)
        if trade is not None:
            return trade

    if tx.kind == "legacy" or not is_swap_like(tx):
        return None

    return _from_transfers(tx, wallet)


# --- Swap event mapping ---


def _owned(account: str | None, wallet: str) -> bool:
    # Helius omits the account on some legs; those belong to the fee payer.
    return account is None or account == wallet


def _native_leg(leg: NativeLeg | None, wallet: str) -> TradeLeg | None:
    if leg is None or not _owned(leg.account, wallet):
        return None
    amount = lamports_to_sol(leg.amount)
    if amount <= 0:
        return None
    return TradeLeg(mint=WSOL_MINT, symbol=NATIVE_SYMBOL, amount=amount)


def _token_leg(legs: list[SwapTokenLeg], wallet: str) -> TradeLeg | None:
    for leg in legs:
        if leg.mint and leg.raw_token_amount.ui_amount > 0 and _owned(leg.user_account, wallet):
            break
    else:
        return None
    return TradeLeg(
        mint=leg.mint,
        symbol=leg.symbol or BASE_TOKENS.get(leg.mint, UNKNOWN_SYMBOL),
        amount=leg.raw_token_amount.ui_amount,
    )


def _from_swap_event(tx: RawTransaction, swap: SwapEvent, wallet: str) -> NormalizedTrade | None:
    token_in = _native_leg(swap.native_input, wallet) or _token_leg(swap.token_inputs, wallet)
    token_out = _native_leg(swap.native_output, wallet) or _token_leg(swap.token_outputs, wallet)
    if token_in is None or token_out is None or token_in.mint == token_out.mint:
        return None
    return NormalizedTrade(
        signature=tx.signature,
        timestamp=tx.timestamp or 0,
        token_in=token_in,
        token_out=token_out,
        fee=tx.fee,
        success=tx.success,
    )


# --- Manual transfer matching ---


def _transfer_leg(transfer: TokenTransfer) -> TradeLeg:
    return TradeLeg(
        mint=transfer.mint,
        symbol=transfer.symbol or BASE_TOKENS.get(transfer.mint, UNKNOWN_SYMBOL),
        amount=transfer.token_amount,
    )


def _wallet_legs(tx: RawTransaction, wallet: str) -> tuple[TradeLeg | None, TradeLeg | None]:
    """First (sent, received) legs for the wallet, token transfers before native."""
    sent: TradeLeg | None = None
    received: TradeLeg | None = None

    for t in tx.token_transfers:
        if not t.mint or t.token_amount <= 0 or t.from_user_account == t.to_user_account:
            continue
        if sent is None and t.from_user_account == wallet:
            sent = _transfer_leg(t)
        elif received is None and t.to_user_account == wallet:
            received = _transfer_leg(t)

    for n in tx.native_transfers:
        if n.amount <= 0 or n.from_user_account == n.to_user_account:
            continue
        leg = TradeLeg(mint=WSOL_MINT, symbol=NATIVE_SYMBOL, amount=lamports_to_sol(n.amount))
        if sent is None and n.from_user_account == wallet:
            sent = leg
        elif received is None and n.to_user_account == wallet:
            received = leg

    return sent, received


def _from_transfers(tx: RawTransaction, wallet: str) -> NormalizedTrade | None:
    sent, received = _wallet_legs(tx, wallet)
    if sent is None or received is None or sent.mint == received.mint:
        return None
    return NormalizedTrade(
        signature=tx.signature,
        timestamp=tx.timestamp or 0,
        token_in=sent,
        token_out=received,
        fee=tx.fee,
        success=tx.success,
    )


# --- Base-currency directional mode ---


def _find(transfers: list[TokenTransfer], *, sender: str | None = None,
          receiver: str | None = None, base: bool) -> TokenTransfer | None:
    for t in transfers:
        if not t.mint or is_base_token(t.mint) != base:
            continue
        if t.from_user_account == t.to_user_account:
            continue
        if sender is not None and t.from_user_account != sender:
            continue
        if receiver is not None and t.to_user_account != receiver:
            continue
        return t
    return None


def classify_directional(tx: RawTransaction, wallet: str) -> DirectionalTrade | None:
    """BUY/SELL of the non-base token, priced in the base currency paid or received."""
    transfers = tx.token_transfers
    if not transfers:
        return None

    base_out = _find(transfers, sender=wallet, base=True)
    base_in = _find(transfers, receiver=wallet, base=True)

    if base_out is not None:
        side = TradeSide.BUY
        base = base_out
        target = _find(transfers, receiver=wallet, base=False)
    elif base_in is not None:
        side = TradeSide.SELL
        base = base_in
        target = _find(transfers, sender=wallet, base=False)
    else:
        return None

    if target is None or target.token_amount <= 0:
        return None

    return DirectionalTrade(
        signature=tx.signature,
        timestamp=tx.timestamp or 0,
        side=side,
        mint=target.mint,
        symbol=target.symbol or UNKNOWN_SYMBOL,
        amount=target.token_amount,
        base_mint=base.mint,
        base_symbol=BASE_TOKENS[base.mint],
        base_amount=base.token_amount,
        price_per_token=base.token_amount / target.token_amount,
    )
