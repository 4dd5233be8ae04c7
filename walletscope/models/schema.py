"""Pydantic v2 data models for raw Helius records and analysis output."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from walletscope.tokens.constants import SECONDS_PER_DAY

logger = logging.getLogger(__name__)


class _HeliusModel(BaseModel):
    """Base for raw records: camelCase input, immutable once parsed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


# --- Raw transaction shapes ---


class TokenTransfer(_HeliusModel):
    from_user_account: str | None = Field(default=None, alias="fromUserAccount")
    to_user_account: str | None = Field(default=None, alias="toUserAccount")
    mint: str | None = None
    token_amount: float = Field(default=0.0, alias="tokenAmount", description="UI units")
    symbol: str | None = Field(default=None, validation_alias=AliasChoices("symbol", "tokenSymbol"))
    decimals: int | None = None

    @field_validator("token_amount", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> float:
        return abs(float(v)) if v not in (None, "") else 0.0


class NativeTransfer(_HeliusModel):
    from_user_account: str | None = Field(default=None, alias="fromUserAccount")
    to_user_account: str | None = Field(default=None, alias="toUserAccount")
    amount: float = Field(default=0.0, description="Lamports")


class AccountDelta(_HeliusModel):
    account: str | None = None
    native_balance_change: float = Field(default=0.0, alias="nativeBalanceChange")
    token_balance_changes: list[dict] = Field(default_factory=list, alias="tokenBalanceChanges")


class NativeLeg(_HeliusModel):
    account: str | None = None
    amount: float = Field(default=0.0, description="Lamports")


class RawTokenAmount(_HeliusModel):
    token_amount: str = Field(default="0", alias="tokenAmount")
    decimals: int = 0

    @property
    def ui_amount(self) -> float:
        return abs(float(self.token_amount or 0)) / (10 ** self.decimals)


class SwapTokenLeg(_HeliusModel):
    user_account: str | None = Field(default=None, alias="userAccount")
    mint: str | None = None
    raw_token_amount: RawTokenAmount = Field(default_factory=RawTokenAmount, alias="rawTokenAmount")
    symbol: str | None = Field(default=None, validation_alias=AliasChoices("symbol", "tokenSymbol"))


class SwapEvent(_HeliusModel):
    native_input: NativeLeg | None = Field(default=None, alias="nativeInput")
    native_output: NativeLeg | None = Field(default=None, alias="nativeOutput")
    token_inputs: list[SwapTokenLeg] = Field(default_factory=list, alias="tokenInputs")
    token_outputs: list[SwapTokenLeg] = Field(default_factory=list, alias="tokenOutputs")

    @property
    def has_legs(self) -> bool:
        has_in = bool(self.token_inputs) or (self.native_input is not None and self.native_input.amount > 0)
        has_out = bool(self.token_outputs) or (self.native_output is not None and self.native_output.amount > 0)
        return has_in or has_out


class TransactionEvents(_HeliusModel):
    swap: SwapEvent | None = None


TransactionKind = Literal["swap_event", "transfer_list", "legacy"]


class RawTransaction(_HeliusModel):
    """One Helius enhanced transaction. Shape resolved once via ``kind``."""

    signature: str
    timestamp: int | None = None
    type: str | None = None
    source: str | None = None
    description: str = ""
    fee: int = 0
    fee_payer: str | None = Field(default=None, alias="feePayer")
    transaction_error: Any = Field(default=None, alias="transactionError")
    token_transfers: list[TokenTransfer] = Field(default_factory=list, alias="tokenTransfers")
    native_transfers: list[NativeTransfer] = Field(default_factory=list, alias="nativeTransfers")
    account_data: list[AccountDelta] = Field(default_factory=list, alias="accountData")
    events: TransactionEvents = Field(default_factory=TransactionEvents)

    @field_validator("token_transfers", "native_transfers", "account_data", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("events", mode="before")
    @classmethod
    def _none_to_events(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_str(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def success(self) -> bool:
        return self.transaction_error is None

    @property
    def kind(self) -> TransactionKind:
        if self.events.swap is not None and self.events.swap.has_legs:
            return "swap_event"
        if self.token_transfers or self.native_transfers:
            return "transfer_list"
        return "legacy"


def parse_transactions(records: Iterable[dict]) -> list[RawTransaction]:
    """Validate raw Helius dicts. Malformed records are logged and skipped."""
    parsed: list[RawTransaction] = []
    for i, record in enumerate(records):
        try:
            parsed.append(RawTransaction.model_validate(record))
        except (ValidationError, TypeError) as e:
            sig = record.get("signature") if isinstance(record, dict) else None
            logger.warning("Skipping malformed transaction #%d (%s): %s", i, sig, e)
    return parsed


# --- Classified trades ---


class TradeLeg(BaseModel):
    mint: str
    symbol: str
    amount: float = Field(ge=0, description="Unsigned magnitude")


class NormalizedTrade(BaseModel):
    """A swap seen from the wallet: token_in was paid in, token_out came out."""

    signature: str
    timestamp: int = 0
    token_in: TradeLeg
    token_out: TradeLeg
    fee: int = 0
    success: bool = True


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class DirectionalTrade(BaseModel):
    signature: str
    timestamp: int = 0
    side: TradeSide
    mint: str
    symbol: str
    amount: float
    base_mint: str
    base_symbol: str
    base_amount: float
    price_per_token: float


# --- Output ---


class Timeframe(str, Enum):
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    ALL = "all"

    @property
    def window(self) -> int | None:
        """Window length in seconds, None for all-time."""
        return {
            Timeframe.DAY: SECONDS_PER_DAY,
            Timeframe.WEEK: 7 * SECONDS_PER_DAY,
            Timeframe.MONTH: 30 * SECONDS_PER_DAY,
        }.get(self)

    def cutoff(self, now: float) -> float:
        return 0 if self.window is None else now - self.window


class PnlMode(str, Enum):
    STRICT = "strict"
    SIMPLE = "simple"


class PositionSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mint: str
    symbol: str
    trades: int = 0
    avg_entry: float = Field(default=0.0, serialization_alias="avgEntry")
    avg_exit: float = Field(default=0.0, serialization_alias="avgExit")
    volume: float = 0.0
    total_bought: float = Field(default=0.0, serialization_alias="totalBought")
    total_sold: float = Field(default=0.0, serialization_alias="totalSold")
    remaining: float = 0.0
    cost_basis: float = Field(default=0.0, serialization_alias="costBasis")
    realized_pnl: float = Field(default=0.0, serialization_alias="realizedPnL")
    unrealized_value: float = Field(default=0.0, serialization_alias="unrealizedValue")
    current_price: float | None = Field(default=None, serialization_alias="currentPrice")
    pnl: float = 0.0
    roi: float = 0.0


class PnlPoint(BaseModel):
    timestamp: int
    pnl: float


class BestPerformer(BaseModel):
    symbol: str
    mint: str
    pnl: float


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RelatedWallet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str
    interactions: int
    native_transferred: float = Field(serialization_alias="solTransferred")
    risk_score: int = Field(ge=0, le=100, serialization_alias="riskScore")
    risk_level: RiskLevel = Field(serialization_alias="riskLevel")
    first_seen: int = Field(default=0, serialization_alias="firstSeen")
    last_seen: int = Field(default=0, serialization_alias="lastSeen")
    pnl: float | None = None
    pnl_percent: float | None = Field(default=None, serialization_alias="pnlPercent")


class PortfolioSummary(BaseModel):
    mode: PnlMode
    total_pnl: float = 0.0
    win_rate: float = 0.0
    winners: int = 0
    losers: int = 0
    total_trades: int = 0
    total_volume: float = 0.0
    best_performer: BestPerformer | None = None
    positions: list[PositionSummary] = Field(default_factory=list)
    pnl_history: list[PnlPoint] = Field(default_factory=list)


class AnalysisReport(BaseModel):
    """Final record handed to the presentation layer."""

    model_config = ConfigDict(populate_by_name=True)

    wallet: str
    timeframe: Timeframe
    mode: PnlMode
    transaction_count: int = Field(default=0, serialization_alias="transactionCount")
    synthetic: bool = False
    balance: float | None = None
    total_pnl: float = Field(default=0.0, serialization_alias="totalPnL")
    win_rate: float = Field(default=0.0, serialization_alias="winRate")
    winners: int = 0
    losers: int = 0
    total_trades: int = Field(default=0, serialization_alias="totalTrades")
    total_volume: float = Field(default=0.0, serialization_alias="totalVolume")
    best_performer: BestPerformer | None = Field(default=None, serialization_alias="bestPerformer")
    positions: list[PositionSummary] = Field(default_factory=list)
    pnl_history: list[PnlPoint] = Field(default_factory=list, serialization_alias="pnlHistory")
    related_wallets: list[RelatedWallet] = Field(default_factory=list, serialization_alias="relatedWallets")

    @classmethod
    def from_summary(
        cls,
        summary: PortfolioSummary,
        wallet: str,
        timeframe: Timeframe,
        **extra: Any,
    ) -> "AnalysisReport":
        data = summary.model_dump(exclude={"mode"})
        return cls(wallet=wallet, timeframe=timeframe, mode=summary.mode, **data, **extra)
