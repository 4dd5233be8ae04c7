"""Per-token positions with weighted-average cost basis."""

from __future__ import annotations

from dataclasses import dataclass, field

from walletscope.models.schema import TradeSide


@dataclass(frozen=True)
class LedgerEntry:
    side: TradeSide
    amount: float
    price: float
    timestamp: int
    signature: str


@dataclass
class Position:
    """Running position in one token.

    Every sell is costed at the average price of all buys so far (not FIFO or
    LIFO lots). Selling more than was bought drives ``remaining`` negative,
    which only means the history started after the tokens were acquired.
    """

    mint: str
    symbol: str
    total_bought: float = 0.0
    total_spent: float = 0.0
    total_sold: float = 0.0
    total_received: float = 0.0
    remaining: float = 0.0
    realized_pnl: float = 0.0
    trades: list[LedgerEntry] = field(default_factory=list)

    def buy(self, amount: float, price_per_unit: float, timestamp: int = 0, signature: str = "") -> None:
        self.total_spent += amount * price_per_unit
        self.total_bought += amount
        self.remaining += amount
        self.trades.append(LedgerEntry(TradeSide.BUY, amount, price_per_unit, timestamp, signature))

    def sell(self, amount: float, price_per_unit: float, timestamp: int = 0, signature: str = "") -> None:
        avg_cost = self.avg_entry_price
        revenue = amount * price_per_unit
        self.realized_pnl += revenue - amount * avg_cost
        self.total_sold += amount
        self.total_received += revenue
        self.remaining -= amount
        self.trades.append(LedgerEntry(TradeSide.SELL, amount, price_per_unit, timestamp, signature))

    @property
    def avg_entry_price(self) -> float:
        return self.total_spent / self.total_bought if self.total_bought > 0 else 0.0

    @property
    def avg_exit_price(self) -> float:
        return self.total_received / self.total_sold if self.total_sold > 0 else 0.0

    @property
    def roi(self) -> float:
        if self.total_spent == 0:
            return 0.0
        return self.realized_pnl / self.total_spent * 100

    @property
    def volume(self) -> float:
        return self.total_spent + self.total_received

    @property
    def trade_count(self) -> int:
        return len(self.trades)


class Ledger:
    """Positions for one analysis run, keyed by mint in first-seen order."""

    def __init__(self) -> None:
        self._positions: dict[str, Position] = {}

    def position(self, mint: str, symbol: str) -> Position:
        if mint not in self._positions:
            self._positions[mint] = Position(mint=mint, symbol=symbol)
        return self._positions[mint]

    def positions(self) -> list[Position]:
        return list(self._positions.values())

    def mints(self) -> list[str]:
        return list(self._positions)

    @property
    def realized_pnl(self) -> float:
        return sum(p.realized_pnl for p in self._positions.values())

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, mint: object) -> bool:
        return mint in self._positions
