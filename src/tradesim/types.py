from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, Sequence, Union


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def direction(self) -> int:
        return 1 if self is Side.LONG else -1


@dataclass(frozen=True)
class MarketBar:
    timestamp: datetime
    price: float
    volume: float | None = None


@dataclass(frozen=True)
class Signal:
    action: Action
    confidence: float
    price: float
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError(f"confidence={self.confidence} must be in [0, 1]")


@dataclass(frozen=True)
class Position:
    side: Side
    entry_price: float
    entry_timestamp: datetime
    size: float


@dataclass(frozen=True)
class Fill:
    price: float
    timestamp: datetime


@dataclass(frozen=True)
class Trade:
    entry: Fill
    exit: Fill
    pnl: float
    side: Side
    size: float

    @classmethod
    def close(cls, position: Position, price: float, ts: datetime) -> "Trade":
        """Turn an open position into a closed trade at ``price``."""
        pnl = position.side.direction * position.size * (price - position.entry_price)
        return cls(
            entry=Fill(price=position.entry_price, timestamp=position.entry_timestamp),
            exit=Fill(price=price, timestamp=ts),
            pnl=pnl,
            side=position.side,
            size=position.size,
        )


# A strategy window holds bars, or bare prices for callers without timestamps.
WindowItem = Union[MarketBar, float]


# ── Structural Protocols (avoid concrete coupling between modules) ──────────


class StrategyLike(Protocol):
    """Anything that can emit a Signal given a trailing window of bars."""

    def analyze(self, window: Sequence[WindowItem]) -> Signal: ...


class ExecutionSink(Protocol):
    """Receives position lifecycle events from the engine."""

    def on_open(self, position: Position) -> None: ...

    def on_close(self, trade: Trade) -> None: ...
