from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Sequence

from .analysis.indicators import prices_of, return_volatility
from .types import MarketBar, Position, Signal, WindowItem

log = logging.getLogger(__name__)

DAILY_LOSS_LIMIT = "daily loss limit"
MAX_DRAWDOWN = "max drawdown"
POSITION_SIZE_LIMIT = "position size exceeds limit"


@dataclass(frozen=True)
class RiskConfig:
    max_position_size: float = 0.1  # fraction of capital
    max_drawdown: float = 0.2
    max_daily_loss: float = 0.05
    max_leverage: float = 2.0  # carried for callers, not enforced here
    volatility_window: int = 20

    def __post_init__(self) -> None:
        if not (0 < self.max_position_size <= 1):
            raise ValueError("max_position_size must be in (0, 1]")
        if not (0 < self.max_drawdown <= 1):
            raise ValueError("max_drawdown must be in (0, 1]")
        if not (0 < self.max_daily_loss <= 1):
            raise ValueError("max_daily_loss must be in (0, 1]")
        if self.max_leverage <= 0:
            raise ValueError("max_leverage must be > 0")
        if self.volatility_window < 2:
            raise ValueError("volatility_window must be >= 2")


@dataclass
class DayEquity:
    start_equity: float
    current_equity: float


@dataclass
class RiskState:
    total_equity: float
    max_drawdown_reached: float = 0.0
    per_day: dict[date, DayEquity] = field(default_factory=dict)


@dataclass(frozen=True)
class RiskDecision:
    allow: bool
    risk_amount: float
    reason: str | None = None


def _utc_date(ts: datetime) -> date:
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(timezone.utc).date()


class RiskEvaluator:
    """Gate proposed trades against daily-loss, drawdown and size limits.

    Holds running state for one simulation run. Drawdown is measured against
    the equity passed at construction, which never moves, so once the limit is
    breached every later evaluation in the run is denied.
    """

    def __init__(self, initial_equity: float, config: RiskConfig | None = None) -> None:
        if initial_equity <= 0:
            raise ValueError("initial_equity must be > 0")
        self.config = config or RiskConfig()
        self.state = RiskState(total_equity=initial_equity)

    def evaluate(
        self,
        capital: float,
        signal: Signal,
        current_position: Position | None,
        market_context: Sequence[WindowItem],
        as_of: datetime | None = None,
    ) -> RiskDecision:
        day = self._update_day(capital, self._day_of(signal, market_context, as_of))
        self._update_drawdown(capital)

        if day.start_equity <= 0 or (
            (day.current_equity - day.start_equity) / day.start_equity <= -self.config.max_daily_loss
        ):
            return self._deny(DAILY_LOSS_LIMIT)

        if self.state.max_drawdown_reached >= self.config.max_drawdown:
            return self._deny(MAX_DRAWDOWN)

        volatility = return_volatility(prices_of(market_context), self.config.volatility_window)
        risk_amount = self.config.max_position_size * signal.confidence * (1 - volatility)

        if risk_amount > capital * self.config.max_position_size:
            return self._deny(POSITION_SIZE_LIMIT)

        return RiskDecision(allow=True, risk_amount=risk_amount)

    # ── Running state ─────────────────────────────────────────────────────────

    @staticmethod
    def _day_of(
        signal: Signal,
        market_context: Sequence[WindowItem],
        as_of: datetime | None,
    ) -> date | None:
        if as_of is not None:
            return _utc_date(as_of)
        if signal.timestamp is not None:
            return _utc_date(signal.timestamp)
        if market_context and isinstance(market_context[-1], MarketBar):
            return _utc_date(market_context[-1].timestamp)
        return None

    def _update_day(self, capital: float, day: date | None) -> DayEquity:
        # Undated evaluations share one bucket
        key = day or date.min
        bucket = self.state.per_day.get(key)
        if bucket is None:
            bucket = DayEquity(start_equity=capital, current_equity=capital)
            self.state.per_day[key] = bucket
        else:
            bucket.current_equity = capital
        return bucket

    def _update_drawdown(self, capital: float) -> None:
        baseline = self.state.total_equity
        drawdown = (baseline - capital) / baseline
        if drawdown > self.state.max_drawdown_reached:
            self.state.max_drawdown_reached = drawdown

    def _deny(self, reason: str) -> RiskDecision:
        log.debug("Trade denied: %s (max drawdown reached %.4f)", reason, self.state.max_drawdown_reached)
        return RiskDecision(allow=False, risk_amount=0.0, reason=reason)
