"""Performance statistics derived from a trade ledger and its equity curve.

Degenerate inputs produce ``nan`` (undefined) or ``inf`` rather than zeros, so
"no trades happened" stays distinguishable from "the strategy never wins".
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from statistics import fmean, pstdev
from typing import Sequence

from ..analysis.indicators import simple_returns
from ..types import Trade

# Annualisation assumes one equity point per trading day even though the
# curve advances once per closed trade.
TRADING_DAYS_PER_YEAR = 252


@dataclass(frozen=True)
class Metrics:
    total_return_pct: float
    win_rate: float
    profit_factor: float
    max_drawdown: float
    sharpe_ratio: float
    num_trades: int
    wins: int
    losses: int
    final_equity: float

    @property
    def has_trades(self) -> bool:
        return self.num_trades > 0

    def to_dict(self) -> dict:
        """Plain dict for JSON output; nan and inf become None."""
        return {
            k: None if isinstance(v, float) and not math.isfinite(v) else v
            for k, v in asdict(self).items()
        }


def compute_total_return_pct(equity: Sequence[float]) -> float:
    if not equity or equity[0] == 0:
        return math.nan
    return (equity[-1] - equity[0]) / equity[0] * 100


def compute_win_rate(trades: Sequence[Trade]) -> float:
    """Fraction of trades with positive pnl; nan for an empty ledger."""
    if not trades:
        return math.nan
    return sum(1 for t in trades if t.pnl > 0) / len(trades)


def compute_profit_factor(trades: Sequence[Trade]) -> float:
    """|gross profit / gross loss|.

    No trades, or neither wins nor losses → nan. Wins without losses → inf.
    """
    if not trades:
        return math.nan
    gross_profit = sum(t.pnl for t in trades if t.pnl > 0)
    gross_loss = sum(t.pnl for t in trades if t.pnl < 0)
    if gross_loss == 0:
        return math.inf if gross_profit > 0 else math.nan
    return abs(gross_profit / gross_loss)


def compute_max_drawdown(equity_curve: Sequence[float]) -> float:
    """Return the maximum peak-to-trough drawdown as a fraction of the peak."""
    if not equity_curve:
        return math.nan
    peak = equity_curve[0]
    max_dd = 0.0
    for eq in equity_curve:
        if eq > peak:
            peak = eq
        if peak <= 0:
            return math.nan
        dd = (peak - eq) / peak
        if dd > max_dd:
            max_dd = dd
    return max_dd


def compute_sharpe_ratio(equity_curve: Sequence[float]) -> float:
    """Mean over population std of equity returns, times sqrt(252)."""
    if any(eq == 0 for eq in equity_curve[:-1]):
        return math.nan
    returns = simple_returns(list(equity_curve))
    if not returns:
        return math.nan
    std = pstdev(returns)
    if std == 0:
        return math.nan
    return fmean(returns) / std * math.sqrt(TRADING_DAYS_PER_YEAR)


def compute_metrics(trades: Sequence[Trade], equity: Sequence[float]) -> Metrics:
    return Metrics(
        total_return_pct=compute_total_return_pct(equity),
        win_rate=compute_win_rate(trades),
        profit_factor=compute_profit_factor(trades),
        max_drawdown=compute_max_drawdown(equity),
        sharpe_ratio=compute_sharpe_ratio(equity),
        num_trades=len(trades),
        wins=sum(1 for t in trades if t.pnl > 0),
        losses=sum(1 for t in trades if t.pnl < 0),
        final_equity=equity[-1] if equity else math.nan,
    )
