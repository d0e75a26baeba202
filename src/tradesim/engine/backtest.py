from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Sequence

from ..data import as_utc, check_ordering
from ..risk import RiskConfig, RiskEvaluator
from ..sizing import PositionSizer, PositionSizerConfig
from ..types import (
    Action,
    ExecutionSink,
    MarketBar,
    Position,
    Side,
    StrategyLike,
    Trade,
)
from .metrics import Metrics, compute_metrics

log = logging.getLogger(__name__)

# Trailing bars handed to the strategy: the current bar plus 100 before it.
WINDOW_SIZE = 101


@dataclass
class BacktestResult:
    trades: list[Trade]
    equity: list[float]
    metrics: Metrics
    # Left open at the end of input; not part of trades, equity or metrics.
    open_position: Position | None = None
    bars_processed: int = 0

    def to_dict(self) -> dict:
        return {
            "trades": [
                {
                    "entry": {"price": t.entry.price, "timestamp": t.entry.timestamp.isoformat()},
                    "exit": {"price": t.exit.price, "timestamp": t.exit.timestamp.isoformat()},
                    "pnl": t.pnl,
                    "side": t.side.value,
                    "size": t.size,
                }
                for t in self.trades
            ],
            "equity": list(self.equity),
            "metrics": self.metrics.to_dict(),
            "open_position": (
                None
                if self.open_position is None
                else {
                    "side": self.open_position.side.value,
                    "entry_price": self.open_position.entry_price,
                    "entry_timestamp": self.open_position.entry_timestamp.isoformat(),
                    "size": self.open_position.size,
                }
            ),
            "bars_processed": self.bars_processed,
        }


def _range_start(start: date | datetime) -> datetime:
    if isinstance(start, datetime):
        return as_utc(start)
    return datetime.combine(start, time.min, tzinfo=timezone.utc)


def _range_end(end: date | datetime) -> datetime:
    if isinstance(end, datetime):
        return as_utc(end)
    # a bare date covers the whole day
    return datetime.combine(end, time.max, tzinfo=timezone.utc)


@dataclass
class _RunState:
    capital: float
    position: Position | None = None
    trades: list[Trade] = field(default_factory=list)
    equity: list[float] = field(default_factory=list)


class BacktestEngine:
    """Replay bars through strategy → risk → sizer, one position at a time.

    A fresh RiskEvaluator and PositionSizer are built for the run from the
    supplied configs, so no running state is shared between engines.
    """

    def __init__(
        self,
        bars: Sequence[MarketBar],
        initial_capital: float,
        start: date | datetime,
        end: date | datetime,
        strategy: StrategyLike,
        risk_config: RiskConfig | None = None,
        sizer_config: PositionSizerConfig | None = None,
        *,
        allow_short: bool = False,
        sink: ExecutionSink | None = None,
    ) -> None:
        if not bars:
            raise ValueError("Need at least 1 bar")
        if initial_capital <= 0:
            raise ValueError("initial_capital must be > 0")
        self.start = _range_start(start)
        self.end = _range_end(end)
        if self.start > self.end:
            raise ValueError(f"start {start} is after end {end}")
        for i, bar in enumerate(bars):
            if bar.price <= 0:
                raise ValueError(f"Bar {i}: price={bar.price} must be > 0")
        check_ordering(bars)

        self.bars = list(bars)
        self.initial_capital = initial_capital
        self.strategy = strategy
        self.risk = RiskEvaluator(initial_capital, risk_config)
        self.sizer = PositionSizer(sizer_config)
        self.allow_short = allow_short
        self.sink = sink
        self._has_run = False

    def run(self) -> BacktestResult:
        # Guard: risk and sizer state is mutated; running twice produces garbage results.
        if self._has_run:
            raise RuntimeError(
                "BacktestEngine.run() has already been called. "
                "Create a fresh BacktestEngine to re-run."
            )
        self._has_run = True

        state = _RunState(capital=self.initial_capital, equity=[self.initial_capital])
        processed = 0
        log.info(
            "Backtest start: %d bars, capital=%.2f, range %s → %s",
            len(self.bars), self.initial_capital, self.start.isoformat(), self.end.isoformat(),
        )

        for i, bar in enumerate(self.bars):
            ts = as_utc(bar.timestamp)
            if ts < self.start:
                continue
            if ts > self.end:
                break
            processed += 1
            self._step(state, i, bar)

        if state.position is not None:
            log.info("Position left open at end of input: %s", state.position)

        metrics = compute_metrics(state.trades, state.equity)
        log.info(
            "Backtest done: %d bars, %d trades, final capital=%.2f",
            processed, len(state.trades), state.capital,
        )
        return BacktestResult(
            trades=state.trades,
            equity=state.equity,
            metrics=metrics,
            open_position=state.position,
            bars_processed=processed,
        )

    def _step(self, state: _RunState, i: int, bar: MarketBar) -> None:
        window = self.bars[max(0, i - WINDOW_SIZE + 1) : i + 1]
        signal = self.strategy.analyze(window)

        decision = self.risk.evaluate(
            capital=state.capital,
            signal=signal,
            current_position=state.position,
            market_context=window,
            as_of=bar.timestamp,
        )
        if not decision.allow:
            return

        size = self.sizer.size(state.capital, decision.risk_amount, bar.price)

        if signal.action == Action.HOLD:
            return

        if state.position is None:
            side = self._entry_side(signal.action)
            if side is not None:
                self._open(state, side, bar, size)
        elif self._is_exit(state.position.side, signal.action):
            self._close(state, bar)

    def _entry_side(self, action: Action) -> Side | None:
        if action == Action.BUY:
            return Side.LONG
        if action == Action.SELL and self.allow_short:
            return Side.SHORT
        return None

    @staticmethod
    def _is_exit(side: Side, action: Action) -> bool:
        return (side is Side.LONG and action == Action.SELL) or (
            side is Side.SHORT and action == Action.BUY
        )

    def _open(self, state: _RunState, side: Side, bar: MarketBar, size: float) -> None:
        if size <= 0:
            log.debug("Skipping %s entry at %s: zero size", side.value, bar.timestamp)
            return
        state.position = Position(
            side=side,
            entry_price=bar.price,
            entry_timestamp=bar.timestamp,
            size=size,
        )
        log.debug("Open %s size=%.6f @ %.4f (%s)", side.value, size, bar.price, bar.timestamp)
        if self.sink is not None:
            self.sink.on_open(state.position)

    def _close(self, state: _RunState, bar: MarketBar) -> None:
        trade = Trade.close(state.position, bar.price, bar.timestamp)
        state.trades.append(trade)
        state.capital += trade.pnl
        state.equity.append(state.capital)
        state.position = None
        self.sizer.record(trade)
        log.debug("Close %s pnl=%.4f @ %.4f (%s)", trade.side.value, trade.pnl, bar.price, bar.timestamp)
        if self.sink is not None:
            self.sink.on_close(trade)


def run_backtest(
    bars: Sequence[MarketBar],
    initial_capital: float,
    start: date | datetime,
    end: date | datetime,
    strategy: StrategyLike,
    risk_config: RiskConfig | None = None,
    sizer_config: PositionSizerConfig | None = None,
    *,
    allow_short: bool = False,
    sink: ExecutionSink | None = None,
) -> BacktestResult:
    """Run one simulation and return its ledger, equity curve and metrics."""
    engine = BacktestEngine(
        bars,
        initial_capital,
        start,
        end,
        strategy,
        risk_config,
        sizer_config,
        allow_short=allow_short,
        sink=sink,
    )
    return engine.run()
