from __future__ import annotations

from typing import Sequence

from ..analysis.indicators import macd_histogram, prices_of, sma_difference
from ..types import Action, Signal, WindowItem
from .common import NO_CONFIDENCE, crossover, signal_for


class MACDStrategy:
    """MACD histogram crossover.

    - BUY when the histogram turns from negative to positive
    - SELL when it turns from positive to negative
    - HOLD otherwise

    The histogram is recomputed for the window and for the window without its
    last bar; the pair is the crossover detector.
    """

    name = "macd"

    def __init__(
        self,
        short_period: int = 12,
        long_period: int = 26,
        signal_period: int = 9,
        confidence: float = 0.8,
    ) -> None:
        if short_period < 1 or long_period < 1 or signal_period < 1:
            raise ValueError("Periods must be >= 1")
        if short_period >= long_period:
            raise ValueError("short_period must be < long_period")
        if not (0.0 <= confidence <= 1.0):
            raise ValueError("confidence must be in [0, 1]")
        self.short_period = short_period
        self.long_period = long_period
        self.signal_period = signal_period
        self.confidence = confidence

    def _histogram(self, prices: list[float]) -> float | None:
        return macd_histogram(prices, self.short_period, self.long_period, self.signal_period)

    def analyze(self, window: Sequence[WindowItem]) -> Signal:
        prices = prices_of(window)
        curr = self._histogram(prices)
        prev = self._histogram(prices[:-1])
        if curr is None or prev is None:
            return signal_for(Action.HOLD, NO_CONFIDENCE, window)

        action = crossover(curr, prev)
        if action is Action.HOLD:
            return signal_for(Action.HOLD, 0.5, window)
        return signal_for(action, self.confidence, window)


class SMACrossStrategy:
    """Moving-average-difference crossover: SMA(short) - SMA(long) changes sign."""

    name = "sma"

    def __init__(self, short_window: int = 20, long_window: int = 50, confidence: float = 0.8) -> None:
        if short_window <= 1 or long_window <= 1:
            raise ValueError("Windows must be > 1")
        if short_window >= long_window:
            raise ValueError("short_window must be < long_window")
        if not (0.0 <= confidence <= 1.0):
            raise ValueError("confidence must be in [0, 1]")
        self.short_window = short_window
        self.long_window = long_window
        self.confidence = confidence

    def analyze(self, window: Sequence[WindowItem]) -> Signal:
        prices = prices_of(window)
        curr = sma_difference(prices, self.short_window, self.long_window)
        prev = sma_difference(prices[:-1], self.short_window, self.long_window)
        if curr is None or prev is None:
            return signal_for(Action.HOLD, NO_CONFIDENCE, window)

        action = crossover(curr, prev)
        if action is Action.HOLD:
            return signal_for(Action.HOLD, 0.5, window)
        return signal_for(action, self.confidence, window)
