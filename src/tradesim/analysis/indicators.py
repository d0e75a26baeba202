"""Technical indicators over short price windows — pure pandas/numpy."""
from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from ..types import MarketBar, WindowItem


def prices_of(window: Sequence[WindowItem]) -> list[float]:
    """Extract prices from a window of bars (bare floats pass through)."""
    return [float(w.price) if isinstance(w, MarketBar) else float(w) for w in window]


def ema(series: pd.Series, period: int, adjust: bool = False) -> pd.Series:
    """Exponential Moving Average."""
    return series.ewm(span=period, adjust=adjust).mean()


def sma(series: pd.Series, period: int) -> pd.Series:
    """Simple Moving Average."""
    return series.rolling(window=period, min_periods=period).mean()


def macd_histogram(
    prices: Sequence[float],
    short_period: int = 12,
    long_period: int = 26,
    signal_period: int = 9,
) -> float | None:
    """Last MACD histogram value, or None with fewer than long+signal prices.

    histogram = (EMA(short) - EMA(long)) - EMA(EMA(short) - EMA(long), signal)
    """
    if len(prices) < long_period + signal_period:
        return None
    close = pd.Series(prices, dtype="float64")
    macd_line = ema(close, short_period) - ema(close, long_period)
    signal_line = ema(macd_line, signal_period)
    return float((macd_line - signal_line).iloc[-1])


def sma_difference(
    prices: Sequence[float],
    short_window: int = 20,
    long_window: int = 50,
) -> float | None:
    """SMA(short) - SMA(long) at the last price, or None without enough history."""
    if len(prices) < long_window:
        return None
    close = pd.Series(prices, dtype="float64")
    return float(sma(close, short_window).iloc[-1] - sma(close, long_window).iloc[-1])


def simple_returns(prices: Sequence[float]) -> list[float]:
    """Period-over-period returns; one element shorter than ``prices``."""
    return [(curr - prev) / prev for prev, curr in zip(prices[:-1], prices[1:])]


def return_volatility(prices: Sequence[float], window: int = 20) -> float:
    """Population std of simple returns over the trailing ``window`` prices.

    Clamped to [0, 1]. Fewer than two prices (no returns) gives 0.
    """
    returns = simple_returns(list(prices)[-window:])
    if not returns:
        return 0.0
    std = float(np.std(returns))
    return min(max(std, 0.0), 1.0)
