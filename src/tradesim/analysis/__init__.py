"""Indicator helpers shared by strategies and the risk evaluator."""
from .indicators import (
    ema,
    macd_histogram,
    prices_of,
    return_volatility,
    simple_returns,
    sma,
    sma_difference,
)

__all__ = [
    "ema",
    "macd_histogram",
    "prices_of",
    "return_volatility",
    "simple_returns",
    "sma",
    "sma_difference",
]
