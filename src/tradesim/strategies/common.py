from __future__ import annotations

from typing import Sequence

from ..types import Action, MarketBar, Signal, WindowItem

# Confidence attached to HOLD when a strategy cannot decide yet.
NO_CONFIDENCE = 0.0


def signal_for(action: Action, confidence: float, window: Sequence[WindowItem]) -> Signal:
    """Build a Signal stamped with the price/timestamp of the window's last item."""
    if not window:
        return Signal(action=Action.HOLD, confidence=NO_CONFIDENCE, price=0.0)
    last = window[-1]
    if isinstance(last, MarketBar):
        return Signal(action=action, confidence=confidence, price=last.price, timestamp=last.timestamp)
    return Signal(action=action, confidence=confidence, price=float(last))


def crossover(curr: float, prev: float) -> Action:
    """BUY on a negative→positive transition, SELL on the reverse, else HOLD."""
    if prev < 0 < curr:
        return Action.BUY
    if prev > 0 > curr:
        return Action.SELL
    return Action.HOLD
