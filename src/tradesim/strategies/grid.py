from __future__ import annotations

from typing import Iterable, Sequence

from ..analysis.indicators import prices_of
from ..types import Action, Signal, WindowItem
from .common import NO_CONFIDENCE, signal_for


class GridStrategy:
    """Band/grid following over a fixed ladder of price levels.

    - BUY when price is more than band_pct% below the nearest level
    - SELL when price is more than band_pct% above the nearest level
    - HOLD otherwise, and always when the ladder is empty
    """

    name = "grid"

    def __init__(
        self,
        levels: Iterable[float] = (),
        band_pct: float = 2.0,
        confidence: float = 0.7,
    ) -> None:
        if band_pct < 0:
            raise ValueError("band_pct must be >= 0")
        if not (0.0 <= confidence <= 1.0):
            raise ValueError("confidence must be in [0, 1]")
        self.levels: tuple[float, ...] = tuple(float(lv) for lv in levels)
        self.band_pct = band_pct
        self.confidence = confidence

    @classmethod
    def around(
        cls,
        center: float,
        spacing_pct: float = 2.0,
        num_grids: int = 10,
        band_pct: float | None = None,
    ) -> "GridStrategy":
        """Ladder of ``num_grids`` levels spaced ``spacing_pct``% around ``center``.

        The trigger band defaults to the spacing itself, so a signal fires once
        price is more than one rung away from its nearest level.
        """
        if center <= 0:
            raise ValueError("center must be > 0")
        if spacing_pct <= 0:
            raise ValueError("spacing_pct must be > 0")
        if num_grids < 1:
            raise ValueError("num_grids must be >= 1")
        offset = (num_grids - 1) / 2
        levels = [center * (1 + (k - offset) * spacing_pct / 100) for k in range(num_grids)]
        return cls(levels, band_pct=spacing_pct if band_pct is None else band_pct)

    def nearest_level(self, price: float) -> float | None:
        if not self.levels:
            return None
        # min() keeps the first level on ties
        return min(self.levels, key=lambda lv: abs(lv - price))

    def analyze(self, window: Sequence[WindowItem]) -> Signal:
        prices = prices_of(window)
        if not prices:
            return signal_for(Action.HOLD, NO_CONFIDENCE, window)
        price = prices[-1]
        nearest = self.nearest_level(price)
        if nearest is None:
            return signal_for(Action.HOLD, NO_CONFIDENCE, window)

        band = self.band_pct / 100
        if price < nearest * (1 - band):
            return signal_for(Action.BUY, self.confidence, window)
        if price > nearest * (1 + band):
            return signal_for(Action.SELL, self.confidence, window)
        return signal_for(Action.HOLD, 0.5, window)
