from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .types import Trade

log = logging.getLogger(__name__)

# Used when neither the config nor the recorded trades supply Kelly inputs.
DEFAULT_WIN_RATE = 0.5
DEFAULT_WIN_LOSS_RATIO = 1.5


class SizingMethod(str, Enum):
    FIXED = "fixed"
    RISK_BASED = "risk-based"
    KELLY = "kelly"

    @classmethod
    def parse(cls, value: "SizingMethod | str | None") -> "SizingMethod":
        """Resolve a method name; anything unrecognised means risk-based."""
        if isinstance(value, SizingMethod):
            return value
        if value is None:
            return cls.RISK_BASED
        key = str(value).strip().lower().replace("_", "-")
        try:
            return cls(key)
        except ValueError:
            log.warning("Unknown sizing method %r, falling back to risk-based", value)
            return cls.RISK_BASED


@dataclass(frozen=True)
class PositionSizerConfig:
    max_position_size: float = 0.1  # fraction of capital
    min_position_size: float = 0.01
    default_risk_per_trade: float = 0.02
    method: SizingMethod | str = SizingMethod.RISK_BASED
    win_rate: float | None = None
    win_loss_ratio: float | None = None

    def __post_init__(self) -> None:
        if self.min_position_size < 0:
            raise ValueError("min_position_size must be >= 0")
        if self.max_position_size <= 0:
            raise ValueError("max_position_size must be > 0")
        if self.min_position_size > self.max_position_size:
            raise ValueError("min_position_size must be <= max_position_size")
        if self.default_risk_per_trade < 0:
            raise ValueError("default_risk_per_trade must be >= 0")
        if self.win_rate is not None and not (0 <= self.win_rate <= 1):
            raise ValueError("win_rate must be in [0, 1]")
        if self.win_loss_ratio is not None and self.win_loss_ratio <= 0:
            raise ValueError("win_loss_ratio must be > 0")


class PositionSizer:
    """Convert a risk budget into a position size.

    Methods:

    - fixed:      capital * default_risk_per_trade
    - risk-based: capital * risk_amount / price
    - kelly:      capital * max(0, p - (1 - p) / b) * risk_amount

    Every result is clamped to [capital * min_position_size,
    capital * max_position_size]. Kelly inputs come from the config, else
    from trades passed to ``record``, else DEFAULT_WIN_RATE and
    DEFAULT_WIN_LOSS_RATIO.
    """

    def __init__(self, config: PositionSizerConfig | None = None) -> None:
        self.config = config or PositionSizerConfig()
        self.method = SizingMethod.parse(self.config.method)
        self._wins: list[float] = []
        self._losses: list[float] = []

    def record(self, trade: Trade) -> None:
        """Feed a closed trade into the Kelly estimates."""
        if trade.pnl > 0:
            self._wins.append(trade.pnl)
        elif trade.pnl < 0:
            self._losses.append(trade.pnl)

    def size(
        self,
        capital: float,
        risk_amount: float,
        price: float,
        method: SizingMethod | str | None = None,
    ) -> float:
        chosen = self.method if method is None else SizingMethod.parse(method)
        if chosen is SizingMethod.FIXED:
            raw = capital * self.config.default_risk_per_trade
        elif chosen is SizingMethod.KELLY:
            raw = capital * self.kelly_fraction() * risk_amount
        else:
            if price <= 0:
                raise ValueError(f"price={price} must be > 0")
            raw = capital * risk_amount / price
        return self._clamp(raw, capital)

    def kelly_fraction(self) -> float:
        p = self.win_rate()
        b = self.win_loss_ratio()
        return max(0.0, p - (1 - p) / b)

    def win_rate(self) -> float:
        if self.config.win_rate is not None:
            return self.config.win_rate
        total = len(self._wins) + len(self._losses)
        if total == 0:
            return DEFAULT_WIN_RATE
        return len(self._wins) / total

    def win_loss_ratio(self) -> float:
        if self.config.win_loss_ratio is not None:
            return self.config.win_loss_ratio
        if not self._wins or not self._losses:
            return DEFAULT_WIN_LOSS_RATIO
        avg_win = sum(self._wins) / len(self._wins)
        avg_loss = abs(sum(self._losses) / len(self._losses))
        return avg_win / avg_loss

    def _clamp(self, size: float, capital: float) -> float:
        max_size = capital * self.config.max_position_size
        min_size = capital * self.config.min_position_size
        return min(max(size, min_size), max_size)
