"""Run configuration: one JSON document describing a backtest.

Example::

    {
      "initial_capital": 10000,
      "start": "2025-01-01",
      "end": "2025-06-30",
      "strategy": {"name": "macd", "params": {"short_period": 12, "long_period": 26}},
      "risk": {"max_drawdown": 0.2, "max_daily_loss": 0.05},
      "sizer": {"method": "kelly", "win_rate": 0.55},
      "allow_short": false
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .risk import RiskConfig
from .sizing import PositionSizerConfig
from .strategies import build_strategy
from .types import StrategyLike


def parse_date(raw: str | date | None) -> date | datetime | None:
    """ISO date → date, ISO datetime → datetime, None passes through."""
    if raw is None or isinstance(raw, (date, datetime)):
        return raw
    raw = raw.strip()
    if "T" in raw or " " in raw:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    return date.fromisoformat(raw)


def _only_known(cls: type, values: dict[str, Any], section: str) -> dict[str, Any]:
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {section} option(s): {', '.join(sorted(unknown))}")
    return values


@dataclass
class RunConfig:
    initial_capital: float = 10_000.0
    start: date | datetime | None = None
    end: date | datetime | None = None
    strategy: str = "macd"
    strategy_params: dict[str, Any] = field(default_factory=dict)
    risk: RiskConfig = field(default_factory=RiskConfig)
    sizer: PositionSizerConfig = field(default_factory=PositionSizerConfig)
    allow_short: bool = False

    def __post_init__(self) -> None:
        if self.initial_capital <= 0:
            raise ValueError("initial_capital must be > 0")

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RunConfig":
        strategy = raw.get("strategy", {})
        if isinstance(strategy, str):
            strategy = {"name": strategy}
        return cls(
            initial_capital=float(raw.get("initial_capital", 10_000.0)),
            start=parse_date(raw.get("start")),
            end=parse_date(raw.get("end")),
            strategy=strategy.get("name", "macd"),
            strategy_params=dict(strategy.get("params", {})),
            risk=RiskConfig(**_only_known(RiskConfig, raw.get("risk", {}), "risk")),
            sizer=PositionSizerConfig(**_only_known(PositionSizerConfig, raw.get("sizer", {}), "sizer")),
            allow_short=bool(raw.get("allow_short", False)),
        )

    def build_strategy(self, reference_price: float | None = None, **overrides: Any) -> StrategyLike:
        """Build the configured strategy, ``overrides`` taking precedence over its params.

        A grid with neither ``levels`` nor ``center`` is laid out around
        ``reference_price`` (normally the first bar).
        """
        params = {**self.strategy_params, **overrides}
        is_grid = self.strategy.strip().lower() == "grid"
        if is_grid and reference_price is not None and "levels" not in params and "center" not in params:
            params["center"] = reference_price
        return build_strategy(self.strategy, **params)


def load_run_config(path: str | Path) -> RunConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"Config {p} must be a JSON object")
    return RunConfig.from_dict(raw)
