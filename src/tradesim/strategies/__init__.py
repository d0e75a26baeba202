"""Strategy variants, selected by name at construction time."""
from __future__ import annotations

from typing import Any

from ..types import StrategyLike
from .crossover import MACDStrategy, SMACrossStrategy
from .grid import GridStrategy

STRATEGIES: dict[str, type] = {
    GridStrategy.name: GridStrategy,
    MACDStrategy.name: MACDStrategy,
    SMACrossStrategy.name: SMACrossStrategy,
}


def build_strategy(name: str, **params: Any) -> StrategyLike:
    """Construct a strategy by name.

    The grid variant accepts either ``levels`` or ``center`` (plus
    ``spacing_pct``/``num_grids``) to build its ladder.
    """
    key = name.strip().lower()
    if key not in STRATEGIES:
        raise ValueError(f"Unknown strategy {name!r}. Known: {', '.join(sorted(STRATEGIES))}")
    if key == GridStrategy.name and "center" in params:
        return GridStrategy.around(**params)
    return STRATEGIES[key](**params)


__all__ = ["GridStrategy", "MACDStrategy", "SMACrossStrategy", "STRATEGIES", "build_strategy"]
