from .config import RunConfig, load_run_config
from .data import load_bars, load_bars_from_csv, load_bars_from_parquet
from .engine.backtest import BacktestEngine, BacktestResult, run_backtest
from .engine.metrics import Metrics, compute_metrics
from .risk import RiskConfig, RiskDecision, RiskEvaluator, RiskState
from .sizing import PositionSizer, PositionSizerConfig, SizingMethod
from .strategies import GridStrategy, MACDStrategy, SMACrossStrategy, build_strategy
from .types import (
    Action,
    ExecutionSink,
    Fill,
    MarketBar,
    Position,
    Side,
    Signal,
    StrategyLike,
    Trade,
)

__all__ = [
    # Engine
    "BacktestEngine",
    "BacktestResult",
    "run_backtest",
    # Metrics
    "Metrics",
    "compute_metrics",
    # Risk
    "RiskConfig",
    "RiskDecision",
    "RiskEvaluator",
    "RiskState",
    # Sizing
    "PositionSizer",
    "PositionSizerConfig",
    "SizingMethod",
    # Strategies
    "GridStrategy",
    "MACDStrategy",
    "SMACrossStrategy",
    "build_strategy",
    # Data / config
    "load_bars",
    "load_bars_from_csv",
    "load_bars_from_parquet",
    "RunConfig",
    "load_run_config",
    # Types
    "Action",
    "Fill",
    "MarketBar",
    "Position",
    "Side",
    "Signal",
    "Trade",
    # Protocols
    "ExecutionSink",
    "StrategyLike",
]
