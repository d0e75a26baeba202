from .backtest import WINDOW_SIZE, BacktestEngine, BacktestResult, run_backtest
from .metrics import Metrics, compute_metrics

__all__ = [
    "WINDOW_SIZE",
    "BacktestEngine",
    "BacktestResult",
    "Metrics",
    "compute_metrics",
    "run_backtest",
]
