"""CLI: grid-search strategy params and rank runs by Sharpe.

Usage:
    tradesim-sweep --data prices.csv --strategy macd
    tradesim-sweep --data prices.csv --strategy sma --grid grid.json --top 10

Every combination gets its own strategy, risk evaluator and sizer, so runs
share no state.
"""

from __future__ import annotations

import argparse
import itertools
import json
import logging
import math
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tradesim.config import RunConfig, load_run_config, parse_date
from tradesim.data import load_bars
from tradesim.engine.backtest import run_backtest
from tradesim.strategies import STRATEGIES
from tradesim.types import MarketBar

console = Console()
log = logging.getLogger(__name__)

# ── Default parameter grids ────────────────────────────────────────────────
DEFAULT_GRIDS: dict[str, dict[str, list]] = {
    "macd": {
        "short_period": [8, 12],
        "long_period": [21, 26],
        "signal_period": [5, 9],
    },
    "sma": {
        "short_window": [5, 10, 20],
        "long_window": [30, 50],
    },
    "grid": {
        "spacing_pct": [1.0, 2.0, 3.0],
        "num_grids": [5, 10],
    },
}


def grid_combos(grid: dict[str, list]) -> list[dict[str, Any]]:
    """Expand a dict of {param: [values]} into a list of param dicts."""
    keys = list(grid.keys())
    values = list(grid.values())
    return [dict(zip(keys, combo)) for combo in itertools.product(*values)]


def _sort_key(row: dict) -> float:
    sharpe = row.get("sharpe_ratio")
    return -math.inf if sharpe is None else sharpe


def _fmt(value: float | None, spec: str, suffix: str = "") -> str:
    return "n/a" if value is None else f"{value:{spec}}{suffix}"


def run_sweep(
    bars: list[MarketBar],
    cfg: RunConfig,
    grid: dict[str, list],
) -> list[dict]:
    """Backtest every combination; rows hold params plus metrics, best Sharpe first."""
    start = cfg.start or bars[0].timestamp
    end = cfg.end or bars[-1].timestamp
    results: list[dict] = []

    for combo in grid_combos(grid):
        try:
            strategy = cfg.build_strategy(bars[0].price, **combo)
        except (TypeError, ValueError) as exc:
            log.warning("Skipping %s: %s", combo, exc)
            continue
        result = run_backtest(
            bars,
            cfg.initial_capital,
            start,
            end,
            strategy,
            cfg.risk,
            cfg.sizer,
            allow_short=cfg.allow_short,
        )
        row = {**combo, **result.metrics.to_dict()}
        results.append(row)

    results.sort(key=_sort_key, reverse=True)
    return results


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Grid-search strategy params and rank by Sharpe",
    )
    p.add_argument("--data", required=True)
    p.add_argument("--strategy", default="macd", choices=sorted(STRATEGIES))
    p.add_argument("--config", default=None, help="JSON run config for capital/risk/sizer")
    p.add_argument("--grid", default=None, help="JSON file {param: [values]}")
    p.add_argument("--start", default=None)
    p.add_argument("--end", default=None)
    p.add_argument("--top", type=int, default=20, help="Show top N results (default: 20)")
    p.add_argument("--json", action="store_true", dest="json_mode")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def _load_grid(path: str | None, strategy: str) -> dict[str, list]:
    if path is None:
        return DEFAULT_GRIDS[strategy]
    with open(path, "r", encoding="utf-8") as f:
        grid = json.load(f)
    if not isinstance(grid, dict) or not all(isinstance(v, list) for v in grid.values()):
        raise ValueError(f"Grid {path} must be a JSON object of lists")
    return grid


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        handlers=[RichHandler(console=console, show_path=False)],
    )

    try:
        cfg = load_run_config(args.config) if args.config else RunConfig()
        if args.strategy != cfg.strategy:
            cfg.strategy = args.strategy
            cfg.strategy_params = {}
        if args.start:
            cfg.start = parse_date(args.start)
        if args.end:
            cfg.end = parse_date(args.end)
        grid = _load_grid(args.grid, args.strategy)
        bars = load_bars(args.data)
        if not bars:
            raise ValueError(f"No bars in {args.data}")
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    combos = grid_combos(grid)
    console.print(
        f"[cyan]Running {len(combos)} experiment(s)[/] "
        f"{args.strategy} on {args.data} ({len(bars):,} bars)"
    )

    results = run_sweep(bars, cfg, grid)
    top = results[: args.top]

    if args.json_mode:
        json.dump(top, sys.stdout, indent=2, allow_nan=False)
        sys.stdout.write("\n")
        return

    # Rich table
    tbl = Table(
        title=f"Sweep Results — {args.strategy} (top {args.top})",
        show_header=True,
    )
    tbl.add_column("#", width=3)
    for key in grid:
        tbl.add_column(key)
    tbl.add_column("Return%", width=10)
    tbl.add_column("MaxDD%", width=10)
    tbl.add_column("Sharpe", width=8)
    tbl.add_column("Trades", width=7)

    for i, r in enumerate(top, 1):
        ret = r["total_return_pct"]
        color = "green" if ret is not None and ret > 0 else "red"
        tbl.add_row(
            str(i),
            *(str(r[key]) for key in grid),
            f"[{color}]{_fmt(ret, '.2f', '%')}[/]",
            _fmt(None if r["max_drawdown"] is None else r["max_drawdown"] * 100, ".2f", "%"),
            _fmt(r["sharpe_ratio"], ".3f"),
            str(r["num_trades"]),
        )

    console.print(tbl)


if __name__ == "__main__":
    main()
