"""tradesim CLI: replay a price file through a strategy and report the result."""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from dataclasses import replace

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import RunConfig, load_run_config, parse_date
from .data import load_bars
from .engine.backtest import BacktestResult, run_backtest
from .strategies import STRATEGIES

console = Console()
log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="tradesim backtest",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tradesim --data prices.csv --strategy macd
  tradesim --data prices.parquet --config run.json --start 2025-01-01 --show-trades
""",
    )

    # ── Data source ────────────────────────────────────────────────────────────
    parser.add_argument("--data", required=True, help="CSV or Parquet file with timestamp + price/close")
    parser.add_argument("--start", default=None, help="Start date ISO (default: first bar)")
    parser.add_argument("--end", default=None, help="End date ISO (default: last bar)")

    # ── Run config ─────────────────────────────────────────────────────────────
    parser.add_argument("--config", default=None, help="JSON run config (flags override it)")
    parser.add_argument("--strategy", default=None, choices=sorted(STRATEGIES))
    parser.add_argument("--capital", type=float, default=None, help="Initial capital")
    parser.add_argument("--method", default=None, help="Sizing: fixed | risk-based | kelly")
    parser.add_argument("--allow-short", action="store_true", default=None)

    # ── Output ─────────────────────────────────────────────────────────────────
    parser.add_argument("--show-trades", action="store_true", help="Print the trade ledger")
    parser.add_argument("--json", action="store_true", dest="json_mode")
    parser.add_argument("-v", "--verbose", action="store_true")

    return parser


def _apply_overrides(cfg: RunConfig, args: argparse.Namespace) -> RunConfig:
    if args.strategy is not None and args.strategy != cfg.strategy:
        # params of another strategy do not carry over
        cfg = replace(cfg, strategy=args.strategy, strategy_params={})
    if args.capital is not None:
        cfg = replace(cfg, initial_capital=args.capital)
    if args.start is not None:
        cfg = replace(cfg, start=parse_date(args.start))
    if args.end is not None:
        cfg = replace(cfg, end=parse_date(args.end))
    if args.method is not None:
        cfg = replace(cfg, sizer=replace(cfg.sizer, method=args.method))
    if args.allow_short is not None:
        cfg = replace(cfg, allow_short=args.allow_short)
    return cfg


def _fmt(value: float, spec: str, suffix: str = "") -> str:
    if math.isnan(value):
        return "n/a"
    if math.isinf(value):
        return "∞"
    return f"{value:{spec}}{suffix}"


def print_result(result: BacktestResult, title: str, show_trades: bool = False) -> None:
    m = result.metrics
    tbl = Table(title=title, show_header=False)
    tbl.add_column("Metric")
    tbl.add_column("Value", justify="right")
    color = "green" if m.total_return_pct > 0 else "red"
    tbl.add_row("Bars", f"{result.bars_processed:,}")
    tbl.add_row("Initial Capital", f"{result.equity[0]:,.2f}")
    tbl.add_row("Final Equity", f"{m.final_equity:,.2f}")
    tbl.add_row("Return", f"[{color}]{_fmt(m.total_return_pct, '.2f', '%')}[/]")
    tbl.add_row("Max Drawdown", _fmt(m.max_drawdown * 100, ".2f", "%"))
    tbl.add_row("Sharpe", _fmt(m.sharpe_ratio, ".3f"))
    tbl.add_row("Trades", str(m.num_trades))
    tbl.add_row("Wins / Losses", f"{m.wins} / {m.losses}")
    tbl.add_row("Win Rate", _fmt(m.win_rate * 100, ".1f", "%"))
    tbl.add_row("Profit Factor", _fmt(m.profit_factor, ".2f"))
    console.print(tbl)

    if result.open_position is not None:
        pos = result.open_position
        console.print(
            f"[yellow]Open {pos.side.value} position not included: "
            f"size={pos.size:.6f} @ {pos.entry_price:.4f} since {pos.entry_timestamp.isoformat()}[/]"
        )

    if show_trades and result.trades:
        ledger = Table(title="Trades", show_header=True)
        for col in ("#", "Side", "Entry", "Entry Price", "Exit", "Exit Price", "Size", "PnL"):
            ledger.add_column(col)
        for i, t in enumerate(result.trades, 1):
            pnl_color = "green" if t.pnl > 0 else "red"
            ledger.add_row(
                str(i),
                t.side.value,
                t.entry.timestamp.isoformat(),
                f"{t.entry.price:.4f}",
                t.exit.timestamp.isoformat(),
                f"{t.exit.price:.4f}",
                f"{t.size:.6f}",
                f"[{pnl_color}]{t.pnl:,.2f}[/]",
            )
        console.print(ledger)


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        handlers=[RichHandler(console=console, show_path=False)],
    )

    try:
        cfg = load_run_config(args.config) if args.config else RunConfig()
        cfg = _apply_overrides(cfg, args)
        bars = load_bars(args.data)
        if not bars:
            raise ValueError(f"No bars in {args.data}")
        log.debug("Loaded %d bars from %s", len(bars), args.data)
        strategy = cfg.build_strategy(bars[0].price)
        result = run_backtest(
            bars,
            cfg.initial_capital,
            cfg.start or bars[0].timestamp,
            cfg.end or bars[-1].timestamp,
            strategy,
            cfg.risk,
            cfg.sizer,
            allow_short=cfg.allow_short,
        )
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json_mode:
        json.dump(result.to_dict(), sys.stdout, indent=2, allow_nan=False)
        sys.stdout.write("\n")
        return

    print_result(result, f"Backtest — {cfg.strategy} on {args.data}", show_trades=args.show_trades)


if __name__ == "__main__":
    main()
