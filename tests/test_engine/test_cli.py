"""Tests for the tradesim command: strict JSON output and the grid default."""
from __future__ import annotations

import json
import sys

import pytest

from tradesim import cli


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def _run_cli(monkeypatch, capsys, *argv: str) -> dict:
    monkeypatch.setattr(sys, "argv", ["tradesim", *argv])
    cli.main()
    return json.loads(capsys.readouterr().out, parse_constant=_reject_constant)


def _write_prices(path, prices: list[float]):
    rows = [f"2025-01-01T{i:02d}:00:00Z,{p}" for i, p in enumerate(prices)]
    path.write_text("timestamp,price\n" + "\n".join(rows) + "\n", encoding="utf-8")
    return path


def test_cli_json_without_trades_is_strict(tmp_path, monkeypatch, capsys):
    p = _write_prices(tmp_path / "flat.csv", [100.0] * 10)
    out = _run_cli(monkeypatch, capsys, "--data", str(p), "--strategy", "macd", "--json")
    assert out["trades"] == []
    assert out["metrics"]["win_rate"] is None
    assert out["metrics"]["sharpe_ratio"] is None
    assert out["bars_processed"] == 10


def test_cli_grid_without_config_trades_around_first_price(tmp_path, monkeypatch, capsys):
    # 100 centres the ladder at 91..109; 85 is below the bottom band, 120 above the top
    p = _write_prices(tmp_path / "swing.csv", [100.0, 85.0, 120.0])
    out = _run_cli(monkeypatch, capsys, "--data", str(p), "--strategy", "grid", "--json")
    assert out["metrics"]["num_trades"] == 1
    assert out["trades"][0]["entry"]["price"] == 85.0
    assert out["trades"][0]["exit"]["price"] == 120.0


def test_cli_reports_errors(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["tradesim", "--data", str(tmp_path / "missing.csv")])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 1
    assert "ERROR" in capsys.readouterr().err
