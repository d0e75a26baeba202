"""Unit tests for PositionSizer methods, clamping and Kelly estimation."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tradesim.sizing import PositionSizer, PositionSizerConfig, SizingMethod
from tradesim.types import Position, Side, Trade

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _make_trade(pnl: float) -> Trade:
    pos = Position(side=Side.LONG, entry_price=100.0, entry_timestamp=T0, size=1.0)
    return Trade.close(pos, 100.0 + pnl, T0 + timedelta(hours=1))


# ── methods ──────────────────────────────────────────────────────────────────

def test_risk_based_size():
    sizer = PositionSizer(PositionSizerConfig(min_position_size=0.0))
    assert sizer.size(10_000, 0.02, 100) == pytest.approx(2.0)


def test_risk_based_is_clamped_to_min():
    sizer = PositionSizer()  # min 1% of capital
    assert sizer.size(10_000, 0.02, 100) == pytest.approx(100.0)


def test_fixed_size():
    sizer = PositionSizer(PositionSizerConfig(method="fixed"))
    assert sizer.size(10_000, 0.5, 100) == pytest.approx(200.0)


def test_clamped_to_max():
    sizer = PositionSizer(PositionSizerConfig(method=SizingMethod.FIXED, default_risk_per_trade=0.5))
    assert sizer.size(10_000, 0.0, 100) == pytest.approx(1_000.0)


def test_kelly_placeholder_inputs():
    sizer = PositionSizer(
        PositionSizerConfig(method="kelly", min_position_size=0.0, max_position_size=1.0)
    )
    assert sizer.kelly_fraction() == pytest.approx(0.5 - 0.5 / 1.5)
    assert sizer.size(10_000, 0.02, 100) == pytest.approx(10_000 * (1 / 6) * 0.02)


def test_kelly_is_clamped_with_default_bounds():
    sizer = PositionSizer(PositionSizerConfig(method="kelly"))
    # ≈33.3 before clamping, min bound is 1% of 10_000
    assert sizer.size(10_000, 0.02, 100) == pytest.approx(100.0)


def test_kelly_floor_at_zero():
    sizer = PositionSizer(
        PositionSizerConfig(method="kelly", min_position_size=0.0, win_rate=0.2, win_loss_ratio=1.0)
    )
    assert sizer.kelly_fraction() == 0.0
    assert sizer.size(10_000, 0.02, 100) == 0.0


def test_kelly_estimated_from_recorded_trades():
    sizer = PositionSizer(PositionSizerConfig(method="kelly"))
    for pnl in (10, 20, -10):
        sizer.record(_make_trade(pnl))
    assert sizer.win_rate() == pytest.approx(2 / 3)
    assert sizer.win_loss_ratio() == pytest.approx(1.5)
    assert sizer.kelly_fraction() == pytest.approx(2 / 3 - (1 / 3) / 1.5)


def test_configured_kelly_inputs_win_over_history():
    sizer = PositionSizer(PositionSizerConfig(win_rate=0.6, win_loss_ratio=2.0))
    sizer.record(_make_trade(-5))
    assert sizer.win_rate() == 0.6
    assert sizer.win_loss_ratio() == 2.0


# ── method resolution ────────────────────────────────────────────────────────

def test_unknown_method_falls_back_to_risk_based():
    sizer = PositionSizer(PositionSizerConfig(method="martingale", min_position_size=0.0))
    assert sizer.method is SizingMethod.RISK_BASED
    assert sizer.size(10_000, 0.02, 100) == pytest.approx(2.0)


def test_per_call_method_override():
    sizer = PositionSizer(PositionSizerConfig(min_position_size=0.0))
    assert sizer.size(10_000, 0.02, 100, method="fixed") == pytest.approx(200.0)
    assert sizer.size(10_000, 0.02, 100, method="nope") == pytest.approx(2.0)


@pytest.mark.parametrize("raw", ["risk-based", "risk_based", " Risk-Based ", None])
def test_parse_risk_based_aliases(raw):
    assert SizingMethod.parse(raw) is SizingMethod.RISK_BASED


# ── config ───────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_position_size": -0.1},
        {"max_position_size": 0},
        {"min_position_size": 0.5, "max_position_size": 0.1},
        {"win_rate": 1.2},
        {"win_loss_ratio": 0},
    ],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        PositionSizerConfig(**kwargs)
