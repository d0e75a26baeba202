"""Unit tests for RiskEvaluator gates and running state."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from tradesim.risk import (
    DAILY_LOSS_LIMIT,
    MAX_DRAWDOWN,
    POSITION_SIZE_LIMIT,
    RiskConfig,
    RiskEvaluator,
)
from tradesim.types import Action, MarketBar, Signal

DAY1 = datetime(2025, 3, 3, 9, tzinfo=timezone.utc)
DAY2 = DAY1 + timedelta(days=1)


def _signal(confidence: float = 0.8, ts: datetime = DAY1) -> Signal:
    return Signal(action=Action.BUY, confidence=confidence, price=100.0, timestamp=ts)


def _flat_context(n: int = 5, ts: datetime = DAY1) -> list[MarketBar]:
    return [MarketBar(timestamp=ts - timedelta(hours=n - i), price=100.0) for i in range(n)]


# ── allow path ───────────────────────────────────────────────────────────────

def test_allows_and_scales_by_confidence():
    risk = RiskEvaluator(10_000)
    decision = risk.evaluate(10_000, _signal(0.8), None, _flat_context())
    assert decision.allow
    assert decision.reason is None
    assert decision.risk_amount == pytest.approx(0.1 * 0.8)


def test_volatility_reduces_risk_amount():
    risk = RiskEvaluator(10_000)
    context = [MarketBar(timestamp=DAY1, price=p) for p in (100.0, 110.0, 99.0)]
    # returns +0.1 / -0.1 → population std 0.1
    decision = risk.evaluate(10_000, _signal(1.0), None, context)
    assert decision.risk_amount == pytest.approx(0.1 * (1 - 0.1))


@pytest.mark.parametrize("context", [[], [MarketBar(timestamp=DAY1, price=100.0)]])
def test_too_short_context_means_zero_volatility(context):
    decision = RiskEvaluator(10_000).evaluate(10_000, _signal(0.5), None, context)
    assert decision.allow
    assert decision.risk_amount == pytest.approx(0.05)


# ── daily loss gate ──────────────────────────────────────────────────────────

def test_daily_loss_limit_denies_same_day():
    risk = RiskEvaluator(10_000)
    risk.evaluate(10_000, _signal(), None, _flat_context(), as_of=DAY1)
    decision = risk.evaluate(9_400, _signal(), None, _flat_context(), as_of=DAY1 + timedelta(hours=2))
    assert not decision.allow
    assert decision.reason == DAILY_LOSS_LIMIT
    assert decision.risk_amount == 0.0


def test_daily_loss_resets_on_new_day():
    risk = RiskEvaluator(10_000)
    risk.evaluate(10_000, _signal(), None, _flat_context(), as_of=DAY1)
    risk.evaluate(9_400, _signal(), None, _flat_context(), as_of=DAY1 + timedelta(hours=2))
    decision = risk.evaluate(9_400, _signal(ts=DAY2), None, _flat_context(ts=DAY2), as_of=DAY2)
    assert decision.allow


def test_per_day_buckets_track_start_and_current():
    risk = RiskEvaluator(10_000)
    risk.evaluate(10_000, _signal(), None, [], as_of=DAY1)
    risk.evaluate(10_200, _signal(), None, [], as_of=DAY1 + timedelta(hours=3))
    risk.evaluate(10_300, _signal(), None, [], as_of=DAY2)
    day1 = risk.state.per_day[date(2025, 3, 3)]
    day2 = risk.state.per_day[date(2025, 3, 4)]
    assert (day1.start_equity, day1.current_equity) == (10_000, 10_200)
    assert (day2.start_equity, day2.current_equity) == (10_300, 10_300)


def test_day_key_defaults_to_signal_timestamp():
    risk = RiskEvaluator(10_000)
    risk.evaluate(10_000, _signal(ts=DAY2), None, [])
    assert date(2025, 3, 4) in risk.state.per_day


# ── drawdown gate ────────────────────────────────────────────────────────────

def test_drawdown_gate_never_heals():
    risk = RiskEvaluator(10_000, RiskConfig(max_drawdown=0.2))
    first = risk.evaluate(7_900, _signal(), None, [], as_of=DAY1)
    assert not first.allow
    assert first.reason == MAX_DRAWDOWN

    # equity recovers above the baseline on a later day; still denied
    later = risk.evaluate(12_000, _signal(ts=DAY2), None, [], as_of=DAY2)
    assert not later.allow
    assert later.reason == MAX_DRAWDOWN


def test_max_drawdown_reached_is_monotonic():
    risk = RiskEvaluator(10_000, RiskConfig(max_drawdown=0.9))
    seen = []
    for i, capital in enumerate((10_000, 9_500, 9_800, 9_000, 10_500, 9_900)):
        risk.evaluate(capital, _signal(), None, [], as_of=DAY1 + timedelta(days=i))
        seen.append(risk.state.max_drawdown_reached)
    assert seen == sorted(seen)
    assert seen[-1] == pytest.approx(0.1)


def test_baseline_is_fixed_at_construction():
    risk = RiskEvaluator(10_000)
    risk.evaluate(15_000, _signal(), None, [], as_of=DAY1)
    assert risk.state.total_equity == 10_000


# ── size gate ────────────────────────────────────────────────────────────────

def test_position_size_limit():
    risk = RiskEvaluator(0.5)
    decision = risk.evaluate(0.5, _signal(1.0), None, [], as_of=DAY1)
    assert not decision.allow
    assert decision.reason == POSITION_SIZE_LIMIT


# ── isolation / config ───────────────────────────────────────────────────────

def test_instances_do_not_share_state():
    a = RiskEvaluator(10_000)
    b = RiskEvaluator(10_000)
    a.evaluate(7_000, _signal(), None, [], as_of=DAY1)
    assert b.state.max_drawdown_reached == 0.0
    assert b.state.per_day == {}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_position_size": 0},
        {"max_drawdown": 1.5},
        {"max_daily_loss": 0},
        {"max_leverage": 0},
        {"volatility_window": 1},
    ],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        RiskConfig(**kwargs)


def test_invalid_initial_equity_rejected():
    with pytest.raises(ValueError):
        RiskEvaluator(0)
