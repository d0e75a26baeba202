"""Load MarketBar sequences from CSV, Parquet or a pandas DataFrame."""
from __future__ import annotations

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import pandas as pd

from .types import MarketBar

PRICE_COLUMNS = ("price", "close")


def as_utc(ts: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _parse_ts(raw: str) -> datetime:
    raw = raw.strip()
    if raw.isdigit():
        ts = int(raw)
        # heuristic: milliseconds vs seconds
        if ts > 10_000_000_000:
            ts = ts / 1000
        return datetime.fromtimestamp(ts, tz=timezone.utc)

    # ISO 8601 support, including trailing Z
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(raw))


def check_ordering(bars: Sequence[MarketBar]) -> None:
    """Raise ValueError if timestamps ever decrease (equal timestamps are fine)."""
    for i in range(1, len(bars)):
        if as_utc(bars[i].timestamp) < as_utc(bars[i - 1].timestamp):
            raise ValueError(
                f"Bars out of order at index {i}: "
                f"{bars[i].timestamp.isoformat()} < {bars[i - 1].timestamp.isoformat()}"
            )


def _price_column(columns: Sequence[str]) -> str | None:
    for name in PRICE_COLUMNS:
        if name in columns:
            return name
    return None


def load_bars_from_csv(path: str | Path) -> list[MarketBar]:
    """Read ``timestamp`` plus ``price`` (or ``close``) columns into sorted bars."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"CSV not found: {p}")

    bars: list[MarketBar] = []
    with p.open("r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        headers = [h.strip().lower() for h in (reader.fieldnames or [])]
        price_col = _price_column(headers)
        if "timestamp" not in headers or price_col is None:
            raise ValueError(
                f"CSV {p} needs a 'timestamp' column and one of: {', '.join(PRICE_COLUMNS)}"
            )
        has_volume = "volume" in headers

        for line_num, row in enumerate(reader, start=2):  # start=2: header is line 1
            row = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k is not None}
            price = float(row[price_col])
            if price <= 0:
                raise ValueError(f"Invalid price at row {line_num}: {price} must be > 0")
            bars.append(
                MarketBar(
                    timestamp=_parse_ts(row["timestamp"]),
                    price=price,
                    volume=float(row["volume"]) if has_volume and row["volume"] else None,
                )
            )

    bars.sort(key=lambda b: b.timestamp)
    return bars


def bars_from_frame(df: pd.DataFrame) -> list[MarketBar]:
    """Convert a DataFrame to bars.

    Timestamps come from a ``timestamp``/``open_time`` column or a
    DatetimeIndex; prices from ``price`` or ``close``.
    """
    if df.empty:
        return []
    frame = df.copy()
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    if "timestamp" not in frame.columns:
        if "open_time" in frame.columns:
            frame = frame.rename(columns={"open_time": "timestamp"})
        elif isinstance(frame.index, pd.DatetimeIndex):
            frame = frame.rename_axis("timestamp").reset_index()
        else:
            raise ValueError("DataFrame has no timestamp column or DatetimeIndex")

    price_col = _price_column(list(frame.columns))
    if price_col is None:
        raise ValueError(f"DataFrame needs one of: {', '.join(PRICE_COLUMNS)}")
    if (frame[price_col] <= 0).any():
        raise ValueError("All prices must be > 0")

    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    frame = frame.sort_values("timestamp", kind="stable")
    has_volume = "volume" in frame.columns

    bars: list[MarketBar] = []
    for row in frame.itertuples(index=False):
        volume = getattr(row, "volume") if has_volume else None
        bars.append(
            MarketBar(
                timestamp=row.timestamp.to_pydatetime(),
                price=float(getattr(row, price_col)),
                volume=None if volume is None or pd.isna(volume) else float(volume),
            )
        )
    return bars


def load_bars_from_parquet(path: str | Path) -> list[MarketBar]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Parquet file not found: {p}")
    return bars_from_frame(pd.read_parquet(p))


def load_bars(path: str | Path) -> list[MarketBar]:
    """Dispatch on file extension: .parquet/.pq via pandas, anything else as CSV."""
    p = Path(path)
    if p.suffix.lower() in (".parquet", ".pq"):
        return load_bars_from_parquet(p)
    return load_bars_from_csv(p)
